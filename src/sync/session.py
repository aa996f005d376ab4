"""
Sync Session

Follows the identity provider: every identity change builds a fresh
SyncEngine and disposes of the previous one. The engine never outlives
the identity it was built for.

- start_guest(): no sign-in; records live in the local store
- set_identity(identity): signed in; records live in the remote store,
  with the local guest data as a one-time migration source
- set_identity(None) / logout(): neutral empty state, no engine
"""

from datetime import date
from typing import Optional

import structlog

from src.audit import AuditLogger, create_correlation_id
from src.models.audit import AuditEventBuilder
from src.models.finance import Identity
from src.services.storage import RecordStoreInterface
from src.sync.engine import DEFAULT_DEBOUNCE_SECONDS, MigrationSource, SyncEngine


class SyncSession:
    """Owns at most one SyncEngine at a time."""

    def __init__(
        self,
        remote_store: RecordStoreInterface,
        local_store: RecordStoreInterface,
        *,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        guest_key: str = "guest",
        audit_logger: Optional[AuditLogger] = None,
        today: Optional[date] = None,
    ):
        self._remote_store = remote_store
        self._local_store = local_store
        self._debounce_seconds = debounce_seconds
        self._guest_key = guest_key
        self._audit_logger = audit_logger
        self._today = today
        self._engine: Optional[SyncEngine] = None
        self._is_guest = False
        self._logger = structlog.get_logger(__name__)

    @property
    def engine(self) -> Optional[SyncEngine]:
        """The active engine, or None when nobody is signed in."""
        return self._engine

    @property
    def is_guest(self) -> bool:
        return self._engine is not None and self._is_guest

    async def start_guest(self) -> SyncEngine:
        """Start (or keep) an unauthenticated session on the local store."""
        if self._engine is not None and self._is_guest:
            return self._engine

        await self._dispose()
        identity = Identity(id=self._guest_key, is_anonymous=True)
        engine = self._build_engine(
            identity,
            self._local_store,
            seed_missing=False,
            migration_source=None,
        )
        self._is_guest = True
        return await self._start(engine)

    async def set_identity(self, identity: Optional[Identity]) -> Optional[SyncEngine]:
        """
        React to the identity provider.

        The same identity again is a no-op; any other change reloads.
        """
        if identity is None:
            await self.logout()
            return None

        if self._engine is not None and not self._is_guest and self._engine.identity == identity:
            return self._engine

        await self._dispose()
        engine = self._build_engine(
            identity,
            self._remote_store,
            seed_missing=True,
            migration_source=MigrationSource(self._local_store, self._guest_key),
        )
        self._is_guest = False
        return await self._start(engine)

    async def logout(self) -> None:
        """Discard the in-memory set and return to the neutral empty state."""
        await self._dispose()

    def _build_engine(
        self,
        identity: Identity,
        store: RecordStoreInterface,
        *,
        seed_missing: bool,
        migration_source: Optional[MigrationSource],
    ) -> SyncEngine:
        return SyncEngine(
            identity,
            store,
            debounce_seconds=self._debounce_seconds,
            seed_missing=seed_missing,
            migration_source=migration_source,
            audit_logger=self._audit_logger,
            correlation_id=create_correlation_id(),
            today=self._today,
        )

    async def _start(self, engine: SyncEngine) -> SyncEngine:
        self._engine = engine
        if self._audit_logger is not None:
            await self._audit_logger.log(
                AuditEventBuilder.session_started(
                    engine.identity.id,
                    engine.identity.is_anonymous,
                    engine.correlation_id,
                )
            )
        await engine.load()
        return engine

    async def _dispose(self) -> None:
        engine = self._engine
        if engine is None:
            return
        self._engine = None

        # Pending edits are written before the set is discarded; guest
        # edits must reach the local store so a following sign-in can
        # migrate them
        await engine.flush()

        if self._audit_logger is not None:
            await self._audit_logger.log(
                AuditEventBuilder.session_ended(engine.identity.id, engine.correlation_id)
            )
        await engine.close()
        self._is_guest = False
        self._logger.info("session_disposed", identity_id=engine.identity.id)
