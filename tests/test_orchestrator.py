"""Tests for component wiring and snapshot links."""

import pytest

from src.config import get_settings
from src.models.audit import AuditEventType
from src.orchestrator import create_session, open_snapshot_link
from src.services.storage import InMemoryRecordStore, LocalFileRecordStore
from src.sharing import encode_snapshot, snapshot_path


@pytest.fixture
def offline_env(monkeypatch, tmp_path):
    monkeypatch.setenv("LOCAL_STORE_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("SYNC_DEBOUNCE_SECONDS", "0.05")
    monkeypatch.delenv("GOOGLE_SHEETS_CREDENTIALS_PATH", raising=False)
    monkeypatch.delenv("GOOGLE_SHEETS_SPREADSHEET_ID", raising=False)
    get_settings.cache_clear()
    yield tmp_path
    get_settings.cache_clear()


class TestCreateSession:
    """Tests for the session factory."""

    def test_offline_session(self, offline_env):
        session = create_session(use_remote=False)
        assert isinstance(session._remote_store, InMemoryRecordStore)
        assert isinstance(session._local_store, LocalFileRecordStore)
        assert session.engine is None

    def test_missing_sheets_config_falls_back(self, offline_env):
        session = create_session(use_remote=True)
        assert isinstance(session._remote_store, InMemoryRecordStore)

    @pytest.mark.asyncio
    async def test_guest_data_lands_in_data_dir(self, offline_env, record):
        session = create_session(use_remote=False)
        engine = await session.start_guest()
        engine.update_month("2024-03", record)

        await session.logout()

        assert (offline_env / "guest.json").exists()


class TestOpenSnapshotLink:
    """Tests for opening shared links."""

    @pytest.mark.asyncio
    async def test_valid_link(self, record):
        path = snapshot_path(encode_snapshot("2024-03", record))
        snapshot, message = await open_snapshot_link(path)
        assert snapshot.record == record
        assert message == "Shared snapshot for 2024-03"

    @pytest.mark.asyncio
    async def test_invalid_link_is_audited(self, audit_logger, audit_storage):
        snapshot, message = await open_snapshot_link("/snapshot/%%%garbage", audit_logger)
        assert snapshot is None
        assert "corrupted or invalid" in message
        assert audit_storage.event_types() == [AuditEventType.SNAPSHOT_REJECTED]
