"""
CreditWorth - Source Package

A personal finance tracker that keeps one record per month (income,
credit scores, cards, loans, assets, bills) and derives credit-health
metrics from it.

DESIGN PRINCIPLES:
1. Edits are optimistic, persistence is debounced
2. Fail early, fail visibly
3. No silent overwrites of stored data
4. Every load and save must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "CreditWorth Team"
