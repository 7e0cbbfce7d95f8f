"""Expense report package."""

from shared_ledger.reports.selector import day_bounds, local_today, select

__all__ = ["day_bounds", "local_today", "select"]
