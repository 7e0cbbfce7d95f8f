"""
Shared Ledger - Source Package

A small multi-user financial ledger: one owner and delegated managers
record income and expenses in a single shared ledger, watch live totals,
and produce date-filtered expense reports.

DESIGN PRINCIPLES:
1. One owner document, written only with optimistic version checks
2. The ledger is append/delete-only; totals are always recomputed
3. Every snapshot replaces the previous one; no merging
4. Sessions are explicit values, checked on every operation
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Shared Ledger Team"
