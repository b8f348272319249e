"""
Finance Tracker - Source Package

A personal finance tracker: income/expense transactions, budgets that
follow the expenses recorded against them, spending summaries and
currency conversion.

DESIGN PRINCIPLES:
1. Budgets are derived from transactions, never edited behind their back
2. Every mutation goes to the remote store first, then to the local cache
3. Conversion is best-effort and never fails a write
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Finance Tracker Team"
