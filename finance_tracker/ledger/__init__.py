"""Transaction and budget ledgers, and the engine that keeps them in step."""

from finance_tracker.ledger.budgets import BudgetLedger
from finance_tracker.ledger.reconciliation import ReconciliationEngine
from finance_tracker.ledger.transactions import TransactionLedger

__all__ = [
    "BudgetLedger",
    "ReconciliationEngine",
    "TransactionLedger",
]
