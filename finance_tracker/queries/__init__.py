"""Read-only dashboard queries."""

from finance_tracker.queries.aggregator import Aggregator

__all__ = ["Aggregator"]
