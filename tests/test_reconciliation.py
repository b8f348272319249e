"""
Tests for budget reconciliation.

The invariant under test: after any sequence of successful transaction
writes, each budget's spent equals the sum of its matching expenses
(converted to the budget currency, floored at zero).
"""

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from conftest import audit_types, expense, income
from finance_tracker.models.audit import AuditEventType


async def spent(tracker, budget_id) -> Decimal:
    return tracker.budgets.cached(budget_id).spent


class TestCreateAndDelete:
    """A new expense is added, a deleted one taken back out."""

    @pytest.mark.asyncio
    async def test_expense_added_then_removed(self, tracker, food_budget_data):
        """Spent goes 0 -> 100 -> 0 over create and delete."""
        budget_id = await tracker.budgets.create(food_budget_data)
        txn_id = await tracker.transactions.create(expense("100"))

        assert await spent(tracker, budget_id) == Decimal("100")
        assert (await tracker.budgets.get(budget_id)).spent == Decimal("100")

        await tracker.transactions.delete(txn_id)
        assert await spent(tracker, budget_id) == Decimal("0")

    @pytest.mark.asyncio
    async def test_income_never_touches_budgets(self, tracker, store, food_budget_data):
        """Income in a budget's category is ignored."""
        budget_id = await tracker.budgets.create(food_budget_data)
        writes_before = len(store.writes("budgets"))

        await tracker.transactions.create(income("300", category="Food & Dining", day=date(2024, 1, 10)))

        assert await spent(tracker, budget_id) == Decimal("0")
        assert len(store.writes("budgets")) == writes_before
        assert tracker.transactions.last_reconciliation.skipped_reason is not None

    @pytest.mark.asyncio
    async def test_non_matching_category_or_date(self, tracker, food_budget_data):
        """Other categories and dates outside the range do not count."""
        budget_id = await tracker.budgets.create(food_budget_data)

        await tracker.transactions.create(expense("40", category="Travel"))
        await tracker.transactions.create(expense("60", day=date(2024, 2, 1)))
        await tracker.transactions.create(expense("70", day=date(2023, 12, 31)))

        assert await spent(tracker, budget_id) == Decimal("0")

    @pytest.mark.asyncio
    async def test_range_bounds_are_inclusive(self, tracker, food_budget_data):
        """Expenses on the first and last day both count."""
        budget_id = await tracker.budgets.create(food_budget_data)

        await tracker.transactions.create(expense("10", day=date(2024, 1, 1)))
        await tracker.transactions.create(expense("20", day=date(2024, 1, 31)))

        assert await spent(tracker, budget_id) == Decimal("30")

    @pytest.mark.asyncio
    async def test_every_matching_budget_is_adjusted(self, tracker, food_budget_data):
        """Overlapping budgets for the same category all move."""
        monthly = await tracker.budgets.create(food_budget_data)
        yearly = await tracker.budgets.create({
            **food_budget_data,
            "name": "Food this year",
            "amount": Decimal("6000"),
            "period": "yearly",
            "start_date": date(2024, 1, 1),
            "end_date": date(2024, 12, 31),
        })

        await tracker.transactions.create(expense("25"))

        assert await spent(tracker, monthly) == Decimal("25")
        assert await spent(tracker, yearly) == Decimal("25")

    @pytest.mark.asyncio
    async def test_amount_converted_to_budget_currency(self, tracker, food_budget_data):
        """A USD expense lands in a EUR budget at the USD->EUR rate."""
        budget_id = await tracker.budgets.create({**food_budget_data, "currency": "EUR"})

        await tracker.transactions.create(expense("100"))

        assert await spent(tracker, budget_id) == Decimal("91")

    @pytest.mark.asyncio
    async def test_overspend_is_allowed(self, tracker, food_budget_data):
        """Spent may exceed the budget amount."""
        budget_id = await tracker.budgets.create(food_budget_data)

        await tracker.transactions.create(expense("650"))

        budget = tracker.budgets.cached(budget_id)
        assert budget.spent == Decimal("650")
        assert budget.is_over
        assert budget.remaining == Decimal("-150")

    @pytest.mark.asyncio
    async def test_reversal_clamps_at_zero(self, tracker, food_budget_data):
        """Deleting more than is recorded leaves spent at 0, not negative."""
        budget_id = await tracker.budgets.create(food_budget_data)
        txn_id = await tracker.transactions.create(expense("100"))
        await tracker.budgets.update(budget_id, {"spent": Decimal("40")})

        await tracker.transactions.delete(txn_id)

        assert await spent(tracker, budget_id) == Decimal("0")

    @pytest.mark.asyncio
    async def test_concurrent_creates_do_not_lose_updates(self, tracker, food_budget_data):
        """Two expenses saved at once both end up in spent."""
        budget_id = await tracker.budgets.create(food_budget_data)

        await asyncio.gather(
            tracker.transactions.create(expense("100")),
            tracker.transactions.create(expense("50")),
        )

        assert await spent(tracker, budget_id) == Decimal("150")


class TestUpdate:
    """Edits move a transaction's contribution between budgets."""

    @pytest.mark.asyncio
    async def test_amount_change(self, tracker, food_budget_data):
        budget_id = await tracker.budgets.create(food_budget_data)
        txn_id = await tracker.transactions.create(expense("100"))

        await tracker.transactions.update(txn_id, {"amount": Decimal("150")})

        assert await spent(tracker, budget_id) == Decimal("150")

    @pytest.mark.asyncio
    async def test_category_change_moves_between_budgets(self, tracker, food_budget_data):
        """Food 50 re-categorised as Transportation."""
        food = await tracker.budgets.create(food_budget_data)
        transport = await tracker.budgets.create({
            **food_budget_data,
            "name": "Commute",
            "category": "Transportation",
        })
        txn_id = await tracker.transactions.create(expense("50"))

        await tracker.transactions.update(txn_id, {"category": "Transportation"})

        assert await spent(tracker, food) == Decimal("0")
        assert await spent(tracker, transport) == Decimal("50")

    @pytest.mark.asyncio
    async def test_date_moved_out_of_range(self, tracker, food_budget_data):
        budget_id = await tracker.budgets.create(food_budget_data)
        txn_id = await tracker.transactions.create(expense("80"))

        await tracker.transactions.update(txn_id, {"date": date(2024, 2, 10)})

        assert await spent(tracker, budget_id) == Decimal("0")

    @pytest.mark.asyncio
    async def test_expense_turned_into_income(self, tracker, food_budget_data):
        budget_id = await tracker.budgets.create(food_budget_data)
        txn_id = await tracker.transactions.create(expense("80"))

        await tracker.transactions.update(txn_id, {"type": "income"})

        assert await spent(tracker, budget_id) == Decimal("0")

    @pytest.mark.asyncio
    async def test_income_turned_into_expense(self, tracker, food_budget_data):
        budget_id = await tracker.budgets.create(food_budget_data)
        txn_id = await tracker.transactions.create(
            income("80", category="Food & Dining", day=date(2024, 1, 5))
        )

        await tracker.transactions.update(txn_id, {"type": "expense"})

        assert await spent(tracker, budget_id) == Decimal("80")

    @pytest.mark.asyncio
    async def test_currency_change_is_reconverted(self, tracker, food_budget_data):
        """100 USD edited to 100 EUR counts as about 109.89 USD."""
        budget_id = await tracker.budgets.create(food_budget_data)
        txn_id = await tracker.transactions.create(expense("100"))

        await tracker.transactions.update(txn_id, {"currency": "EUR"})

        assert abs(await spent(tracker, budget_id) - Decimal("109.89")) < Decimal("0.01")

    @pytest.mark.asyncio
    async def test_metadata_only_edit_changes_nothing(self, tracker, store, food_budget_data):
        """Description, tags and event link are not budget fields."""
        budget_id = await tracker.budgets.create(food_budget_data)
        txn_id = await tracker.transactions.create(expense("100"))
        writes_before = len(store.writes("budgets"))

        await tracker.transactions.update(txn_id, {
            "description": "Weekly shop",
            "tags": ["groceries"],
            "event_id": "holiday-2024",
        })

        assert await spent(tracker, budget_id) == Decimal("100")
        assert len(store.writes("budgets")) == writes_before
        assert tracker.transactions.last_reconciliation.skipped_reason == "no budget-relevant field changed"

    @pytest.mark.asyncio
    async def test_reconciles_against_remote_record(self, tracker, store, food_budget_data):
        """The remote copy, not the local index, is the "before" value."""
        budget_id = await tracker.budgets.create(food_budget_data)
        txn_id = await tracker.transactions.create(expense("100"))

        # Another session bumped the amount to 120 and reconciled it
        await store.patch("transactions", txn_id, {"amount": "120"})
        await tracker.budgets.update(budget_id, {"spent": Decimal("120")})

        await tracker.transactions.update(txn_id, {"amount": Decimal("150")})

        assert await spent(tracker, budget_id) == Decimal("150")

    @pytest.mark.asyncio
    async def test_missing_remotely_skips_reconciliation(self, tracker, store, food_budget_data):
        """A record known only locally is written back without touching budgets."""
        budget_id = await tracker.budgets.create(food_budget_data)
        txn_id = await tracker.transactions.create(expense("100"))
        await store.delete("transactions", txn_id)

        updated = await tracker.transactions.update(txn_id, {"amount": Decimal("150")})

        assert updated.amount == Decimal("150")
        assert await store.get("transactions", txn_id) is not None
        assert await spent(tracker, budget_id) == Decimal("100")


class TestFailures:
    """A failed budget write never fails the transaction write."""

    @pytest.mark.asyncio
    async def test_budget_write_failure_is_reported_not_raised(
        self, tracker, store, audit_storage, food_budget_data
    ):
        budget_id = await tracker.budgets.create(food_budget_data)
        store.failing.add("budgets")

        txn_id = await tracker.transactions.create(expense("100"))

        assert (await tracker.transactions.get(txn_id)).amount == Decimal("100")
        assert await spent(tracker, budget_id) == Decimal("0")

        result = tracker.transactions.last_reconciliation
        assert len(result.failures) == 1
        assert result.failures[0].budget_id == budget_id
        assert result.budgets_adjusted == 0
        assert AuditEventType.RECONCILIATION_FAILED in await audit_types(audit_storage)

    @pytest.mark.asyncio
    async def test_other_budgets_still_adjusted(self, tracker, food_budget_data, monkeypatch):
        """One failing budget does not stop the loop."""
        first = await tracker.budgets.create(food_budget_data)
        second = await tracker.budgets.create({**food_budget_data, "name": "Second"})

        original_update = tracker.budgets.update

        async def update(budget_id, data, correlation_id=None):
            if budget_id == first:
                raise RuntimeError("boom")
            return await original_update(budget_id, data, correlation_id=correlation_id)

        monkeypatch.setattr(tracker.budgets, "update", update)

        await tracker.transactions.create(expense("30"))

        assert await spent(tracker, first) == Decimal("0")
        assert await spent(tracker, second) == Decimal("30")
        assert tracker.transactions.last_reconciliation.budgets_adjusted == 1

    @pytest.mark.asyncio
    async def test_adjustments_are_audited(self, tracker, audit_storage, food_budget_data):
        budget_id = await tracker.budgets.create(food_budget_data)
        await tracker.transactions.create(expense("100"))

        events = await audit_storage.get_events_by_entity("budget", budget_id)
        adjusted = [e for e in events if e.event_type == AuditEventType.BUDGET_SPENT_ADJUSTED]
        assert len(adjusted) == 1
        assert adjusted[0].details["new_spent"] == "100"


class TestBalanceScenario:
    """Income 500 and expense 200 leave a balance of 300."""

    @pytest.mark.asyncio
    async def test_balance(self, tracker):
        await tracker.transactions.create(income("500"))
        await tracker.transactions.create(expense("200"))

        assert await tracker.aggregator.balance() == Decimal("300")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
