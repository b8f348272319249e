"""
Streamlit Frontend for the Finance Tracker

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Every amount is shown with its currency
3. Clear error messages in simple language
4. Visual feedback for all operations

The pages only call the tracker's ledgers and aggregator; no page
writes to storage directly.
"""

import asyncio
from datetime import date, timedelta
from decimal import Decimal

import streamlit as st

from finance_tracker.config import validate_all_settings
from finance_tracker.models.currency import CURRENCIES, format_currency
from finance_tracker.models.ledger import (
    EXPENSE_CATEGORIES,
    INCOME_CATEGORIES,
    BudgetPeriod,
    TransactionType,
    period_date_range,
)
from finance_tracker.orchestrator import FinanceTracker, create_app_components
from finance_tracker.services.storage import StorageError
from finance_tracker.validation import LedgerValidationError


# Page configuration
st.set_page_config(
    page_title="Finance Tracker",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .success-box {
        padding: 20px;
        background-color: #d4edda;
        border-radius: 10px;
        border-left: 5px solid #28a745;
        margin: 10px 0;
    }
    .warning-box {
        padding: 20px;
        background-color: #fff3cd;
        border-radius: 10px;
        border-left: 5px solid #ffc107;
        margin: 10px 0;
    }
    .big-number {
        font-size: 2.2em;
        font-weight: bold;
        color: #2c3e50;
    }
</style>
""", unsafe_allow_html=True)

CURRENCY_CODES = [c.code for c in CURRENCIES]


@st.cache_resource
def get_event_loop() -> asyncio.AbstractEventLoop:
    # One loop for the whole session; the repositories' locks live on it
    return asyncio.new_event_loop()


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = get_event_loop()
    asyncio.set_event_loop(loop)
    return loop.run_until_complete(coro)


@st.cache_resource
def get_components():
    """Get or create application components (cached)."""
    try:
        tracker, client = create_app_components(use_storage=True)
    except Exception as e:
        st.error(f"Failed to initialize: {e}")
        tracker, client = create_app_components(use_storage=False)
    run_async(tracker.load())
    return tracker, client


def show_reconciliation_warning(tracker: FinanceTracker) -> None:
    result = tracker.transactions.last_reconciliation
    if result and result.failures:
        st.markdown(f"""
        <div class="warning-box">
            <h4>⚠️ Saved, but {len(result.failures)} budget(s) could not be updated</h4>
            <p>Use "Reload from storage" on the Budgets page and check the amounts.</p>
        </div>
        """, unsafe_allow_html=True)


def main():
    """Main application entry point."""
    tracker, _ = get_components()

    st.sidebar.title("💰 Finance Tracker")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📊 Dashboard", "💸 Transactions", "🎯 Budgets", "💱 Converter", "⚙️ Settings"],
        index=0,
    )

    st.sidebar.markdown("---")
    st.sidebar.markdown(f"**Default currency:** {tracker.preferences.default_currency}")

    if page == "📊 Dashboard":
        render_dashboard_page(tracker)
    elif page == "💸 Transactions":
        render_transactions_page(tracker)
    elif page == "🎯 Budgets":
        render_budgets_page(tracker)
    elif page == "💱 Converter":
        render_converter_page(tracker)
    elif page == "⚙️ Settings":
        render_settings_page(tracker)


def render_dashboard_page(tracker: FinanceTracker):
    """Render balance, period totals and budget progress."""
    st.title("📊 Dashboard")
    currency = tracker.preferences.default_currency

    balance = run_async(tracker.aggregator.balance())
    st.markdown(
        f'<p>Balance</p><p class="big-number">{format_currency(balance, currency)}</p>',
        unsafe_allow_html=True,
    )

    tab_week, tab_month, tab_year = st.tabs(["This week", "This month", "This year"])
    for tab, period in (
        (tab_week, BudgetPeriod.WEEKLY),
        (tab_month, BudgetPeriod.MONTHLY),
        (tab_year, BudgetPeriod.YEARLY),
    ):
        with tab:
            start, end = period_date_range(period)
            totals = run_async(tracker.aggregator.totals(start, end))

            col1, col2, col3 = st.columns(3)
            col1.metric("Income", format_currency(totals.income, currency))
            col2.metric("Expenses", format_currency(totals.expenses, currency))
            col3.metric("Net", format_currency(totals.net, currency))

            if totals.spending_by_category:
                st.markdown("#### Spending by category")
                st.bar_chart({k: float(v) for k, v in totals.spending_by_category.items()})
            else:
                st.info("No expenses in this period yet.")

    st.markdown("### 🎯 Budgets")
    budgets = tracker.budgets.list_budgets()
    if not budgets:
        st.info("No budgets yet. Create one on the Budgets page.")
    for budget in budgets:
        label = (
            f"{budget.name}: {format_currency(budget.spent, budget.currency)}"
            f" of {format_currency(budget.amount, budget.currency)}"
        )
        if budget.is_over:
            label += " (over budget)"
        st.progress(min(budget.progress, 1.0), text=label)


def render_transactions_page(tracker: FinanceTracker):
    """Render the transaction form and list."""
    st.title("💸 Transactions")
    currency = tracker.preferences.default_currency

    with st.form("new_transaction", clear_on_submit=True):
        col1, col2 = st.columns(2)
        with col1:
            txn_type = st.radio(
                "Type",
                options=list(TransactionType),
                format_func=lambda t: t.value.title(),
                horizontal=True,
            )
            amount = st.number_input("Amount", min_value=0.0, step=0.01, format="%.2f")
            txn_currency = st.selectbox(
                "Currency",
                options=CURRENCY_CODES,
                index=CURRENCY_CODES.index(currency) if currency in CURRENCY_CODES else 0,
            )
        with col2:
            category = st.selectbox(
                "Category",
                options=EXPENSE_CATEGORIES + [c for c in INCOME_CATEGORIES if c not in EXPENSE_CATEGORIES],
            )
            txn_date = st.date_input("Date", value=date.today())
            description = st.text_input("Description")
            tags = st.text_input("Tags", help="Comma separated")

        if st.form_submit_button("💾 Save Transaction", type="primary"):
            try:
                run_async(tracker.transactions.create({
                    "type": txn_type.value,
                    "amount": Decimal(str(amount)),
                    "currency": txn_currency,
                    "category": category,
                    "date": txn_date,
                    "description": description or None,
                    "tags": [t.strip() for t in tags.split(",") if t.strip()],
                }))
                st.success("✅ Transaction saved")
                show_reconciliation_warning(tracker)
            except LedgerValidationError as e:
                st.error(tracker.validator.get_user_friendly_summary(e.result))
            except StorageError as e:
                st.error(f"❌ Could not save: {e}")

    st.markdown("---")
    col1, col2 = st.columns(2)
    with col1:
        start = st.date_input("From", value=date.today() - timedelta(days=30))
    with col2:
        end = st.date_input("To", value=date.today())

    transactions = tracker.transactions.list_transactions(start, end)
    if not transactions:
        st.info("📋 No transactions in this range.")
        return

    for txn in transactions:
        sign = "+" if txn.type == TransactionType.INCOME else "-"
        with st.expander(
            f"{txn.date.isoformat()}  {sign}{format_currency(txn.amount, txn.currency)}  {txn.category}"
        ):
            if txn.description:
                st.markdown(txn.description)
            if txn.original_amount is not None:
                st.caption(f"Entered as {format_currency(txn.original_amount, txn.original_currency)}")
            if txn.tags:
                st.caption(" ".join(f"#{t}" for t in txn.tags))

            new_amount = st.number_input(
                "Amount",
                value=float(txn.amount),
                min_value=0.0,
                step=0.01,
                key=f"amount_{txn.id}",
            )
            col1, col2 = st.columns(2)
            if col1.button("✏️ Update amount", key=f"update_{txn.id}"):
                try:
                    run_async(tracker.transactions.update(txn.id, {"amount": Decimal(str(new_amount))}))
                    show_reconciliation_warning(tracker)
                    st.rerun()
                except (LedgerValidationError, StorageError) as e:
                    st.error(f"❌ {e}")
            if col2.button("🗑️ Delete", key=f"delete_{txn.id}"):
                try:
                    run_async(tracker.transactions.delete(txn.id))
                    st.rerun()
                except StorageError as e:
                    st.error(f"❌ Could not delete: {e}")

def render_budgets_page(tracker: FinanceTracker):
    """Render the budget form and list."""
    st.title("🎯 Budgets")
    currency = tracker.preferences.default_currency

    if st.button("🔄 Reload from storage"):
        run_async(tracker.load())
        st.success("Reloaded")

    with st.form("new_budget", clear_on_submit=True):
        name = st.text_input("Name")
        col1, col2 = st.columns(2)
        with col1:
            amount = st.number_input("Amount", min_value=0.0, step=1.0, format="%.2f")
            category = st.selectbox("Category", options=EXPENSE_CATEGORIES)
            budget_currency = st.selectbox(
                "Currency",
                options=CURRENCY_CODES,
                index=CURRENCY_CODES.index(currency) if currency in CURRENCY_CODES else 0,
            )
        with col2:
            period = st.selectbox(
                "Period",
                options=list(BudgetPeriod),
                index=list(BudgetPeriod).index(BudgetPeriod.MONTHLY),
                format_func=lambda p: p.value.title(),
            )
            custom_dates = st.checkbox("Custom dates")
            start = st.date_input("Start", value=date.today())
            end = st.date_input("End", value=date.today())

        if st.form_submit_button("💾 Save Budget", type="primary"):
            data = {
                "name": name,
                "amount": Decimal(str(amount)),
                "category": category,
                "currency": budget_currency,
                "period": period.value,
            }
            if custom_dates:
                data["start_date"] = start
                data["end_date"] = end
            try:
                run_async(tracker.budgets.create(data))
                st.success("✅ Budget saved")
            except LedgerValidationError as e:
                st.error(tracker.validator.get_user_friendly_summary(e.result))
            except StorageError as e:
                st.error(f"❌ Could not save: {e}")

    st.markdown("---")
    for budget in tracker.budgets.list_budgets():
        st.markdown(f"**{budget.name}** · {budget.category} · {budget.start_date} to {budget.end_date}")
        st.progress(
            min(budget.progress, 1.0),
            text=(
                f"{format_currency(budget.spent, budget.currency)} spent, "
                f"{format_currency(budget.remaining, budget.currency)} left"
            ),
        )
        if st.button("🗑️ Delete", key=f"delete_budget_{budget.id}"):
            try:
                run_async(tracker.budgets.delete(budget.id))
                st.rerun()
            except StorageError as e:
                st.error(f"❌ Could not delete: {e}")


def render_converter_page(tracker: FinanceTracker):
    """Render the currency converter and its history."""
    st.title("💱 Currency Converter")

    col1, col2, col3 = st.columns(3)
    with col1:
        amount = st.number_input("Amount", min_value=0.0, value=1.0, step=1.0)
    with col2:
        from_code = st.selectbox("From", options=CURRENCY_CODES, index=0)
    with col3:
        to_code = st.selectbox("To", options=CURRENCY_CODES, index=1)

    if st.button("🔁 Convert", type="primary"):
        record = run_async(tracker.convert(Decimal(str(amount)), from_code, to_code))
        st.markdown(f"""
        <div class="success-box">
            <p class="big-number">{format_currency(record.to_amount, record.to_currency)}</p>
            <p>{format_currency(record.from_amount, record.from_currency)} in {record.to_currency}</p>
        </div>
        """, unsafe_allow_html=True)

    st.markdown("### Recent conversions")
    history = tracker.history.entries()
    if not history:
        st.info("No conversions yet.")
        return
    for record in history:
        st.markdown(
            f"- {format_currency(record.from_amount, record.from_currency)} → "
            f"{format_currency(record.to_amount, record.to_currency)} "
            f"({record.date.strftime('%d %b %Y %H:%M')})"
        )
    if st.button("Clear history"):
        tracker.history.clear()
        st.rerun()


def render_settings_page(tracker: FinanceTracker):
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Default currency")
    current = tracker.preferences.default_currency
    choice = st.selectbox(
        "Used for new records and for the dashboard",
        options=CURRENCY_CODES,
        index=CURRENCY_CODES.index(current) if current in CURRENCY_CODES else 0,
    )
    if choice != current and st.button("💾 Save default currency"):
        run_async(tracker.set_default_currency(choice))
        st.success(f"Default currency is now {choice}")
        st.rerun()

    st.markdown("---")
    st.markdown("### Connection Status")

    status = validate_all_settings()

    services = [
        ("Google Sheets (Storage)", "google_sheets"),
        ("Exchange rates", "rates"),
        ("Local settings file", "local_store"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file. "
        "See `.env.example` for the available variables."
    )


if __name__ == "__main__":
    main()
