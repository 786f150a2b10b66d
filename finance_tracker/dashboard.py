"""Streamlit app for the finance tracker.

Run with::

    streamlit run finance_tracker/dashboard.py

or use ``run_dashboard.py`` at the project root.
"""

from __future__ import annotations

import logging
import sys
from datetime import date
from pathlib import Path

import pandas as pd
import streamlit as st

# Add project root to path for imports when launched by file path
project_root = Path(__file__).parent.parent.resolve()
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from finance_tracker import service
from finance_tracker.budget import transactions_frame
from finance_tracker.categories import BUDGET_CATEGORIES
from finance_tracker.errors import FinanceError
from finance_tracker.formatting import format_currency, format_months, format_percent
from finance_tracker.models import ACCOUNT_TYPES, RECURRING_TYPES, FinanceSnapshot
from finance_tracker.storage import FinanceStore
from finance_tracker.visualization import (
    create_budget_bucket_chart,
    create_cash_flow_chart,
    create_category_budget_chart,
    create_goal_progress_chart,
    create_projection_chart,
)

logger = logging.getLogger(__name__)


def get_store() -> FinanceStore:
    if 'store' not in st.session_state:
        st.session_state.store = FinanceStore()
    return st.session_state.store


def render_overview(snapshot: FinanceSnapshot) -> None:
    st.subheader("Overview")
    summary = service.overview(snapshot)
    col1, col2, col3 = st.columns(3)
    col1.metric("Assets", format_currency(summary['assets']))
    col2.metric("Liabilities", format_currency(summary['liabilities']))
    col3.metric("Net worth", format_currency(summary['netWorth']))

    if not snapshot.accounts:
        st.info("No accounts yet. Add one below to get started.")
    else:
        rows = [
            {
                'Account': account.name,
                'Type': account.type,
                'Balance': format_currency(summary['accountBalances'].get(account.id, 0.0)),
            }
            for account in snapshot.accounts
        ]
        st.dataframe(pd.DataFrame(rows), use_container_width=True)

    with st.form("add_account"):
        st.markdown("**Add account**")
        name = st.text_input("Name")
        account_type = st.selectbox("Type", ACCOUNT_TYPES)
        starting_balance = st.number_input("Starting balance", value=0.0, step=50.0)
        if st.form_submit_button("Add account"):
            if not name.strip():
                st.warning("Please enter an account name.")
            else:
                get_store().add_account({'name': name.strip(), 'type': account_type, 'startingBalance': starting_balance})
                st.success(f"Account '{name}' added")
                st.rerun()


def render_budget(snapshot: FinanceSnapshot) -> None:
    st.subheader("Budget")
    month = st.date_input("Month", value=date.today(), key="budget_month")
    breakdown = service.budget_breakdown_for_month(snapshot, month)

    st.metric("Monthly income", format_currency(breakdown.total_income))
    columns = st.columns(3)
    for column, (name, bucket) in zip(columns, breakdown.buckets.items()):
        with column:
            st.metric(
                name.capitalize(),
                format_currency(bucket.spent),
                delta=f"{format_currency(bucket.remaining)} left",
                delta_color="normal" if bucket.remaining >= 0 else "inverse",
            )
            st.progress(min(bucket.percent_used / 100.0, 1.0))
            st.caption(f"{format_percent(bucket.percent_used)} of {format_currency(bucket.budgeted)}")
            if bucket.remaining < 0:
                st.warning(f"Over budget by {format_currency(-bucket.remaining)}")

    st.plotly_chart(create_budget_bucket_chart(breakdown), use_container_width=True)

    table = service.category_budgets_for_month(snapshot, month)
    st.plotly_chart(create_category_budget_chart(table), use_container_width=True)
    st.dataframe(table, use_container_width=True)

    with st.expander("Budget category mappings"):
        current = get_store().budget_mappings()
        for budget_category, sources in current['mappings'].items():
            if sources:
                st.markdown(f"**{budget_category}**: {', '.join(sources)}")
        if current['unmappedCategories']:
            st.caption(f"Without mappings: {', '.join(current['unmappedCategories'])}")
        with st.form("add_budget_mapping"):
            options = {category.name: category.id for category in snapshot.categories}
            budget_category = st.selectbox("Budget category", BUDGET_CATEGORIES)
            source = st.selectbox("Transaction category", list(options)) if options else st.text_input("Transaction category")
            if st.form_submit_button("Add mapping") and source:
                get_store().add_budget_mapping(budget_category, options.get(source, source))
                st.rerun()


def render_projections(snapshot: FinanceSnapshot) -> None:
    st.subheader("Projections")
    default_months = snapshot.projection_months or 36
    months = st.slider("Months ahead", min_value=1, max_value=120, value=min(default_months, 120))
    snapshots = service.projections_for(snapshot, months)
    names = {account.id: account.name for account in snapshot.accounts}

    if snapshots:
        last = snapshots[-1]
        st.metric(f"Balance on {last.date:%B %Y}", format_currency(last.total_balance))
    st.plotly_chart(create_projection_chart(snapshots, names), use_container_width=True)
    st.plotly_chart(create_cash_flow_chart(snapshots), use_container_width=True)


def render_goals(snapshot: FinanceSnapshot) -> None:
    st.subheader("Savings Goals")
    goals = service.goals_with_progress(snapshot)

    if goals:
        st.plotly_chart(create_goal_progress_chart(goals), use_container_width=True)
        for goal in goals:
            with st.expander(f"Goal: {goal['name']}"):
                col1, col2 = st.columns(2)
                with col1:
                    st.metric("Target Amount", format_currency(goal['targetAmount']))
                    st.metric("Current Amount", format_currency(goal['currentAmount']))
                with col2:
                    remaining = max(goal['targetAmount'] - goal['currentAmount'], 0.0)
                    st.metric("Remaining", format_currency(remaining))
                    st.progress(goal['progress'] / 100.0)
                    st.caption(f"Time to target: {format_months(goal['monthsToTarget'])}")
                if goal.get('spentDate'):
                    st.caption(f"Spent on {goal['spentDate']}")
                elif st.button("🛒 Mark as spent", key=f"spend_goal_{goal['id']}"):
                    get_store().spend_goal(goal['id'])
                    st.rerun()
                if st.button("🗑️ Delete Goal", key=f"delete_goal_{goal['id']}"):
                    get_store().delete_goal(goal['id'])
                    st.rerun()
    else:
        st.info("No savings goals yet.")

    account_options = {account.name: account.id for account in snapshot.accounts}
    with st.form("add_goal"):
        st.markdown("**Create new goal**")
        name = st.text_input("Goal name")
        target = st.number_input("Target amount", min_value=0.0, step=100.0)
        contribution = st.number_input("Monthly contribution", min_value=0.0, step=25.0)
        deadline = st.date_input("Deadline", value=None)
        from_name = st.selectbox("Transfer from", [""] + list(account_options))
        to_name = st.selectbox("Transfer to", [""] + list(account_options))
        if st.form_submit_button("Add goal"):
            if not name.strip() or target <= 0:
                st.warning("A goal needs a name and a positive target.")
            else:
                get_store().add_goal({
                    'name': name.strip(),
                    'targetAmount': target,
                    'monthlyContribution': contribution,
                    'deadline': deadline.isoformat() if deadline else None,
                    'fromAccountId': account_options.get(from_name),
                    'toAccountId': account_options.get(to_name),
                })
                st.success("Goal added successfully!")
                st.rerun()


def render_transactions(snapshot: FinanceSnapshot) -> None:
    st.subheader("Transactions")
    if not snapshot.accounts:
        st.info("Add an account before recording transactions.")
        return

    transactions = service.resolve_category_names(snapshot.transactions, snapshot.categories, snapshot.budget_mappings)
    df = transactions_frame(transactions)
    if df.empty:
        st.info("No transactions recorded.")
    else:
        names = {account.id: account.name for account in snapshot.accounts}
        df['Account'] = df['Account'].map(lambda value: names.get(value, value))
        st.dataframe(df.drop(columns=['id']), use_container_width=True)

    col1, col2 = st.columns(2)
    if col1.button("🔍 Preview auto-categorization"):
        preview = get_store().auto_categorize_transactions(dry_run=True)
        st.caption(f"{preview['categorizedCount']} uncategorized transactions would be categorized")
        if preview['results']:
            st.dataframe(pd.DataFrame(preview['results']), use_container_width=True)
    if col2.button("🏷️ Auto-categorize"):
        summary = get_store().auto_categorize_transactions()
        st.success(f"Categorized {summary['categorizedCount']} transactions")
        st.rerun()

    account_options = {account.name: account.id for account in snapshot.accounts}
    with st.form("add_transaction"):
        st.markdown("**Add transaction**")
        description = st.text_input("Description")
        amount = st.number_input("Amount (negative for expenses)", value=0.0, step=10.0)
        category = st.selectbox("Category", BUDGET_CATEGORIES)
        account_name = st.selectbox("Account", list(account_options))
        when = st.date_input("Date", value=date.today())
        recurring = st.checkbox("Recurring")
        recurring_type = st.selectbox("Repeats", RECURRING_TYPES)
        if st.form_submit_button("Add transaction"):
            get_store().add_transaction({
                'description': description.strip(),
                'amount': amount,
                'category': category,
                'accountId': account_options[account_name],
                'date': when.isoformat(),
                'isRecurring': recurring,
                'recurringType': recurring_type if recurring else None,
            })
            st.success("Transaction added")
            st.rerun()


def main() -> None:
    """Render the finance tracker app."""
    st.set_page_config(page_title="Finance Tracker", page_icon="💶", layout="wide")
    st.title("💶 Finance Tracker")

    try:
        snapshot = get_store().load_snapshot()
    except FinanceError as e:
        logger.error("Could not load finance data: %s", e)
        st.error(f"Could not load your data: {e}")
        return

    tabs = st.tabs(["📊 Overview", "📋 Budget", "📈 Projections", "🎯 Savings Goals", "✏️ Transactions"])
    pages = (render_overview, render_budget, render_projections, render_goals, render_transactions)
    for tab, render in zip(tabs, pages):
        with tab:
            try:
                render(snapshot)
            except FinanceError as e:
                logger.error("%s failed: %s", render.__name__, e)
                st.error(str(e))


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    main()
