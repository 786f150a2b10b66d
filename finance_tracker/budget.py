"""Budget calculation utilities for the 50/30/20 breakdown.

This module turns a month of transactions, the configured recurring
expenses and the savings goals into a needs/wants/savings breakdown, and
provides the per-category budget table shown on the budget page.  Every
function is a pure computation over its arguments.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

import pandas as pd

from . import categories as cat
from .errors import SnapshotError
from .models import (
    BudgetBreakdown,
    BudgetBucket,
    BudgetItem,
    IncomeSource,
    RecurringExpense,
    SavingsGoal,
    Transaction,
)
from .savings import contributions_in_month

logger = logging.getLogger(__name__)

FRAME_COLUMNS = [
    'id',
    'Description',
    'Amount',
    'Type',
    'Category',
    'Account',
    'Transaction Date',
    'Recurring',
    'Recurring Type',
    'Savings Goal',
]

SMALL_EXPENSE_LIMIT = 200.0
AVERAGE_MONTHS_BACK = 3


def transactions_frame(transactions: Iterable[Transaction]) -> pd.DataFrame:
    """Build a DataFrame with one row per transaction.

    Example:
        >>> df = transactions_frame(snapshot.transactions)
        >>> df[['Description', 'Amount', 'Transaction Date']].head()
    """
    rows = [
        {
            'id': t.id,
            'Description': t.description,
            'Amount': t.amount,
            'Type': t.type,
            'Category': t.category,
            'Account': t.account_id,
            'Transaction Date': t.date,
            'Recurring': t.is_recurring,
            'Recurring Type': t.recurring_type,
            'Savings Goal': t.savings_goal_id,
        }
        for t in transactions
    ]
    df = pd.DataFrame(rows, columns=FRAME_COLUMNS)
    df['Transaction Date'] = pd.to_datetime(df['Transaction Date'])
    df['Amount'] = pd.to_numeric(df['Amount'], errors='coerce').fillna(0.0)
    return df


def month_expense_rows(df: pd.DataFrame, month: date) -> pd.DataFrame:
    """Expense rows whose date falls in the calendar month of ``month``."""
    if df.empty:
        return df.copy()
    period = pd.Period(year=month.year, month=month.month, freq='M')
    mask = (df['Type'] == 'expense') & (df['Transaction Date'].dt.to_period('M') == period)
    expenses = df[mask].copy()
    expenses['AbsAmount'] = expenses['Amount'].abs()
    return expenses


def month_label(month: date) -> str:
    return f"{month.year:04d}-{month.month:02d}"


def month_start(month: date) -> date:
    return month.replace(day=1)


def calculate_budget_targets(
    total_income: float,
    custom_percentages: Optional[Mapping[str, float]] = None,
) -> Dict[str, float]:
    """Split income into needs/wants/savings targets.

    Args:
        total_income: Monthly income
        custom_percentages: Optional mapping with ``needs``, ``wants`` and
            ``savings`` fractions; defaults to 50/30/20

    Returns:
        Dictionary mapping bucket names to budgeted amounts

    Raises:
        SnapshotError: If a custom percentage is missing or not numeric

    Example:
        >>> calculate_budget_targets(3000)
        {'needs': 1500.0, 'wants': 900.0, 'savings': 600.0}
    """
    percentages = dict(cat.BUDGET_PERCENTAGES)
    if custom_percentages:
        for bucket in cat.BUDGET_TYPES:
            if bucket not in custom_percentages:
                raise SnapshotError(f"budget percentages: missing '{bucket}'")
            try:
                percentages[bucket] = float(custom_percentages[bucket])
            except (TypeError, ValueError) as exc:
                raise SnapshotError(f"budget percentages: '{bucket}' must be a number") from exc
    return {bucket: float(total_income) * percentages[bucket] for bucket in cat.BUDGET_TYPES}


def is_active_in_month(item: RecurringExpense | IncomeSource, month_end: date) -> bool:
    """Check whether a configured item is active at the end of the month."""
    if not item.is_active:
        return False
    if item.start_date and item.start_date > month_end:
        return False
    if item.end_date and item.end_date < month_end:
        return False
    return True


def expense_budget_type(expense: RecurringExpense) -> str:
    """Classify a configured expense into needs/wants/savings.

    An explicit ``budget_type`` wins, grocery-like names are forced into
    wants, everything else follows its category.
    """
    if expense.budget_type in cat.BUDGET_TYPES:
        return expense.budget_type
    if cat.is_grocery_item(expense.name):
        return cat.WANTS
    return cat.budget_type_for(expense.category)


def _matches_description(name: str, descriptions: Sequence[str]) -> bool:
    needle = name.lower().strip()
    if not needle:
        return False
    for description in descriptions:
        text = description.lower().strip()
        if text and (needle in text or text in needle):
            return True
    return False


def calculate_budget_breakdown(
    total_income: float,
    configured_expenses: Iterable[RecurringExpense],
    transactions: Iterable[Transaction],
    savings_goals: Iterable[SavingsGoal],
    month_end: date,
    custom_percentages: Optional[Mapping[str, float]] = None,
) -> BudgetBreakdown:
    """Calculate the 50/30/20 breakdown for the month ending on ``month_end``.

    Actual expense transactions of the month are counted in the bucket of
    their category.  Active configured expenses add their monthly
    equivalent unless a transaction of the month already represents them
    (matched on description), in which case only the actual amount counts.
    Contributions to active savings goals made in the month are added to
    the savings bucket.

    Args:
        total_income: Monthly income, must not be negative
        configured_expenses: Configured recurring expenses
        transactions: Transactions with category names already resolved
        savings_goals: Savings goals
        month_end: Last calendar day of the target month
        custom_percentages: Optional override of the 50/30/20 split

    Returns:
        BudgetBreakdown with budgeted, spent and items per bucket

    Raises:
        SnapshotError: If ``total_income`` is negative or the custom
            percentages are malformed
    """
    if total_income is None or total_income < 0:
        raise SnapshotError(f"total income must be a non-negative number, got {total_income!r}")

    targets = calculate_budget_targets(total_income, custom_percentages)
    buckets = {bucket: BudgetBucket(budgeted=targets[bucket]) for bucket in cat.BUDGET_TYPES}

    transactions = list(transactions)
    expenses = month_expense_rows(transactions_frame(transactions), month_end)

    if not expenses.empty:
        expenses['Bucket'] = expenses['Category'].map(cat.budget_type_for)
        for _, row in expenses.iterrows():
            bucket = buckets[row['Bucket']]
            bucket.items.append(BudgetItem(
                name=row['Description'],
                amount=float(row['AbsAmount']),
                category=row['Category'] or 'unknown',
                source='transaction',
            ))
            bucket.spent += float(row['AbsAmount'])

    descriptions = expenses['Description'].tolist() if not expenses.empty else []
    for expense in configured_expenses:
        if not is_active_in_month(expense, month_end):
            continue
        if _matches_description(expense.name, descriptions):
            logger.debug("Configured expense %r already paid in %s", expense.name, month_label(month_end))
            continue
        monthly = cat.convert_to_monthly(expense.amount, expense.frequency)
        bucket = buckets[expense_budget_type(expense)]
        bucket.items.append(BudgetItem(
            name=expense.name,
            amount=monthly,
            category=expense.category,
            source='configured',
        ))
        bucket.spent += monthly

    goals = list(savings_goals)
    names = {goal.id: goal.name for goal in goals}
    for goal_id, amount in contributions_in_month(goals, transactions, month_end).items():
        buckets[cat.SAVINGS].items.append(BudgetItem(
            name=names.get(goal_id, goal_id),
            amount=amount,
            category='savings goal',
            source='goal',
        ))
        buckets[cat.SAVINGS].spent += amount

    return BudgetBreakdown(
        needs=buckets[cat.NEEDS],
        wants=buckets[cat.WANTS],
        savings=buckets[cat.SAVINGS],
        total_income=float(total_income),
        month=month_label(month_end),
    )


def _occurs_in_month(tx: Transaction, month_end: date) -> bool:
    if tx.recurring_end_date and tx.recurring_end_date < month_start(month_end):
        return False
    if tx.recurring_type == 'yearly':
        return tx.date.month == month_end.month
    return True


def monthly_income(
    income_sources: Iterable[IncomeSource],
    transactions: Iterable[Transaction],
    month_end: date,
) -> float:
    """Total expected income for the month ending on ``month_end``.

    Active configured income sources contribute their monthly equivalent.
    Recurring income transactions are added once per description (their
    average amount); yearly ones only in their own calendar month.
    """
    configured = sum(
        cat.convert_to_monthly(source.amount, source.frequency)
        for source in income_sources
        if is_active_in_month(source, month_end)
    )

    recurring: Dict[str, List[float]] = {}
    for tx in transactions:
        if not (tx.is_recurring and tx.is_income) or not _occurs_in_month(tx, month_end):
            continue
        recurring.setdefault(tx.description.lower().strip(), []).append(abs(tx.amount))
    recurring_total = sum(sum(amounts) / len(amounts) for amounts in recurring.values())

    return float(configured + recurring_total)


CATEGORY_DESCRIPTIONS = {
    cat.HOUSING: 'Rent, energy, internet, phone',
    cat.INSURANCE: 'Health, car, liability',
    cat.TRANSPORT: 'Fuel, public transport, parking (regular costs only)',
    cat.GROCERIES: 'Groceries and household items',
    cat.FOOD: 'Restaurants and takeaway',
    cat.ENTERTAINMENT: 'Streaming, going out, hobbies',
    cat.SHOPPING: 'Clothing, electronics, personal care',
    cat.VACATION: 'Holidays and travel (saved per month)',
}


def average_monthly_spending(
    transactions: Iterable[Transaction],
    as_of: date,
    months_back: int = AVERAGE_MONTHS_BACK,
    limit: float = SMALL_EXPENSE_LIMIT,
) -> Dict[str, float]:
    """Average monthly spending per canonical category over recent months.

    Expenses above ``limit`` are treated as one-off purchases and skipped.
    The total is divided by the number of months that actually have data.
    """
    df = transactions_frame(transactions)
    if df.empty:
        return {}
    cutoff = pd.Timestamp(as_of) - pd.DateOffset(months=months_back)
    recent = df[
        (df['Type'] == 'expense')
        & (df['Transaction Date'] >= cutoff)
        & (df['Transaction Date'] <= pd.Timestamp(as_of))
        & (df['Amount'].abs() <= limit)
    ].copy()
    if recent.empty:
        return {}
    month_count = max(recent['Transaction Date'].dt.to_period('M').nunique(), 1)
    recent['AbsAmount'] = recent['Amount'].abs()
    recent['Budget Category'] = recent['Category'].map(cat.normalize_category)
    totals = recent.groupby('Budget Category')['AbsAmount'].sum()
    return {category: float(total / month_count) for category, total in totals.items()}


def calculate_category_budgets(
    total_income: float,
    configured_expenses: Iterable[RecurringExpense],
    transactions: Iterable[Transaction],
    month_end: date,
) -> pd.DataFrame:
    """Create the per-category budget table for the month ending on ``month_end``.

    The budgeted amount prefers configured expenses, then the recent
    average spending, then a recommendation derived from the 50/30/20
    targets.

    Returns:
        DataFrame with columns: Category, Budgeted, Spent, Recommended,
        Description, Type, Recurring
    """
    transactions = [t for t in transactions if not cat.is_savings_transaction(t.description)]
    expenses = month_expense_rows(transactions_frame(transactions), month_end)

    spent: Dict[str, float] = {}
    if not expenses.empty:
        expenses['Budget Category'] = expenses['Category'].map(cat.normalize_category)
        spent = {k: float(v) for k, v in expenses.groupby('Budget Category')['AbsAmount'].sum().items()}

    configured: Dict[str, float] = {}
    fixed_totals: Dict[str, float] = {}
    for expense in configured_expenses:
        if not is_active_in_month(expense, month_end):
            continue
        category = cat.normalize_category(expense.category)
        monthly = cat.convert_to_monthly(expense.amount, expense.frequency)
        if cat.is_variable_category(expense.category):
            configured[category] = configured.get(category, 0.0) + monthly
            spent[category] = spent.get(category, 0.0) + monthly
        elif cat.is_fixed_category(expense.category):
            fixed_totals[category] = fixed_totals.get(category, 0.0) + monthly

    for category, total in fixed_totals.items():
        if total > 0:
            spent[category] = total
            configured[category] = total

    targets = calculate_budget_targets(max(float(total_income), 0.0))
    needs, wants, savings = targets[cat.NEEDS], targets[cat.WANTS], targets[cat.SAVINGS]
    recommended = {
        cat.HOUSING: fixed_totals.get(cat.HOUSING) or needs * 0.55,
        cat.INSURANCE: fixed_totals.get(cat.INSURANCE) or needs * 0.25,
        cat.TRANSPORT: 120.0,
        cat.GROCERIES: needs * 0.15,
        cat.FOOD: wants * 0.35,
        cat.ENTERTAINMENT: wants * 0.35,
        cat.SHOPPING: wants * 0.25,
        cat.VACATION: savings * 0.5,
    }
    averages = average_monthly_spending(transactions, month_end)

    rows = []
    for category, recommendation in recommended.items():
        configured_amount = configured.get(category, 0.0)
        budgeted = configured_amount if configured_amount > 0 else max(averages.get(category, 0.0), recommendation)
        kind = 'fixed' if cat.is_fixed_category(category) else 'variable'
        rows.append({
            'Category': category,
            'Budgeted': round(budgeted, 2),
            'Spent': round(spent.get(category, 0.0), 2),
            'Recommended': round(recommendation, 2),
            'Description': CATEGORY_DESCRIPTIONS[category],
            'Type': kind,
            'Recurring': kind == 'fixed',
        })
    return pd.DataFrame(rows)
