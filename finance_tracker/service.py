"""Assemble snapshot data into budget breakdowns and projections.

The store returns raw records; the calculators expect category names
instead of ids and a total income figure.  The functions here do that
preparation for the dashboard and the command-line scripts.
"""

from __future__ import annotations

import calendar
import logging
import re
from dataclasses import replace
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from .budget import calculate_budget_breakdown, calculate_category_budgets, monthly_income
from .categories import mapping_lookup
from .config import DEFAULT_PROJECTION_MONTHS
from .errors import SnapshotError
from .models import BudgetBreakdown, Category, FinanceSnapshot, MonthlySnapshot, Transaction
from .net_worth import account_balances, net_worth_summary, total_balance
from .projections import generate_projections
from .savings import goal_progress, months_to_target, with_current_amounts

logger = logging.getLogger(__name__)

MonthLike = Union[str, date, None]

_MONTH_RE = re.compile(r"^(\d{4})-(\d{1,2})$")


def resolve_category_names(
    transactions: Iterable[Transaction],
    categories: Sequence[Category],
    mappings: Optional[Dict[str, List[str]]] = None,
) -> List[Transaction]:
    """Replace category ids with lower-cased category names.

    A category listed in the user's budget mappings, by id or by name,
    becomes the budget category it is mapped to.  Categories that are not a
    known id are kept as they are.
    """
    names = {category.id: category.name.lower() for category in categories}
    lookup = mapping_lookup(mappings)
    resolved = []
    for tx in transactions:
        name = names.get(tx.category, tx.category)
        mapped = lookup.get(str(tx.category).strip().lower()) or lookup.get(str(name).strip().lower())
        category = mapped or name
        resolved.append(replace(tx, category=category) if category != tx.category else tx)
    return resolved


def parse_month(month: MonthLike = None, today: Optional[date] = None) -> date:
    """Return the last calendar day of the requested month.

    Args:
        month: ``"YYYY-MM"``, a date inside the month, or ``None`` for the
            month of ``today``

    Raises:
        SnapshotError: If a string is not of the form ``YYYY-MM``

    Example:
        >>> parse_month("2024-02")
        datetime.date(2024, 2, 29)
    """
    if month is None:
        reference = today or date.today()
    elif isinstance(month, datetime):
        reference = month.date()
    elif isinstance(month, date):
        reference = month
    else:
        match = _MONTH_RE.match(str(month).strip())
        if not match or not 1 <= int(match.group(2)) <= 12:
            raise SnapshotError(f"month must look like YYYY-MM, got {month!r}")
        reference = date(int(match.group(1)), int(match.group(2)), 1)
    last_day = calendar.monthrange(reference.year, reference.month)[1]
    return reference.replace(day=last_day)


def total_income_for_month(snapshot: FinanceSnapshot, month_end: date) -> float:
    return monthly_income(snapshot.income_sources, snapshot.transactions, month_end)


def budget_breakdown_for_month(
    snapshot: FinanceSnapshot,
    month: MonthLike = None,
    today: Optional[date] = None,
) -> BudgetBreakdown:
    """Compute the 50/30/20 breakdown of one month of a snapshot."""
    month_end = parse_month(month, today)
    transactions = resolve_category_names(snapshot.transactions, snapshot.categories, snapshot.budget_mappings)
    income = total_income_for_month(snapshot, month_end)
    logger.debug("Budget breakdown for %s with income %.2f", month_end, income)
    return calculate_budget_breakdown(
        income,
        snapshot.recurring_expenses,
        transactions,
        snapshot.savings_goals,
        month_end,
        custom_percentages=snapshot.budget_percentages,
    )


def category_budgets_for_month(snapshot: FinanceSnapshot, month: MonthLike = None, today: Optional[date] = None):
    """Per-category budget table (a DataFrame) for one month."""
    month_end = parse_month(month, today)
    transactions = resolve_category_names(snapshot.transactions, snapshot.categories, snapshot.budget_mappings)
    income = total_income_for_month(snapshot, month_end)
    return calculate_category_budgets(income, snapshot.recurring_expenses, transactions, month_end)


def projections_for(
    snapshot: FinanceSnapshot,
    months: Optional[int] = None,
    start: Optional[date] = None,
) -> List[MonthlySnapshot]:
    """Project balances; the horizon defaults to the configured projection months."""
    horizon = months if months is not None else (snapshot.projection_months or DEFAULT_PROJECTION_MONTHS)
    return list(generate_projections(
        horizon,
        accounts=snapshot.accounts,
        transactions=snapshot.transactions,
        income_sources=snapshot.income_sources,
        recurring_expenses=snapshot.recurring_expenses,
        start=start,
    ))


def goals_with_progress(snapshot: FinanceSnapshot) -> List[Dict[str, Any]]:
    """Savings goals as dictionaries with derived amount, progress and months left."""
    rows = []
    for goal in with_current_amounts(snapshot.savings_goals, snapshot.transactions):
        payload = goal.to_dict()
        payload['progress'] = goal_progress(goal)
        payload['monthsToTarget'] = months_to_target(goal)
        rows.append(payload)
    return rows


def overview(snapshot: FinanceSnapshot) -> Dict[str, Any]:
    """Headline numbers for the overview page."""
    balances = account_balances(snapshot.accounts, snapshot.transactions)
    summary = net_worth_summary(snapshot.accounts, snapshot.transactions)
    summary['totalBalance'] = total_balance(balances)
    summary['accountBalances'] = balances
    return summary
