"""Forward balance projections from recurring income and expenses.

The projection starts from the current account balances and applies every
recurring definition month by month.  Monthly items apply every month,
yearly and quarterly items only in the months of their cycle, and weekly,
biweekly and daily items are amortised to their average monthly amount
instead of being simulated day by day.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, Iterator, List, Optional, Sequence

import pandas as pd

from .categories import FREQUENCY_TO_MONTHLY
from .errors import SnapshotError
from .models import Account, IncomeSource, MonthlySnapshot, RecurringExpense, Transaction
from .net_worth import account_balances

logger = logging.getLogger(__name__)

UNASSIGNED_ACCOUNT = 'unassigned'

# Cadences shorter than a month are spread over every month.
AMORTIZED_MULTIPLIERS: Dict[str, float] = {
    frequency: FREQUENCY_TO_MONTHLY[frequency] for frequency in ('weekly', 'biweekly', 'daily')
}
CYCLE_MONTHS: Dict[str, int] = {
    'monthly': 1,
    'quarterly': 3,
    'yearly': 12,
}


@dataclass(frozen=True)
class RecurringDefinition:
    """One signed recurring cash flow on one account."""

    name: str
    amount: float
    frequency: str
    account_id: str
    anchor: date
    end: Optional[date] = None
    is_transfer: bool = False

    def amount_for(self, target: date) -> float:
        """Cash flow of this definition in the month of ``target``."""
        offset = _month_index(target) - _month_index(self.anchor)
        if offset < 0:
            return 0.0
        if self.end and _month_index(target) > _month_index(self.end):
            return 0.0
        frequency = self.frequency
        if frequency in AMORTIZED_MULTIPLIERS:
            return self.amount * AMORTIZED_MULTIPLIERS[frequency]
        if frequency not in CYCLE_MONTHS:
            # Unknown cadence: assume monthly so the projection still renders
            frequency = 'monthly'
        if offset % CYCLE_MONTHS[frequency]:
            return 0.0
        return self.amount


def _month_index(value: date) -> int:
    return value.year * 12 + value.month - 1


def _normalize_frequency(value: Optional[str]) -> str:
    return str(value).strip().lower() if value else 'monthly'


def primary_account_id(accounts: Sequence[Account]) -> str:
    """First checking account, else the first account, else ``unassigned``."""
    for account in accounts:
        if account.type == 'checking':
            return account.id
    return accounts[0].id if accounts else UNASSIGNED_ACCOUNT


def _names_overlap(description: str, names: Sequence[str]) -> bool:
    text = description.lower().strip()
    if not text:
        return False
    return any(name and (name in text or text in name) for name in names)


def recurring_definitions(
    accounts: Sequence[Account],
    transactions: Iterable[Transaction],
    income_sources: Iterable[IncomeSource],
    recurring_expenses: Iterable[RecurringExpense],
    today: date,
) -> List[RecurringDefinition]:
    """Collect the signed recurring cash flows used by the projection.

    Configured income is positive and configured expenses are negated.
    Recurring transactions are grouped per account and description and
    contribute their average amount, anchored on the latest occurrence.
    A recurring transaction that matches a configured item by name is left
    out; the configuration describes that cash flow already.
    """
    known = {account.id for account in accounts}
    primary = primary_account_id(accounts)

    def _account(account_id: Optional[str]) -> str:
        return account_id if account_id in known else primary

    definitions: List[RecurringDefinition] = []
    configured_names: List[str] = []

    for source in income_sources:
        if not source.is_active:
            continue
        configured_names.append(source.name.lower().strip())
        definitions.append(RecurringDefinition(
            name=source.name,
            amount=float(source.amount),
            frequency=_normalize_frequency(source.frequency),
            account_id=_account(source.account_id),
            anchor=source.start_date or today,
            end=source.end_date,
        ))

    for expense in recurring_expenses:
        if not expense.is_active:
            continue
        configured_names.append(expense.name.lower().strip())
        definitions.append(RecurringDefinition(
            name=expense.name,
            amount=-abs(float(expense.amount)),
            frequency=_normalize_frequency(expense.frequency),
            account_id=_account(expense.account_id),
            anchor=expense.start_date or today,
            end=expense.end_date,
        ))

    grouped: Dict[tuple, List[Transaction]] = {}
    for tx in transactions:
        if not tx.is_recurring:
            continue
        if _names_overlap(tx.description, configured_names):
            logger.debug("Skipping recurring transaction %r covered by configuration", tx.description)
            continue
        key = (_account(tx.account_id), tx.description.lower().strip(), tx.type)
        grouped.setdefault(key, []).append(tx)

    for (account_id, _, tx_type), group in grouped.items():
        latest = max(group, key=lambda t: t.date)
        ends = [t.recurring_end_date for t in group if t.recurring_end_date]
        definitions.append(RecurringDefinition(
            name=latest.description,
            amount=sum(t.amount for t in group) / len(group),
            frequency=_normalize_frequency(latest.recurring_type),
            account_id=account_id,
            anchor=latest.date,
            end=max(ends) if ends else None,
            is_transfer=tx_type == 'transfer',
        ))

    return definitions


def generate_projections(
    horizon_months: int = 12,
    *,
    accounts: Sequence[Account] = (),
    transactions: Sequence[Transaction] = (),
    income_sources: Iterable[IncomeSource] = (),
    recurring_expenses: Iterable[RecurringExpense] = (),
    start: Optional[date] = None,
) -> Iterator[MonthlySnapshot]:
    """Project account balances for the next ``horizon_months`` months.

    Snapshots are produced lazily, one per month, dated on the first of the
    month that follows ``start`` (today by default).  Calling the function
    again with the same inputs yields the same sequence.  A horizon of zero
    or less yields nothing.

    Raises:
        SnapshotError: If ``horizon_months`` is not an integer
    """
    if isinstance(horizon_months, bool):
        raise SnapshotError(f"horizon must be an integer number of months, got {horizon_months!r}")
    try:
        horizon = int(horizon_months)
    except (TypeError, ValueError) as exc:
        raise SnapshotError(f"horizon must be an integer number of months, got {horizon_months!r}") from exc

    today = start or date.today()
    accounts = list(accounts)
    transactions = list(transactions)
    balances = account_balances(accounts, transactions)
    if not balances:
        balances = {UNASSIGNED_ACCOUNT: 0.0}
    definitions = recurring_definitions(accounts, transactions, income_sources, recurring_expenses, today)
    logger.debug("Projecting %d months from %s with %d definitions", horizon, today, len(definitions))

    return _project(balances, definitions, horizon, today)


def _project(
    balances: Dict[str, float],
    definitions: Sequence[RecurringDefinition],
    horizon: int,
    today: date,
) -> Iterator[MonthlySnapshot]:
    running = dict(balances)
    current = pd.Period(today, freq='M')
    for step in range(1, horizon + 1):
        target = (current + step).to_timestamp().date()
        income = 0.0
        expenses = 0.0
        for definition in definitions:
            amount = definition.amount_for(target)
            if not amount:
                continue
            running[definition.account_id] = running.get(definition.account_id, 0.0) + amount
            if definition.is_transfer:
                continue
            if amount > 0:
                income += amount
            else:
                expenses += -amount
        yield MonthlySnapshot(
            date=target,
            total_balance=float(sum(running.values())),
            account_balances=dict(running),
            income=income,
            expenses=expenses,
        )


def projection_frame(
    snapshots: Iterable[MonthlySnapshot],
    account_names: Optional[Dict[str, str]] = None,
) -> pd.DataFrame:
    """Create a DataFrame from projection snapshots.

    Returns:
        DataFrame with columns: Month, Total Balance, Income, Expenses,
        Net Change, plus one column per account (named via
        ``account_names`` when given)
    """
    names = account_names or {}
    rows = []
    for snapshot in snapshots:
        row = {
            'Month': snapshot.date.strftime('%Y-%m'),
            'Total Balance': snapshot.total_balance,
            'Income': snapshot.income,
            'Expenses': snapshot.expenses,
            'Net Change': snapshot.net_change,
        }
        for account_id, balance in snapshot.account_balances.items():
            row[names.get(account_id, account_id)] = balance
        rows.append(row)
    return pd.DataFrame(rows)
