"""Savings goal progress and automatic transfer generation.

A goal's ``current_amount`` is never authoritative on disk: it is derived
from the transactions linked to the goal through ``savings_goal_id``.
A goal with a monthly contribution and an account pair is funded by a
recurring transfer: one outgoing leg on the source account and one
incoming leg on the savings account, sharing a ``transfer_id``.
"""

from __future__ import annotations

import math
import uuid
from dataclasses import replace
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence

from .errors import SnapshotError
from .models import SavingsGoal, Transaction, same_month

TRANSFER_DESCRIPTION_PREFIX = 'Sparen: '
SPEND_DESCRIPTION_PREFIX = 'Gekocht: '


def _linked(goal_id: str, transactions: Iterable[Transaction]) -> List[Transaction]:
    return [t for t in transactions if t.savings_goal_id == goal_id]


def _unique_legs(transactions: Iterable[Transaction]) -> List[Transaction]:
    """Keep one leg per transfer pair so a transfer is not counted twice."""
    seen = set()
    legs: List[Transaction] = []
    for tx in transactions:
        if tx.transfer_id:
            if tx.transfer_id in seen:
                continue
            seen.add(tx.transfer_id)
        legs.append(tx)
    return legs


def goal_current_amount(goal: SavingsGoal, transactions: Iterable[Transaction]) -> float:
    """Sum the absolute amounts of the money put into ``goal``.

    Expenses linked to the goal, such as the purchase made when the goal is
    spent, take money out and are not counted.
    """
    linked = [t for t in _linked(goal.id, transactions) if not t.is_expense]
    return float(sum(abs(t.amount) for t in _unique_legs(linked)))


def with_current_amounts(
    goals: Iterable[SavingsGoal],
    transactions: Sequence[Transaction],
) -> List[SavingsGoal]:
    """Return copies of ``goals`` with ``current_amount`` derived from transactions."""
    return [replace(goal, current_amount=goal_current_amount(goal, transactions)) for goal in goals]


def goal_progress(goal: SavingsGoal) -> float:
    """Progress towards the target in percent, capped at 100."""
    if not goal.target_amount:
        return 0.0
    return min(100.0, goal.current_amount / goal.target_amount * 100.0)


def months_to_target(goal: SavingsGoal) -> float:
    """Whole months until the target is reached, ``math.inf`` without a contribution."""
    remaining = goal.target_amount - goal.current_amount
    if remaining <= 0:
        return 0
    if not goal.monthly_contribution or goal.monthly_contribution <= 0:
        return math.inf
    return math.ceil(remaining / goal.monthly_contribution)


def contributions_in_month(
    goals: Iterable[SavingsGoal],
    transactions: Iterable[Transaction],
    month: date,
) -> Dict[str, float]:
    """Contributions per active goal recorded in the month of ``month``.

    Expense transactions linked to a goal are money spent from the goal, not
    contributions to it, and are left out.
    """
    active = {goal.id: goal for goal in goals if goal.is_active}
    in_month = [
        t for t in transactions
        if t.savings_goal_id in active and not t.is_expense and same_month(t.date, month)
    ]
    totals: Dict[str, float] = {}
    for tx in _unique_legs(in_month):
        totals[tx.savings_goal_id] = totals.get(tx.savings_goal_id, 0.0) + abs(tx.amount)
    return totals


def build_goal_transfers(
    goal: SavingsGoal,
    on: Optional[date] = None,
    transfer_id: Optional[str] = None,
) -> List[Transaction]:
    """Create the recurring monthly transfer pair that funds ``goal``.

    Raises:
        SnapshotError: If the goal has no positive contribution or lacks
            the source/destination account pair.
    """
    if not goal.monthly_contribution or goal.monthly_contribution <= 0:
        raise SnapshotError(f"savings goal {goal.id}: needs a positive monthly contribution")
    if not goal.from_account_id or not goal.to_account_id:
        raise SnapshotError(f"savings goal {goal.id}: needs fromAccountId and toAccountId")

    when = on or date.today()
    pair_id = transfer_id or f"transfer-{uuid.uuid4().hex[:12]}"
    description = f"{TRANSFER_DESCRIPTION_PREFIX}{goal.name}"
    common = dict(
        description=description,
        type='transfer',
        category='transfer',
        date=when,
        is_recurring=True,
        recurring_type='monthly',
        completed=False,
        savings_goal_id=goal.id,
        transfer_id=pair_id,
        tags=['savings', 'transfer'],
    )
    outgoing = Transaction(
        id=f"{pair_id}-out",
        amount=-goal.monthly_contribution,
        account_id=goal.from_account_id,
        extra={'toAccountId': goal.to_account_id},
        **common,
    )
    incoming = Transaction(
        id=f"{pair_id}-in",
        amount=goal.monthly_contribution,
        account_id=goal.to_account_id,
        extra={'fromAccountId': goal.from_account_id},
        **common,
    )
    return [outgoing, incoming]


def goal_needs_new_transfers(old: Optional[SavingsGoal], new: SavingsGoal) -> bool:
    """True when the funding transfer of a goal must be (re)generated."""
    if (new.monthly_contribution or 0) <= 0 or not new.from_account_id or not new.to_account_id:
        return False
    if old is None:
        return True
    return (
        old.from_account_id != new.from_account_id
        or old.to_account_id != new.to_account_id
        or old.monthly_contribution != new.monthly_contribution
    )


def build_goal_spending(
    goal: SavingsGoal,
    account_id: str,
    on: Optional[date] = None,
    transaction_id: Optional[str] = None,
) -> Transaction:
    """Create the expense that records buying what ``goal`` saved for.

    The full target amount leaves ``account_id`` (the savings account) and
    the expense stays linked to the goal through ``savings_goal_id``.

    Raises:
        SnapshotError: If the goal has already been spent
    """
    if goal.spent_date:
        raise SnapshotError(f"savings goal {goal.id}: already spent on {goal.spent_date.isoformat()}")

    when = on or date.today()
    category = str(goal.extra.get('categoryId') or '')
    return Transaction(
        id=transaction_id or f"tx-{uuid.uuid4().hex[:12]}-goal-spend",
        description=f"{SPEND_DESCRIPTION_PREFIX}{goal.name}",
        amount=-abs(goal.target_amount),
        type='expense',
        category=category,
        account_id=account_id,
        date=when,
        completed=True,
        savings_goal_id=goal.id,
        tags=['spaardoel', 'aankoop', goal.name],
        extra={'notes': f"Purchase made from savings goal. Original target: €{goal.target_amount:,.2f}"},
    )
