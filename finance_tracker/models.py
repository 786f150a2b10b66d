"""Domain records for accounts, transactions, configuration and results.

The JSON documents on disk use camelCase keys; every record converts to
and from that shape with ``from_dict``/``to_dict``.  Keys a record does not
model are kept in ``extra`` so a load/save cycle never drops data.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .errors import SnapshotError

ACCOUNT_TYPES = ('checking', 'savings', 'crypto', 'stocks', 'debt', 'other')
TRANSACTION_TYPES = ('income', 'expense', 'transfer')
RECURRING_TYPES = ('monthly', 'yearly', 'weekly', 'daily', 'quarterly', 'biweekly')


def parse_date(value: Any, entity: str = 'record', field_name: str = 'date') -> date:
    """Parse ``YYYY-MM-DD`` or an ISO timestamp into a :class:`date`."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise SnapshotError(f"{entity}: '{field_name}' must be a date string, got {value!r}")
    text = value.strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError as exc:
        raise SnapshotError(f"{entity}: invalid date {text!r} in '{field_name}'") from exc


def _optional_date(data: Mapping[str, Any], key: str, entity: str) -> Optional[date]:
    value = data.get(key)
    if value in (None, ''):
        return None
    return parse_date(value, entity, key)


def _require(data: Mapping[str, Any], key: str, entity: str) -> Any:
    if not isinstance(data, Mapping):
        raise SnapshotError(f"{entity}: expected an object, got {type(data).__name__}")
    value = data.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise SnapshotError(f"{entity}: missing required field '{key}'")
    return value


def _to_float(value: Any, entity: str, key: str) -> float:
    if isinstance(value, bool):
        raise SnapshotError(f"{entity}: '{key}' must be a number, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise SnapshotError(f"{entity}: '{key}' must be a number, got {value!r}") from exc


def _optional_float(data: Mapping[str, Any], key: str, entity: str, default: float = 0.0) -> float:
    value = data.get(key)
    if value in (None, ''):
        return default
    return _to_float(value, entity, key)


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


def _extra(data: Mapping[str, Any], known: Tuple[str, ...]) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if k not in known}


def _compact(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in payload.items() if v is not None}


def same_month(left: date, right: date) -> bool:
    """True when both dates fall in the same calendar year and month."""
    return left.year == right.year and left.month == right.month


@dataclass
class Account:
    id: str
    name: str
    type: str = 'checking'
    starting_balance: float = 0.0
    start_date: Optional[date] = None
    description: str = ''
    extra: Dict[str, Any] = field(default_factory=dict)

    _KEYS = ('id', 'name', 'type', 'startingBalance', 'startDate', 'description')

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Account':
        entity = f"account {data.get('id', '?') if isinstance(data, Mapping) else '?'}"
        account_type = str(data.get('type') or 'other').lower()
        return cls(
            id=str(_require(data, 'id', entity)),
            name=str(_require(data, 'name', entity)),
            type=account_type if account_type in ACCOUNT_TYPES else 'other',
            starting_balance=_optional_float(data, 'startingBalance', entity),
            start_date=_optional_date(data, 'startDate', entity),
            description=str(data.get('description') or ''),
            extra=_extra(data, cls._KEYS),
        )

    def to_dict(self) -> Dict[str, Any]:
        payload = dict(self.extra)
        payload.update(_compact({
            'id': self.id,
            'name': self.name,
            'type': self.type,
            'startingBalance': self.starting_balance,
            'startDate': _iso(self.start_date),
            'description': self.description or None,
        }))
        return payload


@dataclass
class Transaction:
    id: str
    description: str
    amount: float
    type: str
    category: str
    account_id: str
    date: date
    is_recurring: bool = False
    recurring_type: Optional[str] = None
    recurring_end_date: Optional[date] = None
    completed: bool = True
    savings_goal_id: Optional[str] = None
    transfer_id: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)

    _KEYS = (
        'id', 'description', 'amount', 'type', 'category', 'accountId', 'date',
        'isRecurring', 'recurringType', 'recurringEndDate', 'completed',
        'savingsGoalId', 'transferId', 'tags',
    )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Transaction':
        entity = f"transaction {data.get('id', '?') if isinstance(data, Mapping) else '?'}"
        amount = _to_float(_require(data, 'amount', entity), entity, 'amount')
        tx_type = str(data.get('type') or '').lower()
        if tx_type not in TRANSACTION_TYPES:
            tx_type = 'income' if amount > 0 else 'expense'
        recurring_type = data.get('recurringType')
        return cls(
            id=str(_require(data, 'id', entity)),
            description=str(data.get('description') or ''),
            amount=amount,
            type=tx_type,
            category=str(data.get('category') or ''),
            account_id=str(_require(data, 'accountId', entity)),
            date=parse_date(_require(data, 'date', entity), entity, 'date'),
            is_recurring=bool(data.get('isRecurring', False)),
            recurring_type=str(recurring_type).lower() if recurring_type else None,
            recurring_end_date=_optional_date(data, 'recurringEndDate', entity),
            completed=bool(data.get('completed', True)),
            savings_goal_id=data.get('savingsGoalId') or None,
            transfer_id=data.get('transferId') or None,
            tags=list(data.get('tags') or []),
            extra=_extra(data, cls._KEYS),
        )

    def to_dict(self) -> Dict[str, Any]:
        payload = dict(self.extra)
        payload.update(_compact({
            'id': self.id,
            'description': self.description,
            'amount': self.amount,
            'type': self.type,
            'category': self.category,
            'accountId': self.account_id,
            'date': self.date.isoformat(),
            'isRecurring': self.is_recurring,
            'recurringType': self.recurring_type,
            'recurringEndDate': _iso(self.recurring_end_date),
            'completed': self.completed,
            'savingsGoalId': self.savings_goal_id,
            'transferId': self.transfer_id,
            'tags': list(self.tags) or None,
        }))
        return payload

    @property
    def is_expense(self) -> bool:
        return self.type == 'expense'

    @property
    def is_income(self) -> bool:
        return self.type == 'income'


@dataclass
class Category:
    id: str
    name: str
    type: str = 'expense'
    color: str = ''

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Category':
        entity = f"category {data.get('id', '?') if isinstance(data, Mapping) else '?'}"
        return cls(
            id=str(_require(data, 'id', entity)),
            name=str(_require(data, 'name', entity)),
            type=str(data.get('type') or 'expense'),
            color=str(data.get('color') or ''),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'name': self.name, 'type': self.type, 'color': self.color}


@dataclass
class RecurringExpense:
    """A configured expected expense; ``amount`` is a positive magnitude."""

    id: str
    name: str
    amount: float
    frequency: str = 'monthly'
    category: str = ''
    is_active: bool = True
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    budget_type: Optional[str] = None
    account_id: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    _KEYS = (
        'id', 'name', 'amount', 'frequency', 'category', 'isActive', 'startDate',
        'endDate', 'budgetType', 'accountId',
    )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'RecurringExpense':
        entity = f"recurring expense {data.get('name', '?') if isinstance(data, Mapping) else '?'}"
        name = str(_require(data, 'name', entity))
        return cls(
            id=str(data.get('id') or name),
            name=name,
            amount=abs(_to_float(_require(data, 'amount', entity), entity, 'amount')),
            frequency=str(data.get('frequency') or 'monthly').lower(),
            category=str(data.get('category') or ''),
            is_active=bool(data.get('isActive', True)),
            start_date=_optional_date(data, 'startDate', entity),
            end_date=_optional_date(data, 'endDate', entity),
            budget_type=data.get('budgetType') or None,
            account_id=data.get('accountId') or None,
            extra=_extra(data, cls._KEYS),
        )

    def to_dict(self) -> Dict[str, Any]:
        payload = dict(self.extra)
        payload.update(_compact({
            'id': self.id,
            'name': self.name,
            'amount': self.amount,
            'frequency': self.frequency,
            'category': self.category,
            'isActive': self.is_active,
            'startDate': _iso(self.start_date),
            'endDate': _iso(self.end_date),
            'budgetType': self.budget_type,
            'accountId': self.account_id,
        }))
        return payload


@dataclass
class IncomeSource:
    id: str
    name: str
    amount: float
    frequency: str = 'monthly'
    category: str = 'other'
    is_active: bool = True
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    account_id: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    _KEYS = ('id', 'name', 'amount', 'frequency', 'category', 'isActive', 'startDate', 'endDate', 'accountId')

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'IncomeSource':
        entity = f"income source {data.get('name', '?') if isinstance(data, Mapping) else '?'}"
        name = str(_require(data, 'name', entity))
        return cls(
            id=str(data.get('id') or name),
            name=name,
            amount=_to_float(_require(data, 'amount', entity), entity, 'amount'),
            frequency=str(data.get('frequency') or 'monthly').lower(),
            category=str(data.get('category') or 'other'),
            is_active=bool(data.get('isActive', True)),
            start_date=_optional_date(data, 'startDate', entity),
            end_date=_optional_date(data, 'endDate', entity),
            account_id=data.get('accountId') or None,
            extra=_extra(data, cls._KEYS),
        )

    def to_dict(self) -> Dict[str, Any]:
        payload = dict(self.extra)
        payload.update(_compact({
            'id': self.id,
            'name': self.name,
            'amount': self.amount,
            'frequency': self.frequency,
            'category': self.category,
            'isActive': self.is_active,
            'startDate': _iso(self.start_date),
            'endDate': _iso(self.end_date),
            'accountId': self.account_id,
        }))
        return payload


@dataclass
class SavingsGoal:
    id: str
    name: str
    target_amount: float
    current_amount: float = 0.0
    deadline: Optional[date] = None
    monthly_contribution: float = 0.0
    priority: str = 'medium'
    is_active: bool = True
    from_account_id: Optional[str] = None
    to_account_id: Optional[str] = None
    spent_date: Optional[date] = None
    spent_transaction_id: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    _KEYS = (
        'id', 'name', 'targetAmount', 'currentAmount', 'deadline', 'monthlyContribution',
        'priority', 'isActive', 'fromAccountId', 'toAccountId', 'spentDate', 'spentTransactionId',
    )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'SavingsGoal':
        entity = f"savings goal {data.get('id', '?') if isinstance(data, Mapping) else '?'}"
        return cls(
            id=str(_require(data, 'id', entity)),
            name=str(_require(data, 'name', entity)),
            target_amount=_to_float(_require(data, 'targetAmount', entity), entity, 'targetAmount'),
            current_amount=_optional_float(data, 'currentAmount', entity),
            deadline=_optional_date(data, 'deadline', entity),
            monthly_contribution=_optional_float(data, 'monthlyContribution', entity),
            priority=str(data.get('priority') or 'medium'),
            is_active=bool(data.get('isActive', True)),
            from_account_id=data.get('fromAccountId') or None,
            to_account_id=data.get('toAccountId') or None,
            spent_date=_optional_date(data, 'spentDate', entity),
            spent_transaction_id=data.get('spentTransactionId') or None,
            extra=_extra(data, cls._KEYS),
        )

    def to_dict(self) -> Dict[str, Any]:
        payload = dict(self.extra)
        payload.update(_compact({
            'id': self.id,
            'name': self.name,
            'targetAmount': self.target_amount,
            'currentAmount': self.current_amount,
            'deadline': _iso(self.deadline),
            'monthlyContribution': self.monthly_contribution,
            'priority': self.priority,
            'isActive': self.is_active,
            'fromAccountId': self.from_account_id,
            'toAccountId': self.to_account_id,
            'spentDate': _iso(self.spent_date),
            'spentTransactionId': self.spent_transaction_id,
        }))
        return payload


@dataclass(frozen=True)
class BudgetItem:
    name: str
    amount: float
    category: str
    source: str = 'transaction'

    def to_dict(self) -> Dict[str, Any]:
        return {'name': self.name, 'amount': self.amount, 'category': self.category, 'source': self.source}


@dataclass
class BudgetBucket:
    budgeted: float
    spent: float = 0.0
    items: List[BudgetItem] = field(default_factory=list)

    @property
    def remaining(self) -> float:
        """Budget left; negative when the bucket is overspent."""
        return self.budgeted - self.spent

    @property
    def percent_used(self) -> float:
        if not self.budgeted:
            return 0.0
        return self.spent / self.budgeted * 100.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'budgeted': self.budgeted,
            'spent': self.spent,
            'remaining': self.remaining,
            'percentUsed': self.percent_used,
            'items': [item.to_dict() for item in self.items],
        }


@dataclass
class BudgetBreakdown:
    needs: BudgetBucket
    wants: BudgetBucket
    savings: BudgetBucket
    total_income: float
    month: str

    @property
    def buckets(self) -> Dict[str, BudgetBucket]:
        return {'needs': self.needs, 'wants': self.wants, 'savings': self.savings}

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {name: bucket.to_dict() for name, bucket in self.buckets.items()}
        payload['totalIncome'] = self.total_income
        payload['month'] = self.month
        return payload


@dataclass(frozen=True)
class MonthlySnapshot:
    date: date
    total_balance: float
    account_balances: Dict[str, float]
    income: float = 0.0
    expenses: float = 0.0

    @property
    def net_change(self) -> float:
        return self.income - self.expenses

    def to_dict(self) -> Dict[str, Any]:
        return {
            'date': self.date.isoformat(),
            'totalBalance': self.total_balance,
            'accountBalances': dict(self.account_balances),
            'income': self.income,
            'expenses': self.expenses,
        }


@dataclass(frozen=True)
class FinanceSnapshot:
    """One consistent load of every JSON document."""

    accounts: Tuple[Account, ...] = ()
    transactions: Tuple[Transaction, ...] = ()
    categories: Tuple[Category, ...] = ()
    income_sources: Tuple[IncomeSource, ...] = ()
    recurring_expenses: Tuple[RecurringExpense, ...] = ()
    savings_goals: Tuple[SavingsGoal, ...] = ()
    budget_percentages: Optional[Dict[str, float]] = None
    projection_months: Optional[int] = None
    budget_mappings: Optional[Dict[str, List[str]]] = None
