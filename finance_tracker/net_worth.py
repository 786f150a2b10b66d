"""Account balances and net-worth summaries."""

from __future__ import annotations

from typing import Dict, Iterable, Sequence

from .models import Account, Transaction

DEBT_ACCOUNT_TYPE = 'debt'


def account_balances(
    accounts: Iterable[Account],
    transactions: Iterable[Transaction],
) -> Dict[str, float]:
    """Current balance per account id.

    A balance is the account's manual ``starting_balance`` plus the amounts
    of its completed transactions.  Transactions dated before the account's
    ``start_date`` are already part of the baseline and are skipped.
    """
    accounts = list(accounts)
    balances = {account.id: float(account.starting_balance) for account in accounts}
    start_dates = {account.id: account.start_date for account in accounts}
    for tx in transactions:
        if not tx.completed or tx.account_id not in balances:
            continue
        start = start_dates[tx.account_id]
        if start and tx.date < start:
            continue
        balances[tx.account_id] += tx.amount
    return balances


def total_balance(balances: Dict[str, float]) -> float:
    return float(sum(balances.values()))


def balances_by_type(
    accounts: Sequence[Account],
    balances: Dict[str, float],
) -> Dict[str, float]:
    """Sum balances per account type (checking, savings, debt, ...)."""
    by_type: Dict[str, float] = {}
    for account in accounts:
        by_type[account.type] = by_type.get(account.type, 0.0) + balances.get(account.id, 0.0)
    return by_type


def net_worth_summary(
    accounts: Sequence[Account],
    transactions: Iterable[Transaction],
) -> Dict[str, float]:
    """Assets, liabilities and net worth across all accounts.

    Debt accounts count as liabilities by the absolute value of their
    balance, whichever sign the user recorded it with.

    Example:
        >>> net_worth_summary(accounts, transactions)
        {'assets': 12500.0, 'liabilities': 3000.0, 'netWorth': 9500.0}
    """
    balances = account_balances(accounts, transactions)
    assets = 0.0
    liabilities = 0.0
    for account in accounts:
        balance = balances.get(account.id, 0.0)
        if account.type == DEBT_ACCOUNT_TYPE:
            liabilities += abs(balance)
        else:
            assets += balance
    return {
        'assets': assets,
        'liabilities': liabilities,
        'netWorth': assets - liabilities,
    }
