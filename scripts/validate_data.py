#!/usr/bin/env python3
"""Lightweight validator for the finance JSON documents."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from finance_tracker.categories import DEFAULT_CATEGORY, is_mapped_category
from finance_tracker.category_rules import is_uncategorized
from finance_tracker.errors import FinanceError
from finance_tracker.models import FinanceSnapshot
from finance_tracker.service import resolve_category_names
from finance_tracker.storage import FinanceStore


def find_issues(snapshot: FinanceSnapshot) -> List[str]:
    """Cross-record problems the record parsers cannot see on their own."""
    issues = []
    account_ids = {account.id for account in snapshot.accounts}
    goal_ids = {goal.id for goal in snapshot.savings_goals}

    for tx in snapshot.transactions:
        if tx.account_id not in account_ids:
            issues.append(f"transaction {tx.id}: unknown account '{tx.account_id}'")
        if tx.savings_goal_id and tx.savings_goal_id not in goal_ids:
            issues.append(f"transaction {tx.id}: unknown savings goal '{tx.savings_goal_id}'")

    for goal in snapshot.savings_goals:
        for key, account_id in (('fromAccountId', goal.from_account_id), ('toAccountId', goal.to_account_id)):
            if account_id and account_id not in account_ids:
                issues.append(f"savings goal {goal.id}: {key} '{account_id}' does not exist")

    if snapshot.budget_percentages:
        values = []
        for key, value in snapshot.budget_percentages.items():
            try:
                values.append(float(value))
            except (TypeError, ValueError):
                issues.append(f"settings: budget percentage '{key}' is not a number: {value!r}")
        if len(values) == len(snapshot.budget_percentages) and abs(sum(values) - 1.0) > 1e-6:
            issues.append(f"settings: budget percentages sum to {sum(values):.2f}, expected 1.00")
    return issues


def find_unmapped_categories(snapshot: FinanceSnapshot) -> List[str]:
    """Expense categories that fall back to the default budget category."""
    notes = []
    resolved = resolve_category_names(snapshot.transactions, snapshot.categories, snapshot.budget_mappings)
    for tx in resolved:
        if not tx.is_expense or is_uncategorized(tx.category):
            continue
        if not is_mapped_category(tx.category):
            notes.append(f"transaction {tx.id}: category '{tx.category}' is not mapped and counts as {DEFAULT_CATEGORY}")
    return notes


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description='Validate the finance JSON documents.')
    parser.add_argument('--data-dir', type=Path, default=None, help='Directory holding the JSON documents')
    args = parser.parse_args(argv)

    try:
        snapshot = FinanceStore(args.data_dir).load_snapshot()
    except FinanceError as e:
        print(f"Data validation failed: {e}")
        return 1

    for note in find_unmapped_categories(snapshot):
        print(f"Note: {note}")

    issues = find_issues(snapshot)
    if issues:
        print("Data validation failed:")
        for message in issues:
            print(f"  - {message}")
        return 1

    print(
        f"All documents validated successfully "
        f"({len(snapshot.accounts)} accounts, {len(snapshot.transactions)} transactions, "
        f"{len(snapshot.savings_goals)} goals)."
    )
    return 0


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    raise SystemExit(main())
