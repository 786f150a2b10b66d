#!/usr/bin/env python3
"""Print the 50/30/20 budget breakdown and the balance projection."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from finance_tracker import service
from finance_tracker.errors import FinanceError
from finance_tracker.formatting import format_currency, format_percent
from finance_tracker.projections import projection_frame
from finance_tracker.storage import FinanceStore


def print_breakdown(breakdown) -> None:
    print(f"Budget for {breakdown.month} (income {format_currency(breakdown.total_income)})")
    for name, bucket in breakdown.buckets.items():
        print(
            f"  {name:<8} budgeted {format_currency(bucket.budgeted):>12}  "
            f"spent {format_currency(bucket.spent):>12}  "
            f"left {format_currency(bucket.remaining):>12}  ({format_percent(bucket.percent_used)})"
        )
        for item in bucket.items:
            print(f"      - {item.name} [{item.category}, {item.source}]: {format_currency(item.amount)}")


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description='Show the monthly budget breakdown and projections.')
    parser.add_argument('--month', help='Month to analyse as YYYY-MM (default: current month)')
    parser.add_argument('--months', type=int, default=None, help='Projection horizon in months')
    parser.add_argument('--data-dir', type=Path, default=None, help='Directory holding the JSON documents')
    parser.add_argument('--no-projection', action='store_true', help='Only print the budget breakdown')
    args = parser.parse_args(argv)

    try:
        snapshot = FinanceStore(args.data_dir).load_snapshot()
        print_breakdown(service.budget_breakdown_for_month(snapshot, args.month))
        if not args.no_projection:
            names = {account.id: account.name for account in snapshot.accounts}
            frame = projection_frame(service.projections_for(snapshot, args.months), names)
            print("\nProjection:")
            print("  (no months to project)" if frame.empty else frame.round(2).to_string(index=False))
    except FinanceError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    raise SystemExit(main())
