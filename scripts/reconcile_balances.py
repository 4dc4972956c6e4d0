"""Verify that stored balances match the ledger for some or all accounts."""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(
        description="Check points == earned - redeemed for accounts in public.profiles.",
    )
    parser.add_argument(
        "account_ids",
        nargs="*",
        help="Account ids to check (default: every account).",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Only print mismatches.",
    )
    return parser.parse_args(argv)


def reconcile(account_ids: Sequence[str], client: Any) -> list[dict[str, Any]]:
    """Return one verification report per account."""
    from points_engine.services.account_service import AccountService
    from points_engine.services.ledger_service import LedgerService

    accounts = AccountService(client)
    ledger = LedgerService(client)
    ids = list(account_ids) or accounts.list_account_ids()
    return [ledger.verify_balance(accounts.get_account(account_id)) for account_id in ids]


def print_reports(reports: Sequence[dict[str, Any]], quiet: bool = False) -> None:
    """Print reports in a grep-friendly form."""
    for report in reports:
        if quiet and report["consistent"]:
            continue
        status = "ok" if report["consistent"] else "MISMATCH"
        print(
            f"{status} {report['account_id']} "
            f"points={report['stored_points']} expected={report['expected_points']} "
            f"total_earned={report['stored_total_earned']} "
            f"expected_total={report['expected_total_earned']}"
        )
    mismatches = sum(1 for report in reports if not report["consistent"])
    print(f"Checked {len(reports)} account(s), {mismatches} mismatch(es)")


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point."""
    args = parse_args(argv)
    from points_engine.utils.supabase_client import get_service_client

    reports = reconcile(args.account_ids, get_service_client())
    print_reports(reports, quiet=args.quiet)
    return 0 if all(report["consistent"] for report in reports) else 1


if __name__ == "__main__":
    sys.exit(main())
