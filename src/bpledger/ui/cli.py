from __future__ import annotations

import argparse
import logging
import math
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from bpledger.app import build_services, check_tables, import_workbook_file
from bpledger.config import configure_logging

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from bpledger.app import LedgerServices

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile and query the bonus points ledger")
    subparsers = parser.add_subparsers(dest="command", required=True)

    importer = subparsers.add_parser("import-workbook", help="Load sheets from a JSON export")
    importer.add_argument("path", type=Path, help="Path to the workbook JSON file")

    subparsers.add_parser("reconcile", help="Reconcile every player")

    single = subparsers.add_parser("reconcile-player", help="Reconcile a single player")
    single.add_argument("name", type=str)

    redeem = subparsers.add_parser("redeem", help="Redeem bonus points")
    redeem.add_argument("name", type=str)
    redeem.add_argument("amount", type=float)
    redeem.add_argument("--reason", type=str, default="", help="What the points were spent on")
    redeem.add_argument("--category", type=str, default="", help="Reward category")
    redeem.add_argument("--event-id", type=str, default="", help="Event the redemption belongs to")
    redeem.add_argument("--staff", type=str, help="Staff member recording the redemption")

    adjust = subparsers.add_parser("adjust", help="Correct a player's historical total")
    adjust.add_argument("name", type=str)
    adjust.add_argument("delta", type=float)
    adjust.add_argument("--reason", type=str, required=True, help="Why the correction is made")

    balance = subparsers.add_parser("balance", help="Show a player's balance breakdown")
    balance.add_argument("name", type=str)
    balance.add_argument(
        "--refresh",
        action="store_true",
        help="Reconcile the player before reading the balance",
    )

    history = subparsers.add_parser("history", help="List a player's redemptions")
    history.add_argument("name", type=str)

    subparsers.add_parser("stats", help="Show ledger totals")
    subparsers.add_parser("validate", help="Check the tables the ledger depends on")

    return parser.parse_args(list(argv))


def _validate(args: argparse.Namespace) -> None:
    name = getattr(args, "name", None)
    if name is not None and not name.strip():
        raise ValueError("Player name must not be blank")
    for field in ("amount", "delta"):
        value = getattr(args, field, None)
        if value is not None and not math.isfinite(value):
            raise ValueError(f"{field} must be a finite number")
    if args.command == "adjust" and not args.reason.strip():
        raise ValueError("--reason must not be blank")
    if args.command == "import-workbook" and not args.path.is_file():
        raise ValueError(f"Workbook not found: {args.path}")


def _run(args: argparse.Namespace, services: LedgerServices) -> bool:
    """Execute one command; returns ``False`` when a player-facing operation was rejected."""

    if args.command == "import-workbook":
        import_workbook_file(services, args.path)
    elif args.command == "reconcile":
        summary = services.reconciliation.reconcile_all()
        log.info(
            "Reconciliation finished: players=%s, updated=%s, added=%s",
            summary.players,
            summary.updated,
            summary.added,
        )
    elif args.command == "reconcile-player":
        outcome = services.reconciliation.reconcile_player(args.name)
        log.info("Reconciled %s: %s", args.name, outcome)
    elif args.command == "redeem":
        result = services.redemptions.record_redemption(
            args.name,
            args.amount,
            reason=args.reason,
            category=args.category,
            event_id=args.event_id,
            staff=args.staff,
        )
        if not result.ok:
            log.error("Redemption rejected (%s): %s", result.reason, result.message)
            return False
        receipt = result.unwrap()
        log.info(
            "Redeemed %g BP for %s: %g -> %g",
            receipt.record.amount,
            receipt.record.player_name,
            receipt.previous_balance,
            receipt.new_balance,
        )
    elif args.command == "adjust":
        adjusted = services.balances.adjust_historical(args.name, args.delta, args.reason)
        if not adjusted.ok:
            log.error("Adjustment rejected (%s): %s", adjusted.reason, adjusted.message)
            return False
        adjustment = adjusted.unwrap()
        log.info(
            "Adjusted %s: historical %g -> %g, current %g",
            args.name,
            adjustment.previous_historical,
            adjustment.new_historical,
            adjustment.new_current,
        )
    elif args.command == "balance":
        breakdown = services.balances.get_breakdown(args.name, refresh=args.refresh)
        log.info(
            "%s: current=%g attendance=%g flag=%g dice=%g historical=%g redeemed=%g "
            "overflow=%g last_updated=%s",
            args.name,
            breakdown.current,
            breakdown.attendance,
            breakdown.flag,
            breakdown.dice,
            breakdown.historical,
            breakdown.redeemed,
            breakdown.overflow,
            breakdown.last_updated.isoformat() if breakdown.last_updated else "never",
        )
    elif args.command == "history":
        records = services.redemptions.history(args.name)
        if not records:
            log.info("No redemptions for %s", args.name)
        for record in records:
            log.info(
                "%s %g BP %s [%s] by %s",
                record.timestamp.isoformat(),
                record.amount,
                record.reason or "-",
                record.category or "-",
                record.staff or "-",
            )
    elif args.command == "stats":
        stats = services.balances.stats()
        log.info(
            "Players=%s current=%g historical=%g redeemed=%g overflow=%g average=%g",
            stats.player_count,
            stats.total_current,
            stats.total_historical,
            stats.total_redeemed,
            stats.total_overflow,
            stats.average_current,
        )
    elif args.command == "validate":
        checks = check_tables(services)
        for check in checks:
            state = "ok" if check.ok else ("missing" if not check.present else "incomplete")
            missing = f" missing columns: {', '.join(check.missing_columns)}" if check.missing_columns else ""
            note = f" ({check.note})" if check.note else ""
            log.info("%s: %s%s%s", check.table, state, missing, note)
    else:
        raise ValueError(f"Unsupported command: {args.command}")
    return True


def main(argv: Sequence[str] | None = None, *, services: LedgerServices | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        _validate(parsed_args)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        effective_services = services or build_services()
        succeeded = _run(parsed_args, effective_services)
    except Exception:
        log.exception("Fatal error while running %s", parsed_args.command)
        sys.exit(1)

    if not succeeded:
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
