#!/usr/bin/env python3
"""Command-line interface for expense-ledger."""

import argparse
import copy
import json
import logging
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any

from expense_ledger.budget import budget_status, find_budget
from expense_ledger.config import (
    create_default_config,
    get_backend,
    get_config_path,
    get_data_path,
    get_firestore_settings,
    get_timezone,
    load_config,
    save_json_config,
)
from expense_ledger.exceptions import LedgerError, ValidationError
from expense_ledger.filters import FilterCriteria, Selection, filter_transactions
from expense_ledger.models import PaymentMode, SplitShare, Transaction, TransactionType
from expense_ledger.splits import split_equally
from expense_ledger.storage import JsonLedgerStore, LedgerStore
from expense_ledger.summary import summarize_month
from expense_ledger.trend import NotEnoughData, build_trend
from expense_ledger.utils import format_amount, month_label, parse_amount, parse_month
from expense_ledger.validation import TransactionDraft

CURRENCY = "₹"

SAMPLE_EXPENSES = [
    ("Recharge", "489", PaymentMode.UPI),
    ("Bharatgas", "860", PaymentMode.DEBIT_CARD),
    ("Medicine", "555.96", PaymentMode.CASH),
    ("Face Wash", "414", PaymentMode.CREDIT_CARD),
    ("Amazon (Spray Bottle, Scalp Massager)", "323", PaymentMode.CREDIT_CARD),
    ("Electricity Bill", "2854", PaymentMode.UPI),
]


def money(value: Decimal) -> str:
    return f"{CURRENCY}{format_amount(value)}"


def build_store(config: dict[str, Any] | None, data_path: Path | None = None) -> LedgerStore:
    """Create the configured store."""
    if get_backend(config) == "firestore":
        from expense_ledger.firestore import FirestoreClient, FirestoreLedgerStore

        settings = get_firestore_settings(config)
        if not settings["project_id"] or not settings["api_key"]:
            raise LedgerError(
                "Firestore backend needs project_id and api_key "
                "(config.json or FIRESTORE_PROJECT_ID / FIRESTORE_API_KEY)"
            )
        client = FirestoreClient(
            settings["project_id"], settings["api_key"], settings["database"] or "(default)"
        )
        return FirestoreLedgerStore(client, get_timezone(settings["timezone"]))

    return JsonLedgerStore(get_data_path(config, data_path))


def parse_split(value: str) -> list[SplitShare]:
    """Parse ``"Self=300,Raj=300"`` into split shares."""
    shares = []
    for part in value.split(","):
        if not part.strip():
            continue
        person, sep, amount_str = part.partition("=")
        amount = parse_amount(amount_str) if sep else None
        if amount is None:
            raise ValidationError(f"Invalid split share: {part.strip()!r}")
        shares.append(SplitShare(person=person, amount=amount))
    return shares


def print_transactions(transactions: list[Transaction]) -> None:
    for tx in transactions:
        status = ""
        if tx.is_split:
            owed = [s.person for s in tx.split_details if not s.is_self and not s.payment_received]
            status = f"split, pending: {', '.join(owed)}" if owed else "split, settled"
        elif not tx.is_self and tx.transaction_type is not TransactionType.INCOME:
            status = "received" if tx.payment_received else "pending"
        print(
            f"{tx.date}  {money(tx.amount):>12}  {tx.title[:32]:<32}  "
            f"{tx.transaction_type.value:<8}  {tx.payment_mode.value:<11}  "
            f"{tx.for_whom:<12}  {status}  [{tx.id}]"
        )


def cmd_add(store: LedgerStore, args: argparse.Namespace) -> int:
    split_details: list[SplitShare] = []
    if args.split:
        split_details = parse_split(args.split)
    elif args.split_equally:
        amount = parse_amount(args.amount)
        if amount is None:
            print(f"Error: Amount is not a number: {args.amount!r}", file=sys.stderr)
            return 1
        split_details = split_equally(amount, args.split_equally.split(","))

    draft = TransactionDraft(
        title=args.title,
        amount=args.amount,
        payment_mode=args.mode,
        for_whom=args.for_whom,
        date=args.date or date.today(),
        transaction_type=args.type,
        payment_received=args.received,
        is_split=bool(split_details),
        split_details=split_details,
    )
    tx = store.add_transaction(draft)
    print(f"Added {tx.title} ({money(tx.amount)}) [{tx.id}]", file=sys.stderr)
    return 0


def cmd_list(store: LedgerStore, args: argparse.Namespace) -> int:
    result = store.list_transactions()
    criteria = FilterCriteria(
        month=args.month,
        transaction_types=Selection.of(TransactionType.parse(t) for t in args.type or []),
        payment_modes=Selection.of(PaymentMode.parse(m) for m in args.mode or []),
        for_whom=Selection.of(args.for_whom or []),
    )
    transactions = filter_transactions(result.transactions, criteria)
    print_transactions(transactions)
    print(f"{len(transactions)} transactions in {month_label(args.month)}", file=sys.stderr)
    for violation in result.violations:
        print(f"Warning: {violation}", file=sys.stderr)
    return 0


def cmd_summary(store: LedgerStore, args: argparse.Namespace) -> int:
    snapshot = store.snapshot()
    summary = summarize_month(snapshot.transactions, args.month, snapshot.violations)
    status = budget_status(find_budget(snapshot.budgets, args.month), summary.net_amount)

    if args.json:
        payload = {
            "month": summary.month.isoformat(),
            "totalSpentByMe": str(summary.total_spent_by_me),
            "totalSpentForOthers": str(summary.total_spent_for_others),
            "totalReceived": str(summary.total_received),
            "totalPending": str(summary.total_pending),
            "totalIncome": str(summary.total_income),
            "totalDonations": str(summary.total_donations),
            "totalLent": str(summary.total_lent),
            "receivedLent": str(summary.received_lent),
            "pendingLent": str(summary.pending_lent),
            "netAmount": str(summary.net_amount),
            "paymentModeTotals": {
                mode.value: str(total) for mode, total in summary.payment_mode_totals.items()
            },
            "moneyToCollect": [
                {
                    "person": dues.person,
                    "amount": str(dues.amount),
                    "count": dues.count,
                    "transactionIds": [tx.id for tx in dues.transactions],
                }
                for dues in summary.money_to_collect
            ],
            "totalToCollect": str(summary.total_to_collect),
            "budget": {
                "status": status.tier.value,
                "amount": str(status.budget_amount) if status.budget_amount is not None else None,
                "remaining": str(status.remaining) if status.remaining is not None else None,
            },
            "unparseable": summary.unparseable_count,
        }
        print(json.dumps(payload, indent=2))
        return 0

    print(f"{month_label(summary.month)} Summary\n")
    if status.budget_amount is None:
        print("  Budget:               not set")
    else:
        pct = f" ({status.percentage:.1f}%)" if status.percentage is not None else ""
        print(f"  Budget:               {money(status.budget_amount)} [{status.tier.value}]")
        print(f"  Spent:                {money(status.spent)}{pct}")
        remaining = status.remaining or Decimal(0)
        if status.is_over:
            print(f"  Over by:              {money(abs(remaining))}")
        else:
            print(f"  Remaining:            {money(remaining)}")
    print()
    print(f"  Total spent by me:    {money(summary.total_spent_by_me)}")
    print(f"  Spent for others:     {money(summary.total_spent_for_others)}")
    print(f"    Received:           {money(summary.total_received)}")
    print(f"    Pending:            {money(summary.total_pending)}")
    print(f"  Income:               {money(summary.total_income)}")
    print(f"  Donations:            {money(summary.total_donations)}")
    print(f"  Lent:                 {money(summary.total_lent)} "
          f"(pending {money(summary.pending_lent)})")
    print(f"  Net amount:           {money(summary.net_amount)}")
    print("\n  By payment mode:")
    for mode, total in summary.payment_mode_totals.items():
        print(f"    {mode.value:<18}  {money(total)}")
    print(f"\n  Transactions: {summary.transaction_count} "
          f"(self {summary.self_count}, others {summary.other_count})")

    if summary.diagnostics:
        print(f"\nWarning: {summary.unparseable_count} records could not be read",
              file=sys.stderr)
        if args.verbose:
            for violation in summary.diagnostics:
                print(f"  - {violation}", file=sys.stderr)
    return 0


def cmd_dues(store: LedgerStore, args: argparse.Namespace) -> int:
    result = store.list_transactions()
    summary = summarize_month(result.transactions, args.month, result.violations)

    if not summary.money_to_collect:
        print(f"Nothing to collect for {month_label(summary.month)}", file=sys.stderr)
        return 0

    for dues in summary.money_to_collect:
        plural = "s" if dues.count != 1 else ""
        print(f"{dues.person}: {money(dues.amount)} ({dues.count} transaction{plural})")
        for tx in dues.transactions:
            print(f"    {tx.date}  {money(tx.amount):>12}  {tx.title}  [{tx.id}]")
    print(f"\nTotal to collect: {money(summary.total_to_collect)}")
    return 0


def cmd_budget(store: LedgerStore, args: argparse.Namespace) -> int:
    if args.action == "set":
        if args.amount is None:
            print("Error: budget set needs an amount", file=sys.stderr)
            return 1
        budget = store.set_budget(args.month, args.amount)
        print(f"Budget for {month_label(budget.month)}: {money(budget.amount)}", file=sys.stderr)
        return 0

    if args.action == "delete":
        if store.delete_budget(args.month):
            print(f"Deleted budget for {month_label(args.month)}", file=sys.stderr)
            return 0
        print(f"No budget set for {month_label(args.month)}", file=sys.stderr)
        return 1

    budgets, _ = store.list_budgets()
    if not budgets:
        print("No budgets set", file=sys.stderr)
    for budget in budgets:
        print(f"{month_label(budget.month):<10}  {money(budget.amount)}")
    return 0


def cmd_trend(store: LedgerStore, args: argparse.Namespace) -> int:
    snapshot = store.snapshot()
    series = build_trend(snapshot.transactions, snapshot.budgets)

    if isinstance(series, NotEnoughData):
        if series.months_tracked == 0:
            print("Track expenses for 2 or more months to see spending trends.")
        else:
            print(f"You've tracked {series.months_tracked} month. "
                  f"Track {series.months_needed} more to unlock spending trends "
                  f"({series.progress:.0f}%).")
        return 0

    print(f"{'Month':<10}  {'Spent by me':>14}  {'Net':>14}  {'Budget':>14}")
    for point in series:
        budget = money(point.budget) if point.budget is not None else "-"
        print(f"{point.label:<10}  {money(point.total_spent_by_me):>14}  "
              f"{money(point.net_amount):>14}  {budget:>14}")
    return 0


def cmd_mark_received(store: LedgerStore, args: argparse.Namespace) -> int:
    tx = store.mark_payment_received(args.id, received=not args.undo, person=args.person)
    state = "pending" if args.undo else "received"
    who = args.person or tx.for_whom
    print(f"Marked {tx.title} ({who}) as {state}", file=sys.stderr)
    return 0


def cmd_delete(store: LedgerStore, args: argparse.Namespace) -> int:
    store.delete_transaction(args.id)
    print(f"Deleted {args.id}", file=sys.stderr)
    return 0


def cmd_seed(store: LedgerStore, args: argparse.Namespace) -> int:
    for title, amount, mode in SAMPLE_EXPENSES:
        store.add_transaction(
            TransactionDraft(
                title=title,
                amount=amount,
                payment_mode=mode,
                for_whom="self",
                date=date.today(),
            )
        )
        print(f"Added: {title}", file=sys.stderr)
    print("Sample data seeded", file=sys.stderr)
    return 0


def mask_api_key(api_key: str) -> str:
    return api_key[:8] + "..." + api_key[-4:] if len(api_key) > 12 else "***"


def show_config(config: dict[str, Any] | None, data_path: Path | None) -> int:
    if not config:
        print("No configuration found; using the JSON store at "
              f"{get_data_path(None, data_path)}")
        print("Run 'expense-ledger init-config' to create one.")
        return 0

    shown = copy.deepcopy(config)
    firestore = shown.get("firestore") or {}
    if firestore.get("api_key"):
        firestore["api_key"] = mask_api_key(firestore["api_key"])
    print(json.dumps(shown, indent=2))
    return 0


def init_config(config_path: Path | None, force: bool = False) -> int:
    """Write a default config file."""
    path = config_path or get_config_path()
    if path.exists() and not force:
        print(f"Config already exists: {path} (use --force to overwrite)", file=sys.stderr)
        return 1
    saved = save_json_config(create_default_config(), path)
    print(f"Created config at {saved}", file=sys.stderr)
    return 0


def month_arg(value: str) -> date:
    try:
        return parse_month(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="expense-ledger",
        description="Track expenses, split bills and monthly budgets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  expense-ledger add "Groceries" 1250 --mode UPI
  expense-ledger add "Dinner" 900 --mode "Credit Card" --split "Self=300,Raj=300,Priya=300"
  expense-ledger add "Loan to Raj" 5000 --mode UPI --type lent --for Raj
  expense-ledger summary --month 2024-01
  expense-ledger budget set 25000 --month 2024-01
  expense-ledger dues
  expense-ledger trend
  expense-ledger init-config
        """,
    )
    parser.add_argument("--config", type=Path, help="Path to config.json file")
    parser.add_argument("--data", type=Path, help="Path to the JSON ledger file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    this_month = date.today().replace(day=1)
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    add = sub.add_parser("add", help="Record a transaction")
    add.add_argument("title")
    add.add_argument("amount")
    add.add_argument(
        "--mode",
        default=PaymentMode.UPI.value,
        choices=[m.value for m in PaymentMode],
        help="Payment mode (default: UPI)",
    )
    add.add_argument("--for", dest="for_whom", default="Self", help="For/from whom (default: Self)")
    add.add_argument("--date", help="Transaction date, YYYY-MM-DD (default: today)")
    add.add_argument(
        "--type",
        default=TransactionType.EXPENSE.value,
        choices=[t.value for t in TransactionType],
        help="Transaction type (default: expense)",
    )
    add.add_argument("--received", action="store_true", help="Payment already received")
    group = add.add_mutually_exclusive_group()
    group.add_argument("--split", help='Split shares, e.g. "Self=300,Raj=300"')
    group.add_argument("--split-equally", help='Split evenly with people, e.g. "Raj,Priya"')

    lst = sub.add_parser("list", help="List transactions for a month")
    lst.add_argument("--month", type=month_arg, default=this_month, help="YYYY-MM")
    lst.add_argument("--type", action="append", choices=[t.value for t in TransactionType])
    lst.add_argument("--mode", action="append", choices=[m.value for m in PaymentMode])
    lst.add_argument("--for", dest="for_whom", action="append")

    summary = sub.add_parser("summary", help="Monthly summary and budget status")
    summary.add_argument("--month", type=month_arg, default=this_month, help="YYYY-MM")
    summary.add_argument("--json", action="store_true", help="Print as JSON")

    dues = sub.add_parser("dues", help="Money to collect, grouped by person")
    dues.add_argument("--month", type=month_arg, default=this_month, help="YYYY-MM")

    budget = sub.add_parser("budget", help="Set, show or delete monthly budgets")
    budget.add_argument("action", choices=["set", "show", "delete"])
    budget.add_argument("amount", nargs="?")
    budget.add_argument("--month", type=month_arg, default=this_month, help="YYYY-MM")

    sub.add_parser("trend", help="Month-over-month spending")

    mark = sub.add_parser("mark-received", help="Mark money owed as received")
    mark.add_argument("id")
    mark.add_argument("--person", help="Person whose split share was received")
    mark.add_argument("--undo", action="store_true", help="Mark as pending again")

    delete = sub.add_parser("delete", help="Delete a transaction")
    delete.add_argument("id")

    sub.add_parser("seed", help="Add sample expenses for today")
    sub.add_parser("show-config", help="Show current configuration")

    init = sub.add_parser("init-config", help="Write a default config file")
    init.add_argument("--force", action="store_true", help="Overwrite an existing config")

    return parser


COMMANDS = {
    "add": cmd_add,
    "list": cmd_list,
    "summary": cmd_summary,
    "dues": cmd_dues,
    "budget": cmd_budget,
    "trend": cmd_trend,
    "mark-received": cmd_mark_received,
    "delete": cmd_delete,
    "seed": cmd_seed,
}


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    if not args.command:
        parser.print_help()
        return 1

    # Handle init-config before loading config
    if args.command == "init-config":
        try:
            return init_config(args.config, force=args.force)
        except OSError as e:
            print(f"Error: could not write config: {e}", file=sys.stderr)
            return 1

    try:
        config: dict[str, Any] | None = load_config(args.config)
    except (OSError, json.JSONDecodeError) as e:
        print(f"Error: could not load config: {e}", file=sys.stderr)
        return 1

    if args.command == "show-config":
        return show_config(config, args.data)

    try:
        store = build_store(config, args.data)
        return COMMANDS[args.command](store, args)
    except (LedgerError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
