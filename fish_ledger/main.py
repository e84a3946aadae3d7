# fish_ledger/main.py
"""
Command-line entry point: `python -m fish_ledger <command>`.

    init-db       create/upgrade the ledger database
    outstanding   outstanding balance per farmer or customer
    ledger        statement for one party (bills + payments, running balance)
    bill-text     the shareable text of one bill
"""
from __future__ import annotations

import argparse
import sys
from typing import Optional, Sequence

from .constants import BILL_PURCHASE, BILL_SALES, PARTY_CUSTOMER, PARTY_FARMER, PARTY_TYPES
from .database import get_connection
from .database.repositories import (
    CustomersRepo,
    FarmersRepo,
    PurchaseBillsRepo,
    SalesBillsRepo,
)
from .errors import BillingError
from .modules.reporting.bill_text import render_purchase_bill_text, render_sales_bill_text
from .modules.reporting.reports import OutstandingReports
from .utils.helpers import fmt_money
from .utils.loggers import get_logger


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="fish_ledger", description="Fish trading bills & payments ledger")
    parser.add_argument("--db", help="Path to SQLite DB (defaults to FISH_LEDGER_DB or data/fish_ledger.db)")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING...")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create or upgrade the database schema")

    p_out = sub.add_parser("outstanding", help="Outstanding balance per party")
    p_out.add_argument("--party", choices=PARTY_TYPES, default=PARTY_CUSTOMER)
    p_out.add_argument("--id", type=int, help="Only this party")
    p_out.add_argument("--all", action="store_true", help="Include settled parties")

    p_led = sub.add_parser("ledger", help="Statement for one party")
    p_led.add_argument("--party", choices=PARTY_TYPES, default=PARTY_CUSTOMER)
    p_led.add_argument("--id", type=int, required=True)
    p_led.add_argument("--from", dest="start", help="YYYY-MM-DD")
    p_led.add_argument("--to", dest="end", help="YYYY-MM-DD")

    p_txt = sub.add_parser("bill-text", help="Print the shareable text of a bill")
    p_txt.add_argument("--type", choices=(BILL_PURCHASE, BILL_SALES), default=BILL_SALES)
    p_txt.add_argument("--id", type=int, required=True)
    return parser


def _cmd_outstanding(conn, args) -> None:
    reports = OutstandingReports(conn)
    if args.id is not None:
        o = reports.outstanding_for(args.party, args.id)
        print(f"{args.party} {o.party_id}: outstanding {fmt_money(o.total_outstanding)} "
              f"across {o.unpaid_bills_count} bill(s); oldest {o.oldest_bill_date or '-'}")
        for row in reports.list_open_bills(args.party, args.id):
            print(f"  {row['bill_number']}  {row['date']}  due {fmt_money(row['balance_due']):>14}  "
                  f"({row['days_outstanding']} days)")
        return
    rows = reports.outstanding_snapshot(args.party, include_settled=args.all)
    if not rows:
        print("Nothing outstanding.")
        return
    for row in rows:
        print(f"{row['party_id']:>5}  {row['name']:<30} {fmt_money(row['total_outstanding']):>14}  "
              f"bills={row['unpaid_bills_count']}  oldest={row['oldest_bill_date'] or '-'}  "
              f"advance={fmt_money(row['unallocated'])}")
    print(f"Total: {fmt_money(sum(r['total_outstanding'] for r in rows))}")


def _cmd_ledger(conn, args) -> None:
    ledger = OutstandingReports(conn).ledger_for(args.party, args.id, start=args.start, end=args.end)
    print(f"Opening balance: {fmt_money(ledger.opening_balance)}")
    for e in ledger.entries:
        print(f"{e.date}  {e.kind:<8} {e.reference:<18} "
              f"{fmt_money(e.debit):>14} {fmt_money(e.credit):>14} {fmt_money(e.balance):>14}")
    print(f"Debits {fmt_money(ledger.total_debit)}  Credits {fmt_money(ledger.total_credit)}  "
          f"Closing {fmt_money(ledger.closing_balance)}")
    print(f"Outstanding now: {fmt_money(ledger.outstanding.total_outstanding)}")


def _cmd_bill_text(conn, args) -> None:
    if args.type == BILL_PURCHASE:
        bill = PurchaseBillsRepo(conn).require(args.id)
        print(render_purchase_bill_text(bill, FarmersRepo(conn).require(bill.farmer_id).name), end="")
    else:
        bill = SalesBillsRepo(conn).require(args.id)
        print(render_sales_bill_text(bill, CustomersRepo(conn).require(bill.customer_id).name), end="")


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    log = get_logger(level=args.log_level.upper() if args.log_level else None)

    conn = get_connection(args.db)
    try:
        if args.command == "init-db":
            print("Database ready.")
        elif args.command == "outstanding":
            _cmd_outstanding(conn, args)
        elif args.command == "ledger":
            _cmd_ledger(conn, args)
        elif args.command == "bill-text":
            _cmd_bill_text(conn, args)
    except BillingError as e:
        log.error("%s", e)
        return 1
    finally:
        conn.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
