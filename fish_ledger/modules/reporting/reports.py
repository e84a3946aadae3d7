# fish_ledger/modules/reporting/reports.py
from __future__ import annotations

import sqlite3
from datetime import date
from typing import List, Optional

from ...constants import PARTY_CUSTOMER, PARTY_FARMER, PARTY_TYPES
from ...database.repositories.customers_repo import CustomersRepo
from ...database.repositories.farmers_repo import FarmersRepo
from ...database.repositories.payments_repo import PaymentsRepo
from ...database.repositories.purchase_bills_repo import PurchaseBillsRepo
from ...database.repositories.sales_bills_repo import SalesBillsRepo
from ...utils.helpers import parse_iso_date, today_str
from ..billing.models import Outstanding
from .ledger import Ledger, build_ledger
from .outstanding import open_bills, summarize_outstanding


class OutstandingReports:
    """
    Outstanding balances and statements built on top of the bill/payment repos.
    The numbers come from the pure aggregator; this class only loads rows.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn
        self.payments = PaymentsRepo(conn)

    def _bills(self, party_type: str, party_id: int) -> list:
        if party_type == PARTY_FARMER:
            return PurchaseBillsRepo(self.conn).list_by_farmer(party_id)
        if party_type == PARTY_CUSTOMER:
            return SalesBillsRepo(self.conn).list_by_customer(party_id)
        raise ValueError(f"party_type must be one of: {', '.join(PARTY_TYPES)}")

    def _parties(self, party_type: str) -> list[tuple[int, str]]:
        if party_type == PARTY_FARMER:
            return [(f.farmer_id, f.name) for f in FarmersRepo(self.conn).list_farmers(active_only=False)]
        return [(c.customer_id, c.name) for c in CustomersRepo(self.conn).list_customers(active_only=False)]

    def outstanding_for(self, party_type: str, party_id: int) -> Outstanding:
        return summarize_outstanding(party_id, self._bills(party_type, party_id))

    def unallocated_total(self, party_type: str, party_id: int) -> float:
        """Advance held for the party: payment amounts no bill absorbed."""
        return sum(
            self.payments.unallocated_amount(p.id)
            for p in self.payments.list_by_party(party_type, party_id)
        )

    def outstanding_snapshot(self, party_type: str, include_settled: bool = False) -> List[dict]:
        """
        Returns one row per party:
          {
            "party_id": int,
            "name": str,
            "total_outstanding": float,
            "unpaid_bills_count": int,
            "oldest_bill_date": "YYYY-MM-DD" | None,
            "unallocated": float
          }
        Parties with nothing outstanding are skipped unless include_settled.
        """
        out: List[dict] = []
        for party_id, name in self._parties(party_type):
            o = self.outstanding_for(party_type, party_id)
            if o.unpaid_bills_count == 0 and not include_settled:
                continue
            out.append(
                {
                    "party_id": party_id,
                    "name": name,
                    "total_outstanding": o.total_outstanding,
                    "unpaid_bills_count": o.unpaid_bills_count,
                    "oldest_bill_date": o.oldest_bill_date,
                    "unallocated": self.unallocated_total(party_type, party_id),
                }
            )
        # Sort by Name ascending for stable presentation
        out.sort(key=lambda r: (r["name"] or "").lower())
        return out

    def list_open_bills(self, party_type: str, party_id: int, as_of: Optional[str] = None) -> List[dict]:
        """
        Open bills oldest first, with:
          {"bill_id", "bill_number", "date", "total", "amount_paid", "balance_due", "days_outstanding"}
        """
        asof: date = parse_iso_date(as_of or today_str())
        rows: List[dict] = []
        for b in open_bills(self._bills(party_type, party_id)):
            rows.append(
                {
                    "bill_id": b.id,
                    "bill_number": b.bill_number,
                    "date": b.bill_date,
                    "total": b.total,
                    "amount_paid": b.amount_paid,
                    "balance_due": b.balance_due,
                    "days_outstanding": (asof - parse_iso_date(b.bill_date)).days,
                }
            )
        return rows

    def ledger_for(
        self,
        party_type: str,
        party_id: int,
        start: Optional[str] = None,
        end: Optional[str] = None,
    ) -> Ledger:
        return build_ledger(
            party_id,
            self._bills(party_type, party_id),
            self.payments.list_by_party(party_type, party_id),
            start=start,
            end=end,
        )
