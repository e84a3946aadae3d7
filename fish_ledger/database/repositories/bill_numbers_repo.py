from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from typing import Optional

from ...errors import BillNumberingError
from ...modules.billing.numbering import next_bill_number

_log = logging.getLogger(__name__)

# tables that carry a bill_number column
_BILL_TABLES = ("purchase_bills", "sales_bills")


class BillNumbersRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def _existing_numbers(self, table: str, prefix: str) -> list[str]:
        rows = self.conn.execute(
            f"SELECT bill_number FROM {table} WHERE bill_number LIKE ?",
            (f"{prefix}-%",),
        ).fetchall()
        return [r["bill_number"] for r in rows]

    def next_number(self, table: str, prefix: str, now: Optional[datetime] = None) -> str:
        """
        Read existing numbers under `prefix` and return the next one.
        A failed read is retried once; the second failure raises BillNumberingError.
        """
        if table not in _BILL_TABLES:
            raise ValueError(f"not a bill table: {table!r}")
        now = now or datetime.now()
        try:
            existing = self._existing_numbers(table, prefix)
        except sqlite3.OperationalError as first:
            _log.warning("reading %s bill numbers failed (%s); retrying once", prefix, first)
            try:
                existing = self._existing_numbers(table, prefix)
            except sqlite3.OperationalError as e:
                raise BillNumberingError(
                    f"Could not read existing {prefix} bill numbers.", original=e
                ) from e
        return next_bill_number(prefix, existing, now)
