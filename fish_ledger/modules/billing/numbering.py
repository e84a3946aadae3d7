"""
billing/numbering.py

Sequential bill numbers of the form PREFIX-NNNN.

The next number is the highest sequential suffix seen under the prefix + 1,
zero-padded to four digits. Suffixes that look like epoch-millisecond
timestamps (13+ digits, left over from the fallback below) never seed the
sequence.
"""
from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Iterable, Optional

from ...constants import BILL_NUMBER_PAD

_log = logging.getLogger(__name__)

# suffixes this long are timestamp fallbacks, not sequence values
_TIMESTAMP_DIGITS = 13


def parse_sequence(bill_number: Optional[str], prefix: str) -> Optional[int]:
    """Return the sequential suffix of 'PREFIX-0042' (42), or None if it is not one."""
    if not bill_number:
        return None
    m = re.fullmatch(rf"{re.escape(prefix)}-(\d+)", str(bill_number).strip())
    if not m:
        return None
    digits = m.group(1)
    if len(digits) >= _TIMESTAMP_DIGITS:
        return None
    return int(digits)


def format_bill_number(prefix: str, seq: int) -> str:
    return f"{prefix}-{seq:0{BILL_NUMBER_PAD}d}"


def timestamp_bill_number(prefix: str, now: datetime) -> str:
    return f"{prefix}-{int(now.timestamp() * 1000)}"


def next_bill_number(prefix: str, existing_numbers: Iterable[Optional[str]], now: datetime) -> str:
    """
    Next bill number under `prefix`.

    - No bill under the prefix yet      -> PREFIX-0001
    - Highest sequential suffix N       -> PREFIX-(N+1)
    - Bills exist but none is sequential -> PREFIX-<epoch millis of `now`>
    """
    under_prefix = [n for n in existing_numbers if n and str(n).startswith(f"{prefix}-")]
    seqs = [s for s in (parse_sequence(n, prefix) for n in under_prefix) if s is not None]
    if seqs:
        return format_bill_number(prefix, max(seqs) + 1)
    if not under_prefix:
        return format_bill_number(prefix, 1)

    fallback = timestamp_bill_number(prefix, now)
    _log.warning(
        "No sequential %s bill number among %d existing; using timestamp number %s",
        prefix, len(under_prefix), fallback,
    )
    return fallback
