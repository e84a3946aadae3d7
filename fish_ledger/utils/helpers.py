# utils/helpers.py
from datetime import date, datetime
import logging
from typing import Union, Optional

from ..constants import DATE_FORMAT

NumberLike = Union[float, int, str]

_log = logging.getLogger(__name__)


def today_str() -> str:
    """Return today's date as ISO string (YYYY-MM-DD)."""
    return date.today().isoformat()


def parse_iso_date(value: Union[str, date]) -> date:
    """Accept a `date` or a 'YYYY-MM-DD' string; raise ValueError otherwise."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(str(value).strip(), DATE_FORMAT).date()


def iso(value: Union[str, date]) -> str:
    return parse_iso_date(value).isoformat()


def fmt_money(
    v: NumberLike,
    places: int = 2,
    *,
    strict: bool = False,
    sentinel: Optional[str] = None,
) -> str:
    """
    Format a number as money with thousands separators and a fixed number of decimals.

    This is the only place amounts get rounded; the billing engine keeps
    full float precision.

    Behavior on parse failure:
      - By default returns str(v).
      - If `sentinel` is provided (e.g., "N/A"), returns that sentinel instead.
      - If `strict=True`, raises ValueError.
    """
    try:
        x = float(v)
    except (TypeError, ValueError) as e:
        _log.debug("fmt_money: failed to parse %r as float: %s", v, e)
        if strict:
            raise ValueError(f"Could not parse {v!r} as a number.") from e
        return str(sentinel) if sentinel is not None else str(v)
    # avoid printing "-0.00" for tiny negative float residue
    if abs(x) < 0.5 * 10 ** (-places):
        x = 0.0
    return f"{x:,.{places}f}"


def fmt_weight(v: NumberLike, places: int = 2) -> str:
    return f"{fmt_money(v, places)} kg"
