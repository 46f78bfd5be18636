# utils/helpers.py
from datetime import date
from decimal import Decimal, InvalidOperation
import logging
from typing import Union, Optional

from ..constants import CURRENCY_CODE

NumberLike = Union[Decimal, float, int, str]

_log = logging.getLogger(__name__)


def today_str() -> str:
    """Return today's date as ISO string (YYYY-MM-DD)."""
    return date.today().isoformat()


def to_decimal(v: NumberLike) -> Decimal:
    """
    Convert a number-like value to Decimal via its string form, so 0.1 stays 0.1.
    Raises ValueError if the value cannot be parsed.
    """
    if isinstance(v, Decimal):
        return v
    if isinstance(v, bool):
        raise ValueError(f"Could not parse {v!r} as a number.")
    try:
        d = Decimal(str(v).strip())
    except (InvalidOperation, ValueError, TypeError) as e:
        raise ValueError(f"Could not parse {v!r} as a number.") from e
    if not d.is_finite():
        raise ValueError(f"Could not parse {v!r} as a number.")
    return d


def fmt_money(
    v: NumberLike,
    places: int = 2,
    *,
    currency: Optional[str] = CURRENCY_CODE,
    strict: bool = False,
    sentinel: Optional[str] = None,
) -> str:
    """
    Format a number as money with thousands separators and a fixed number of decimals,
    prefixed with the currency code ("KES 1,250.00").

    Behavior on parse failure:
      - By default returns str(v).
      - If `sentinel` is provided (e.g., "N/A"), returns that sentinel instead.
      - If `strict=True`, raises ValueError.
    """
    try:
        x = to_decimal(v)
    except ValueError as e:
        _log.debug("fmt_money: failed to parse %r: %s", v, e)
        if strict:
            raise
        return str(sentinel) if sentinel is not None else str(v)
    text = f"{x:,.{places}f}"
    return f"{currency} {text}" if currency else text
