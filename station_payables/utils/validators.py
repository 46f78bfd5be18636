# utils/validators.py
from decimal import Decimal

from .helpers import to_decimal


def non_empty(text) -> bool:
    """
    True if `text` is not None/empty after stripping whitespace.
    """
    return bool(text is not None and str(text).strip())


# ---- Numeric parsing & validators ----

def try_parse_decimal(x):
    """
    Best-effort parse to Decimal.

    Returns:
        (ok: bool, value: Decimal|None)
    """
    if x is None:
        return False, None
    try:
        return True, to_decimal(x)
    except ValueError:
        return False, None


def is_non_negative_number(x) -> bool:
    """
    True iff x parses to a number and value >= 0.
    """
    ok, val = try_parse_decimal(x)
    return bool(ok and val is not None and val >= Decimal("0"))


def is_strictly_positive_number(x) -> bool:
    """
    True iff x parses to a number and value > 0.
    """
    ok, val = try_parse_decimal(x)
    return bool(ok and val is not None and val > Decimal("0"))
