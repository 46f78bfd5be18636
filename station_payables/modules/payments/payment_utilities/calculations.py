"""
payment_utilities/calculations.py

Pure money helpers for supplier payment allocation and previews.

Do not import collaborators or perform I/O here.
Only compute numbers; formatting belongs to the caller.
All inputs and outputs are Decimal.
"""
from __future__ import annotations

from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable

__all__ = [
    "ZERO",
    "clamp_non_negative",
    "clamp",
    "round_to_step",
    "round_down_to_step",
    "sum_amounts",
    "max_applicable",
    "is_multiple_of_step",
]

ZERO = Decimal("0")
_DEFAULT_STEP = Decimal("0.01")


# -----------------------------
# Core utilities
# -----------------------------

def clamp_non_negative(x: Decimal) -> Decimal:
    """Return x if x > 0, else 0."""
    return x if x > ZERO else ZERO


def clamp(x: Decimal, lo: Decimal, hi: Decimal) -> Decimal:
    if x < lo:
        return lo
    if x > hi:
        return hi
    return x


def _step(step: Decimal | None) -> Decimal:
    if step is None or step <= ZERO:
        return _DEFAULT_STEP
    return step


def _whole_steps(x: Decimal, q: Decimal, rounding: str) -> Decimal:
    try:
        return (x / q).quantize(Decimal("1"), rounding=rounding) * q
    except InvalidOperation as e:
        # quotient has more digits than the context precision allows
        raise ValueError(f"Amount {x} is too large to round to {q}") from e


def round_to_step(x: Decimal, step: Decimal | None = None) -> Decimal:
    """Round to the nearest step using half-up (typical financial rounding).

    Raises ValueError when x is too large to be expressed in whole steps.
    """
    return _whole_steps(x, _step(step), ROUND_HALF_UP)


def round_down_to_step(x: Decimal, step: Decimal | None = None) -> Decimal:
    """Round DOWN (toward zero) to a multiple of step. 10.037 at 0.01 -> 10.03."""
    return _whole_steps(x, _step(step), ROUND_DOWN)


def is_multiple_of_step(x: Decimal, step: Decimal | None = None) -> bool:
    q = _step(step)
    return (x % q) == ZERO


def sum_amounts(amounts: Iterable[Decimal]) -> Decimal:
    total = ZERO
    for a in amounts:
        total += a
    return total


# -----------------------------
# Allocation helpers
# -----------------------------

def max_applicable(remaining_balance: Decimal, available: Decimal) -> Decimal:
    """
    The most that can go to one invoice right now:
    min(remaining_balance, available), both clamped at >= 0.
    """
    a = clamp_non_negative(remaining_balance)
    b = clamp_non_negative(available)
    return a if a < b else b
