# station_payables/modules/payments/supplier_payments/allocations_model.py
"""
Allocator that splits one supplier payment across outstanding invoices.

- Inputs: invoices from the session snapshot (remaining_balance > 0)
- Strategies: oldest_first (automatic), manual edits, highest_first suggestion
- Output: Allocation rows in the order they were filled
- Pure: never touches collaborators; session edits only mutate session.allocations
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from ....utils.helpers import to_decimal
from ..payment_utilities.calculations import ZERO, clamp, max_applicable, sum_amounts
from .ledger_view import Invoice, sorted_by_due_date
from .payment_session import Allocation, PaymentSession

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentSummary:
    payment_amount: Decimal
    total_allocated: Decimal
    credit_balance: Decimal

    @property
    def is_overpayment(self) -> bool:
        """Part of the payment is not allocated to any invoice."""
        return self.credit_balance > ZERO

    @property
    def is_valid(self) -> bool:
        return self.total_allocated <= self.payment_amount


# ---------------------------------------------------------------- automatic

def _fill(payment_amount: Decimal, ordered: Iterable[Invoice]) -> Tuple[List[Allocation], Decimal]:
    pool = payment_amount
    rows: List[Allocation] = []
    for inv in ordered:
        if pool <= ZERO:
            break
        want = max_applicable(inv.remaining_balance, pool)
        if want <= ZERO:
            continue
        rows.append(Allocation(invoice_id=inv.id, amount=want))
        pool -= want
    return rows, pool


def _require_positive(payment_amount) -> Decimal:
    amount = to_decimal(payment_amount)
    if amount <= ZERO:
        raise ValueError("payment amount must be positive to allocate")
    return amount


def auto_allocate(payment_amount, invoices: Iterable[Invoice]) -> Tuple[List[Allocation], Decimal]:
    """
    Oldest-first: walk invoices by due date and give each
    min(remaining_balance, what is left of the payment).

    Returns (allocations, leftover). leftover > 0 only when the payment is larger
    than the combined remaining balance.

    Raises:
        ValueError: if payment_amount <= 0
    """
    amount = _require_positive(payment_amount)
    rows, leftover = _fill(amount, sorted_by_due_date(invoices))
    _log.debug("auto_allocate %s -> %d rows, leftover %s", amount, len(rows), leftover)
    return rows, leftover


def suggest_highest_first(payment_amount, invoices: Iterable[Invoice]) -> Tuple[List[Allocation], Decimal]:
    """
    Suggestion only: largest remaining balance first (ties by due date, then id).
    Sessions apply the result as a manual allocation set.
    """
    amount = _require_positive(payment_amount)
    ordered = sorted(
        sorted_by_due_date(invoices),
        key=lambda inv: -inv.remaining_balance,
    )
    return _fill(amount, ordered)


# ---------------------------------------------------------------- manual edits

def _snapshot_balance(session: PaymentSession, invoice_id: str) -> Decimal:
    bal = session.snapshot_balances.get(str(invoice_id))
    if bal is None:
        raise KeyError(f"Invoice {invoice_id!r} is not in this supplier's outstanding invoices")
    return bal


def add_or_update_allocation(session: PaymentSession, invoice_id: str, amount) -> Optional[Allocation]:
    """
    Set the allocation for one invoice. The amount is clamped to
    [0, remaining balance]; a result of 0 removes the allocation (returns None).
    Existing rows keep their position. The caller re-validates the total afterwards.

    Raises:
        KeyError: if the invoice is not part of the session snapshot
    """
    remaining = _snapshot_balance(session, invoice_id)
    value = clamp(to_decimal(amount), ZERO, remaining)
    key = str(invoice_id)

    if value <= ZERO:
        remove_allocation(session, key)
        return None

    alloc = Allocation(invoice_id=key, amount=value)
    for i, existing in enumerate(session.allocations):
        if existing.invoice_id == key:
            session.allocations[i] = alloc
            break
    else:
        session.allocations.append(alloc)
    return alloc


def remove_allocation(session: PaymentSession, invoice_id: str) -> None:
    key = str(invoice_id)
    session.allocations[:] = [a for a in session.allocations if a.invoice_id != key]


def clear_allocations(session: PaymentSession) -> None:
    session.allocations.clear()


def replace_allocations(session: PaymentSession, rows: Iterable[Allocation]) -> None:
    session.allocations[:] = list(rows)


# ---------------------------------------------------------------- totals

def total_allocated(session: PaymentSession) -> Decimal:
    return sum_amounts(a.amount for a in session.allocations)


def credit_balance(session: PaymentSession) -> Decimal:
    """payment_amount - total_allocated; positive means under-allocated."""
    return to_decimal(session.payment_amount) - total_allocated(session)


def payment_summary(session: PaymentSession) -> PaymentSummary:
    total = total_allocated(session)
    amount = to_decimal(session.payment_amount)
    return PaymentSummary(payment_amount=amount, total_allocated=total, credit_balance=amount - total)
