# station_payables/modules/payments/supplier_payments/validation.py
"""
Gating rules for each step of a supplier payment.

Every function here is pure: it reads the session (and snapshot) and returns a
list of FieldError. An empty list means the transition may proceed. Nothing is
raised for bad user input and the session is never mutated.
"""

from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from ....utils.helpers import fmt_money, to_decimal
from ....utils.validators import non_empty
from ..payment_utilities.calculations import ZERO
from .allocations_model import total_allocated
from .errors import ErrorCode, FieldError
from .ledger_view import SupplierAccount
from .payment_session import ApplicationMethod, MethodOptions, PaymentMethod, PaymentSession

__all__ = [
    "validate_details",
    "validate_for_submission",
    "validate_against_fresh",
    "validate_method_detail",
]


def _amount(session: PaymentSession) -> Optional[Decimal]:
    try:
        return to_decimal(session.payment_amount)
    except ValueError:
        return None


def validate_method_detail(session: PaymentSession, options: Optional[MethodOptions] = None) -> List[FieldError]:
    """Method must be recognised and carry its required field (and, if known, an existing id)."""
    errors: List[FieldError] = []
    method = session.payment_method
    detail = session.method_detail

    if not isinstance(method, PaymentMethod):
        allowed = ", ".join(m.value for m in PaymentMethod)
        errors.append(FieldError("paymentMethod", f"Payment method must be one of: {allowed}"))
        return errors

    if method is PaymentMethod.BANK_TRANSFER:
        if not non_empty(detail.bank_account_id):
            errors.append(FieldError("bankAccountId", "Please select a bank account"))
        elif options and options.bank_account_ids and detail.bank_account_id not in options.bank_account_ids:
            errors.append(FieldError("bankAccountId", "Selected bank account does not exist"))
    elif method is PaymentMethod.CASH:
        if not non_empty(detail.station_id):
            errors.append(FieldError("stationId", "Please select a station wallet"))
        elif options and options.station_ids and detail.station_id not in options.station_ids:
            errors.append(FieldError("stationId", "Selected station wallet does not exist"))
    return errors


def validate_details(
    session: PaymentSession,
    account: SupplierAccount,
    options: Optional[MethodOptions] = None,
) -> List[FieldError]:
    """
    DETAILS checkpoint:
      - amount > 0
      - amount <= supplier current balance (no overpayment / credit creation)
      - payment method recognised, with its required field
      - application method recognised
    """
    errors: List[FieldError] = []

    amount = _amount(session)
    if amount is None or amount <= ZERO:
        errors.append(FieldError("paymentAmount", "Amount must be greater than 0"))
    elif amount > account.current_balance:
        errors.append(FieldError(
            "paymentAmount",
            f"Amount exceeds current balance of {fmt_money(account.current_balance)}",
            ErrorCode.CREDIT_EXCEEDED,
        ))

    errors.extend(validate_method_detail(session, options))

    if not isinstance(session.application_method, ApplicationMethod):
        allowed = ", ".join(m.value for m in ApplicationMethod)
        errors.append(FieldError("applicationMethod", f"Allocation method must be one of: {allowed}"))

    return errors


def validate_for_submission(session: PaymentSession) -> List[FieldError]:
    """
    Final checkpoint before money moves:
      - at least one allocation
      - sum(allocations) <= payment amount (over-allocation is rejected, never clamped)
      - each allocation > 0 and <= its invoice's balance at snapshot time
      - method-specific field still present
    """
    errors: List[FieldError] = []

    if not session.allocations:
        errors.append(FieldError("allocations", "Allocate the payment to at least one invoice"))

    amount = _amount(session)
    if amount is None or amount <= ZERO:
        errors.append(FieldError("paymentAmount", "Amount must be greater than 0"))
    else:
        total = total_allocated(session)
        if total > amount:
            errors.append(FieldError(
                "allocations",
                f"Total allocation ({fmt_money(total)}) exceeds payment amount ({fmt_money(amount)})",
            ))

    seen = set()
    for alloc in session.allocations:
        if alloc.invoice_id in seen:
            errors.append(FieldError(
                "allocations", f"Invoice {alloc.invoice_id} is allocated more than once",
                invoice_id=alloc.invoice_id,
            ))
            continue
        seen.add(alloc.invoice_id)

        if alloc.amount <= ZERO:
            errors.append(FieldError(
                "allocations", "Allocation amount must be greater than 0",
                invoice_id=alloc.invoice_id,
            ))
            continue

        snapshot = session.snapshot_balances.get(alloc.invoice_id)
        if snapshot is None:
            errors.append(FieldError(
                "allocations", f"Invoice {alloc.invoice_id} is not an outstanding invoice of this supplier",
                ErrorCode.ALLOCATION_BOUNDS, alloc.invoice_id,
            ))
        elif alloc.amount > snapshot:
            errors.append(FieldError(
                "allocations",
                f"Allocation {fmt_money(alloc.amount)} exceeds remaining balance {fmt_money(snapshot)}",
                ErrorCode.ALLOCATION_BOUNDS, alloc.invoice_id,
            ))

    errors.extend(validate_method_detail(session))
    return errors


def validate_against_fresh(session: PaymentSession, fresh: SupplierAccount) -> List[FieldError]:
    """
    Compare allocations with balances re-read from the ledger just before submission.
    An invoice that was settled or whose balance shrank below its allocation is stale.
    """
    errors: List[FieldError] = []
    if fresh.id != str(session.supplier_account_id):
        errors.append(FieldError(
            "supplierAccountId", "Fresh ledger data belongs to a different supplier account",
            ErrorCode.STALE_STATE,
        ))
        return errors

    current = fresh.remaining_balances()
    for alloc in session.allocations:
        bal = current.get(alloc.invoice_id)
        if bal is None:
            errors.append(FieldError(
                "allocations", f"Invoice {alloc.invoice_id} is no longer outstanding; re-allocate the payment",
                ErrorCode.STALE_STATE, alloc.invoice_id,
            ))
        elif alloc.amount > bal:
            errors.append(FieldError(
                "allocations",
                f"Invoice {alloc.invoice_id} balance is now {fmt_money(bal)}, "
                f"below the allocated {fmt_money(alloc.amount)}; re-allocate the payment",
                ErrorCode.STALE_STATE, alloc.invoice_id,
            ))

    amount = _amount(session)
    if amount is not None and amount > fresh.current_balance:
        errors.append(FieldError(
            "paymentAmount",
            f"Amount exceeds current balance of {fmt_money(fresh.current_balance)}",
            ErrorCode.STALE_STATE,
        ))
    return errors
