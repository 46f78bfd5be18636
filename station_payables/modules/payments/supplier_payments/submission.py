# station_payables/modules/payments/supplier_payments/submission.py
"""
Turns a reviewed PaymentSession into one money-movement call.

- Re-validates (and, with a ledger reader, re-checks fresh balances) first
- Builds an immutable payload in the ledger service's wire format
- Delegates to the cash or bank endpoint of the PaymentGateway
- Translates every failure into SubmissionError; never retries
- Never changes supplier or invoice balances itself
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType
from typing import Any, List, Mapping, Optional, Protocol, Tuple

from ....utils.helpers import to_decimal
from ....utils.loggers import get_audit_logger, log_event
from .allocations_model import total_allocated
from .errors import (
    FieldError,
    LedgerReadError,
    SubmissionError,
    SupplierPaymentError,
    ValidationError,
    errors_to_exception,
)
from .ledger_view import SupplierAccount
from .payment_session import Allocation, PaymentMethod, PaymentResult, PaymentSession
from .validation import validate_against_fresh, validate_for_submission

_log = logging.getLogger(__name__)


# ---------- Collaborator contracts ----------

class PaymentGateway(Protocol):
    def process_cash_payment(self, payload: Mapping[str, Any]) -> Mapping[str, Any]: ...

    def process_bank_payment(self, payload: Mapping[str, Any]) -> Mapping[str, Any]: ...


class LedgerReader(Protocol):
    def get_supplier_account(self, supplier_account_id: str) -> SupplierAccount: ...


# ---------- Outcome ----------

@dataclass(frozen=True)
class SubmissionOutcome:
    result: Optional[PaymentResult] = None
    error: Optional[SupplierPaymentError] = None
    errors: List[FieldError] = field(default_factory=list)
    payload: Optional[Mapping[str, Any]] = None

    @property
    def ok(self) -> bool:
        return self.result is not None and self.error is None


# ---------- Payload ----------

def build_payment_payload(session: PaymentSession) -> Mapping[str, Any]:
    """
    Build the request body. Keys match the ledger service:
    supplierAccountId, paymentAmount, paymentMethod, applicationMethod,
    allocations[{invoiceTransactionId, amount}], description, paymentReference,
    plus stationId/shiftId (CASH) or bankAccountId (BANK_TRANSFER).
    The returned mapping (and its allocation rows) is read-only.
    """
    method = session.payment_method
    if not isinstance(method, PaymentMethod):
        raise ValueError(f"Unsupported payment method: {method!r}")

    rows = tuple(MappingProxyType(a.to_payload()) for a in session.allocations)
    payload: dict = {
        "supplierAccountId": str(session.supplier_account_id),
        "paymentAmount": to_decimal(session.payment_amount),
        "paymentMethod": method.value,
        "applicationMethod": getattr(session.application_method, "value", session.application_method),
        "allocations": rows,
        "description": session.description or "",
        "paymentReference": session.reference or "",
    }
    detail = session.method_detail
    if method is PaymentMethod.CASH:
        payload["stationId"] = detail.station_id
        if detail.shift_id:
            payload["shiftId"] = detail.shift_id
    else:
        payload["bankAccountId"] = detail.bank_account_id
    return MappingProxyType(payload)


def payload_allocations(payload: Mapping[str, Any]) -> List[Tuple[str, Decimal]]:
    """(invoice_id, amount) pairs from a payload, in payload order."""
    return [(str(r["invoiceTransactionId"]), to_decimal(r["amount"])) for r in payload.get("allocations", ())]


def allocations_from_response(rows) -> Tuple[Allocation, ...]:
    """
    Allocation rows as the ledger service echoes them back
    ({invoiceTransactionId | invoiceId, amount | allocatedAmount}).

    Raises:
        SubmissionError: on a row without an invoice id or a positive amount
    """
    applied: List[Allocation] = []
    for i, r in enumerate(rows):
        if not isinstance(r, Mapping):
            raise SubmissionError(f"Allocation row {i} is not an object")
        invoice_id = r.get("invoiceTransactionId") or r.get("invoiceId")
        if invoice_id is None or str(invoice_id).strip() == "":
            raise SubmissionError(f"Allocation row {i} has no invoice id")
        try:
            applied.append(Allocation(
                invoice_id=str(invoice_id).strip(),
                amount=to_decimal(r.get("amount", r.get("allocatedAmount"))),
            ))
        except ValueError as e:
            raise SubmissionError(f"Allocation row {i} has an invalid amount", original=e) from e
    return tuple(applied)


def _unconfirmed(session: PaymentSession, note: str, data: Mapping[str, Any]) -> PaymentResult:
    return PaymentResult(
        transfer_number=None,
        allocations=tuple(session.allocations),
        credit_balance=to_decimal(session.payment_amount) - total_allocated(session),
        confirmed=False,
        note=note,
        raw=MappingProxyType(dict(data)),
    )


def result_from_response(response: Mapping[str, Any], session: PaymentSession) -> PaymentResult:
    """
    Read {transferNumber, newSupplierBalance[, allocations, creditBalance]}, optionally
    wrapped as {"success": true, "data": {...}}.

    Anything short of an explicit failure means the payment went through, so a
    response that cannot be read in full gives an unconfirmed PaymentResult
    built from the session instead of an error.

    Raises:
        SubmissionError: if the response reports failure ("success": false)
    """
    if not isinstance(response, Mapping):
        return _unconfirmed(session, "Payment service returned an unreadable response", {})
    if response.get("success") is False:
        raise SubmissionError(str(response.get("message") or "Payment processing failed"))

    data = response.get("data") if isinstance(response.get("data"), Mapping) else response
    transfer_number = data.get("transferNumber")
    if not transfer_number:
        return _unconfirmed(session, "Payment service response has no transfer number", data)

    raw_allocs = data.get("allocations")
    if isinstance(raw_allocs, (list, tuple)) and raw_allocs:
        try:
            applied = allocations_from_response(raw_allocs)
        except SubmissionError as e:
            return _unconfirmed(session, f"Payment service returned malformed allocations: {e}", data)
    else:
        applied = tuple(session.allocations)

    amounts = {}
    for key in ("creditBalance", "newSupplierBalance"):
        v = data.get(key)
        if v is None or v == "":
            amounts[key] = None
            continue
        try:
            amounts[key] = to_decimal(v)
        except ValueError:
            return _unconfirmed(session, f"Payment service returned an invalid {key}", data)

    credit = amounts["creditBalance"]
    if credit is None:
        credit = to_decimal(session.payment_amount) - total_allocated(session)

    return PaymentResult(
        transfer_number=str(transfer_number),
        allocations=applied,
        new_supplier_balance=amounts["newSupplierBalance"],
        credit_balance=credit,
        raw=MappingProxyType(dict(data)),
    )


# ---------- Coordinator ----------

class SubmissionCoordinator:
    def __init__(
        self,
        gateway: PaymentGateway,
        ledger: Optional[LedgerReader] = None,
        *,
        refetch_before_submit: bool = True,
        audit_logger: Optional[logging.Logger] = None,
    ) -> None:
        self._gateway = gateway
        self._ledger = ledger
        self._refetch = bool(refetch_before_submit)
        self._audit = audit_logger or get_audit_logger()

    def submit(self, session: PaymentSession) -> SubmissionOutcome:
        """
        Validate, build payload, call the gateway once.
        Never raises for validation or collaborator failures; see SubmissionOutcome.
        """
        errors = validate_for_submission(session)
        if errors:
            _log.info("Submission blocked for %s: %d validation error(s)", session.supplier_account_id, len(errors))
            return SubmissionOutcome(error=errors_to_exception(errors), errors=errors)

        if self._ledger is not None and self._refetch:
            try:
                fresh = self._ledger.get_supplier_account(str(session.supplier_account_id))
            except LedgerReadError as e:
                _log.warning("Could not re-read supplier %s before submit: %s", session.supplier_account_id, e)
                err = SubmissionError(f"Could not confirm current balances: {e}", original=e)
                return SubmissionOutcome(error=err)
            stale = validate_against_fresh(session, fresh)
            if stale:
                _log.info("Submission blocked for %s: ledger changed since session opened", session.supplier_account_id)
                return SubmissionOutcome(
                    error=errors_to_exception(stale, "Invoice balances changed; re-allocate the payment"),
                    errors=stale,
                )

        payload = build_payment_payload(session)
        log_event(self._audit, "supplier_payment", "submitting", "Submitting supplier payment", {
            "supplierAccountId": payload["supplierAccountId"],
            "paymentAmount": payload["paymentAmount"],
            "paymentMethod": payload["paymentMethod"],
            "applicationMethod": payload["applicationMethod"],
            "allocations": [dict(r) for r in payload["allocations"]],
        })

        try:
            if payload["paymentMethod"] == PaymentMethod.CASH.value:
                response = self._gateway.process_cash_payment(payload)
            else:
                response = self._gateway.process_bank_payment(payload)
            result = result_from_response(response, session)
        except SubmissionError as e:
            return self._failed(payload, e)
        except ValidationError as e:
            # gateway-side validation surfaced as our own type
            return self._failed(payload, SubmissionError(str(e), field_errors=e.errors, original=e))
        except Exception as e:
            _log.exception("Gateway call for supplier %s raised", payload["supplierAccountId"])
            return self._failed(payload, SubmissionError(f"Failed to process payment: {e}", original=e))

        if not result.confirmed:
            log_event(self._audit, "supplier_payment", "unconfirmed", result.note or "Payment not confirmed", {
                "supplierAccountId": payload["supplierAccountId"],
                "paymentAmount": payload["paymentAmount"],
            }, level=logging.WARNING)
            return SubmissionOutcome(result=result, payload=payload)

        log_event(self._audit, "supplier_payment", "complete", "Supplier payment processed", {
            "supplierAccountId": payload["supplierAccountId"],
            "transferNumber": result.transfer_number,
            "newSupplierBalance": result.new_supplier_balance,
            "creditBalance": result.credit_balance,
        })
        return SubmissionOutcome(result=result, payload=payload)

    def _failed(self, payload: Mapping[str, Any], error: SubmissionError) -> SubmissionOutcome:
        log_event(self._audit, "supplier_payment", "failed", str(error), {
            "supplierAccountId": payload["supplierAccountId"],
            "statusCode": error.status_code,
        }, level=logging.WARNING)
        return SubmissionOutcome(error=error, errors=list(error.field_errors), payload=payload)
