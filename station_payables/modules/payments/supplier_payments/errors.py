# station_payables/modules/payments/supplier_payments/errors.py
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Sequence


class ErrorCode(str, enum.Enum):
    VALIDATION = "validation"
    ALLOCATION_BOUNDS = "allocation_bounds"
    CREDIT_EXCEEDED = "credit_exceeded"
    STALE_STATE = "stale_state"
    SUBMISSION = "submission"


@dataclass(frozen=True)
class FieldError:
    """One field-addressable problem. `invoice_id` is set for per-allocation errors."""
    field: str
    message: str
    code: ErrorCode = ErrorCode.VALIDATION
    invoice_id: Optional[str] = None

    def to_dict(self) -> dict:
        out = {"field": self.field, "message": self.message, "code": self.code.value}
        if self.invoice_id is not None:
            out["invoiceId"] = self.invoice_id
        return out


# ----------------------------
# Domain errors (friendly)
# ----------------------------
class SupplierPaymentError(Exception):
    """Base class for supplier payment domain errors."""


class ValidationError(SupplierPaymentError):
    """One or more fields failed validation. Recoverable locally."""
    code = ErrorCode.VALIDATION

    def __init__(self, message: str, *, errors: Sequence[FieldError] = ()):
        super().__init__(message)
        self.errors: List[FieldError] = list(errors)


class AllocationBoundsError(ValidationError):
    """An allocation exceeds the remaining balance of its invoice."""
    code = ErrorCode.ALLOCATION_BOUNDS


class CreditExceededError(ValidationError):
    """Payment amount exceeds the supplier's current balance."""
    code = ErrorCode.CREDIT_EXCEEDED


class StaleStateError(ValidationError):
    """Fresh ledger data shows an invoice balance shrank below its allocation."""
    code = ErrorCode.STALE_STATE


class SubmissionError(SupplierPaymentError):
    """The money-movement collaborator failed or rejected the payment."""
    code = ErrorCode.SUBMISSION

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        field_errors: Sequence[FieldError] = (),
        original: BaseException | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.field_errors: List[FieldError] = list(field_errors)
        self.original = original


class LedgerReadError(SupplierPaymentError):
    """Reading supplier accounts or payment options from the ledger failed."""

    def __init__(self, message: str, *, status_code: Optional[int] = None, original: BaseException | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.original = original


class InvalidTransitionError(SupplierPaymentError):
    """An operation was attempted from a session step that does not allow it."""


# Most specific first
_PRECEDENCE = (
    (ErrorCode.STALE_STATE, StaleStateError),
    (ErrorCode.CREDIT_EXCEEDED, CreditExceededError),
    (ErrorCode.ALLOCATION_BOUNDS, AllocationBoundsError),
)


def errors_to_exception(errors: Iterable[FieldError], message: Optional[str] = None) -> ValidationError:
    """
    Pick the most specific ValidationError subclass for a list of field errors.
    Callers that need to raise (rather than return) validation results use this.
    """
    errs = list(errors)
    codes = {e.code for e in errs}
    cls: type[ValidationError] = ValidationError
    for code, klass in _PRECEDENCE:
        if code in codes:
            cls = klass
            break
    if message is None:
        message = "; ".join(e.message for e in errs) if errs else "Validation failed"
    return cls(message, errors=errs)


def field_errors_from_payload(raw: Any) -> List[FieldError]:
    """
    Map a server error list ([{"field": ..., "message": ...}, ...]) to FieldErrors.
    Entries that are not dicts are kept as messages on the "payment" field.
    """
    out: List[FieldError] = []
    if not isinstance(raw, (list, tuple)):
        return out
    for item in raw:
        if isinstance(item, dict):
            out.append(FieldError(
                field=str(item.get("field") or "payment"),
                message=str(item.get("message") or "Invalid value"),
                code=ErrorCode.SUBMISSION,
            ))
        else:
            out.append(FieldError(field="payment", message=str(item), code=ErrorCode.SUBMISSION))
    return out
