"""
Supplier payment allocation package.

- Exposes the session model, the allocation engine and the collaborator adapters.
- open_payment_session() wires a coordinator and a session model for one account.
"""

from __future__ import annotations

from typing import Optional

from ....config import EngineConfig
from .allocations_model import (
    PaymentSummary,
    auto_allocate,
    payment_summary,
    suggest_highest_first,
)
from .api_client import SupplierPaymentsClient
from .errors import (
    AllocationBoundsError,
    CreditExceededError,
    ErrorCode,
    FieldError,
    InvalidTransitionError,
    LedgerReadError,
    StaleStateError,
    SubmissionError,
    SupplierPaymentError,
    ValidationError,
)
from .ledger_view import Invoice, SupplierAccount, sorted_by_due_date, supplier_account_from_api
from .payment_form_model import normalize_form
from .payment_session import (
    Allocation,
    ApplicationMethod,
    MethodDetail,
    MethodOptions,
    PaymentMethod,
    PaymentResult,
    PaymentSession,
    SessionStep,
)
from .session_model import AllocationPlan, PaymentSessionModel, SessionEvent, StepResult, next_step
from .submission import LedgerReader, PaymentGateway, SubmissionCoordinator, SubmissionOutcome

__all__ = [
    "Allocation",
    "AllocationBoundsError",
    "AllocationPlan",
    "ApplicationMethod",
    "CreditExceededError",
    "ErrorCode",
    "FieldError",
    "InvalidTransitionError",
    "Invoice",
    "LedgerReadError",
    "LedgerReader",
    "MethodDetail",
    "MethodOptions",
    "PaymentGateway",
    "PaymentMethod",
    "PaymentResult",
    "PaymentSession",
    "PaymentSessionModel",
    "PaymentSummary",
    "SessionEvent",
    "SessionStep",
    "StaleStateError",
    "StepResult",
    "SubmissionCoordinator",
    "SubmissionError",
    "SubmissionOutcome",
    "SupplierAccount",
    "SupplierPaymentError",
    "SupplierPaymentsClient",
    "ValidationError",
    "auto_allocate",
    "next_step",
    "normalize_form",
    "open_payment_session",
    "payment_summary",
    "sorted_by_due_date",
    "suggest_highest_first",
    "supplier_account_from_api",
]


def open_payment_session(
    account: SupplierAccount,
    gateway: PaymentGateway,
    ledger: Optional[LedgerReader] = None,
    *,
    options: Optional[MethodOptions] = None,
    config: Optional[EngineConfig] = None,
) -> PaymentSessionModel:
    """
    Factory: one PaymentSessionModel on `account`, submitting through `gateway`.
    With a `ledger`, balances are re-read before money moves (unless disabled in config).
    """
    config = config or EngineConfig()
    coordinator = SubmissionCoordinator(
        gateway,
        ledger,
        refetch_before_submit=config.refetch_before_submit,
    )
    return PaymentSessionModel(account, coordinator, options=options, config=config)
