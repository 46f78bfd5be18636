# station_payables/modules/payments/supplier_payments/session_model.py
"""
Step sequencing for one supplier payment: DETAILS -> REVIEW -> SUBMITTING -> COMPLETE/FAILED.

next_step() is the whole transition table and knows nothing about validation.
PaymentSessionModel applies the guards (validation, step checks) around it and
returns StepResult objects; user-input problems come back as FieldError lists.
InvalidTransitionError is reserved for calls made from the wrong step.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

from ....config import EngineConfig
from ....utils.helpers import to_decimal
from ....utils.loggers import get_logger
from ..payment_utilities.calculations import round_down_to_step, round_to_step
from . import allocations_model as engine
from .errors import FieldError, InvalidTransitionError, StaleStateError, SubmissionError
from .ledger_view import SupplierAccount
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
from .submission import SubmissionCoordinator, SubmissionOutcome
from .validation import validate_details, validate_for_submission


class SessionEvent(str, enum.Enum):
    PROCEED = "PROCEED"
    BACK = "BACK"
    SUBMIT = "SUBMIT"
    SUCCEED = "SUCCEED"
    FAIL = "FAIL"
    RESUME = "RESUME"
    CANCEL = "CANCEL"


_TRANSITIONS = {
    (SessionStep.DETAILS, SessionEvent.PROCEED): SessionStep.REVIEW,
    (SessionStep.DETAILS, SessionEvent.CANCEL): SessionStep.CANCELLED,
    (SessionStep.REVIEW, SessionEvent.BACK): SessionStep.DETAILS,
    (SessionStep.REVIEW, SessionEvent.SUBMIT): SessionStep.SUBMITTING,
    (SessionStep.REVIEW, SessionEvent.CANCEL): SessionStep.CANCELLED,
    (SessionStep.SUBMITTING, SessionEvent.SUCCEED): SessionStep.COMPLETE,
    (SessionStep.SUBMITTING, SessionEvent.FAIL): SessionStep.FAILED,
    (SessionStep.FAILED, SessionEvent.RESUME): SessionStep.REVIEW,
    (SessionStep.FAILED, SessionEvent.CANCEL): SessionStep.CANCELLED,
}


def next_step(step: SessionStep, event: SessionEvent) -> SessionStep:
    """
    Pure transition function.

    Raises:
        InvalidTransitionError: if `event` is not allowed from `step`
    """
    target = _TRANSITIONS.get((SessionStep(step), SessionEvent(event)))
    if target is None:
        raise InvalidTransitionError(f"Cannot {SessionEvent(event).value.lower()} from {SessionStep(step).value}")
    return target


@dataclass(frozen=True)
class StepResult:
    step: SessionStep
    errors: List[FieldError] = field(default_factory=list)
    result: Optional[PaymentResult] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return not self.errors and self.message is None


@dataclass(frozen=True)
class AllocationPlan:
    """What an automatic strategy produced; leftover is the part left unallocated."""
    allocations: List[Allocation]
    leftover: Decimal
    application_method: ApplicationMethod


class PaymentSessionModel:
    """
    Stateful facade over one PaymentSession.

    Collaborators are injected: the account snapshot the session was opened on,
    the SubmissionCoordinator, optional known bank accounts / station wallets,
    and the engine config (currency step, log level).
    """

    def __init__(
        self,
        account: SupplierAccount,
        coordinator: SubmissionCoordinator,
        *,
        options: Optional[MethodOptions] = None,
        config: Optional[EngineConfig] = None,
    ) -> None:
        self.account = account
        self.coordinator = coordinator
        self.options = options
        self.config = config or EngineConfig()
        self.session = PaymentSession.open(account)
        self._log = get_logger(__name__, self.config.log_level)

    # ------------------------------------------------------------------ state

    @property
    def step(self) -> SessionStep:
        return self.session.current_step

    def _move(self, event: SessionEvent) -> SessionStep:
        prev = self.session.current_step
        self.session.current_step = next_step(prev, event)
        self._log.info(
            "Supplier %s payment: %s -> %s",
            self.session.supplier_account_id, prev.value, self.session.current_step.value,
        )
        return self.session.current_step

    def _require(self, step: SessionStep, action: str) -> None:
        if self.session.current_step is not step:
            raise InvalidTransitionError(
                f"Cannot {action} while the payment is in {self.session.current_step.value}"
            )

    def _money(self, value) -> Decimal:
        return round_to_step(to_decimal(value), self.config.currency_step)

    def _result(self, errors: Optional[List[FieldError]] = None, message: Optional[str] = None) -> StepResult:
        self.session.last_errors = list(errors or [])
        return StepResult(
            step=self.session.current_step,
            errors=list(errors or []),
            result=self.session.result,
            message=message,
        )

    # ------------------------------------------------------------------ details

    def set_details(
        self,
        *,
        payment_amount=None,
        payment_method=None,
        station_id: Optional[str] = None,
        shift_id: Optional[str] = None,
        bank_account_id: Optional[str] = None,
        application_method=None,
        description: Optional[str] = None,
        reference: Optional[str] = None,
    ) -> StepResult:
        """
        Update the DETAILS fields that were passed (None leaves a field as is).
        Unparseable amounts and unknown methods are reported, not raised.
        """
        self._require(SessionStep.DETAILS, "edit payment details")
        s = self.session
        errors: List[FieldError] = []

        if payment_amount is not None:
            try:
                s.payment_amount = self._money(payment_amount)
            except ValueError:
                errors.append(FieldError("paymentAmount", "Amount must be a number"))

        if payment_method is not None:
            s.payment_method = _coerce_enum(PaymentMethod, payment_method)

        if station_id is not None or shift_id is not None or bank_account_id is not None:
            d = s.method_detail
            s.method_detail = MethodDetail(
                station_id=d.station_id if station_id is None else (str(station_id).strip() or None),
                shift_id=d.shift_id if shift_id is None else (str(shift_id).strip() or None),
                bank_account_id=d.bank_account_id if bank_account_id is None else (str(bank_account_id).strip() or None),
            )

        if application_method is not None:
            s.application_method = _coerce_enum(ApplicationMethod, application_method)

        if description is not None:
            s.description = str(description).strip()
        if reference is not None:
            s.reference = str(reference).strip()

        return self._result(errors)

    # ------------------------------------------------------------------ allocation

    def _apply_plan(self, rows: List[Allocation], method: ApplicationMethod) -> AllocationPlan:
        step = self.config.currency_step
        planned: List[Allocation] = []
        for row in rows:
            amount = round_down_to_step(row.amount, step)
            if amount > 0:
                planned.append(Allocation(row.invoice_id, amount))
        engine.replace_allocations(self.session, planned)
        self.session.application_method = method
        leftover = engine.credit_balance(self.session)
        return AllocationPlan(planned, leftover, method)

    def auto_allocate(self) -> AllocationPlan:
        """
        Oldest-first over the snapshot; replaces any existing allocations.
        Amounts are rounded down to the currency step.

        Raises:
            ValueError: if the payment amount is not positive yet
        """
        self._require(SessionStep.DETAILS, "allocate")
        rows, _ = engine.auto_allocate(self.session.payment_amount, self.account.outstanding_invoices)
        return self._apply_plan(rows, ApplicationMethod.OLDEST_FIRST)

    def suggest_highest_first(self) -> AllocationPlan:
        self._require(SessionStep.DETAILS, "allocate")
        rows, _ = engine.suggest_highest_first(self.session.payment_amount, self.account.outstanding_invoices)
        return self._apply_plan(rows, ApplicationMethod.MANUAL)

    def add_or_update_allocation(self, invoice_id: str, amount) -> Optional[Allocation]:
        """
        Manual edit. Amount is rounded to the currency step, then clamped to the
        invoice's snapshot balance; 0 removes the row.

        Raises:
            KeyError: invoice not in the snapshot
            ValueError: amount is not a number
        """
        self._require(SessionStep.DETAILS, "edit allocations")
        alloc = engine.add_or_update_allocation(self.session, invoice_id, self._money(amount))
        self.session.application_method = ApplicationMethod.MANUAL
        return alloc

    def remove_allocation(self, invoice_id: str) -> None:
        self._require(SessionStep.DETAILS, "edit allocations")
        engine.remove_allocation(self.session, invoice_id)
        self.session.application_method = ApplicationMethod.MANUAL

    def clear_allocations(self) -> None:
        self._require(SessionStep.DETAILS, "edit allocations")
        engine.clear_allocations(self.session)
        self.session.application_method = ApplicationMethod.MANUAL

    def summary(self) -> engine.PaymentSummary:
        return engine.payment_summary(self.session)

    def refresh_snapshot(self, account: SupplierAccount) -> List[Allocation]:
        """
        Re-base the session on a newer account snapshot (DETAILS only).
        Allocations on invoices that are gone are dropped and the rest are
        clamped to the new balances; the dropped/changed rows are returned.
        """
        self._require(SessionStep.DETAILS, "refresh balances")
        if account.id != self.session.supplier_account_id:
            raise ValueError("Snapshot belongs to a different supplier account")

        previous = list(self.session.allocations)
        fresh = PaymentSession.open(account)
        self.account = account
        self.session.snapshot_balances = fresh.snapshot_balances
        engine.clear_allocations(self.session)

        changed: List[Allocation] = []
        for alloc in previous:
            kept = None
            if alloc.invoice_id in self.session.snapshot_balances:
                kept = engine.add_or_update_allocation(self.session, alloc.invoice_id, alloc.amount)
            if kept != alloc:
                changed.append(alloc)
        if changed:
            self._log.info("Supplier %s: %d allocation(s) adjusted to fresh balances",
                           self.session.supplier_account_id, len(changed))
        return changed

    # ------------------------------------------------------------------ transitions

    def proceed(self) -> StepResult:
        """DETAILS -> REVIEW when details are valid and something is allocated."""
        self._require(SessionStep.DETAILS, "proceed")
        errors = validate_details(self.session, self.account, self.options)
        if not self.session.allocations:
            errors.append(FieldError("allocations", "Allocate the payment to at least one invoice"))
        if errors:
            return self._result(errors)
        self._move(SessionEvent.PROCEED)
        return self._result()

    def back(self) -> StepResult:
        self._move(SessionEvent.BACK)
        return self._result()

    def submit(self) -> StepResult:
        """
        REVIEW -> SUBMITTING -> COMPLETE | FAILED.
        Invalid allocations keep the session in REVIEW and nothing is sent.
        The session never stays in SUBMITTING: an exception from the
        coordinator is reported as a failure. A payment the service accepted
        without a readable confirmation still completes, with the result's
        note as the message, so it cannot be resubmitted.
        """
        self._require(SessionStep.REVIEW, "submit")
        errors = validate_for_submission(self.session)
        if errors:
            self._log.info("Supplier %s payment refused at review: %d error(s)",
                           self.session.supplier_account_id, len(errors))
            return self._result(errors)

        self._move(SessionEvent.SUBMIT)
        try:
            outcome = self.coordinator.submit(self.session)
        except Exception as e:
            self._log.exception("Supplier %s payment: submission raised", self.session.supplier_account_id)
            outcome = SubmissionOutcome(error=SubmissionError(f"Failed to process payment: {e}", original=e))

        if outcome.ok:
            self.session.result = outcome.result
            self.session.last_error = None
            self._move(SessionEvent.SUCCEED)
            if not outcome.result.confirmed:
                self._log.warning("Supplier %s payment not confirmed: %s",
                                  self.session.supplier_account_id, outcome.result.note)
                return self._result(message=outcome.result.note)
            return self._result()

        message = str(outcome.error) if outcome.error is not None else "Payment processing failed"
        if isinstance(outcome.error, StaleStateError):
            message = f"{message}. Go back to details and refresh balances."
        self.session.last_error = message
        self._move(SessionEvent.FAIL)
        self._log.warning("Supplier %s payment failed: %s", self.session.supplier_account_id, message)
        return self._result(outcome.errors, message)

    def resume(self) -> StepResult:
        """FAILED -> REVIEW; the allocations are kept for another attempt."""
        self._move(SessionEvent.RESUME)
        return self._result()

    def cancel(self) -> StepResult:
        self._move(SessionEvent.CANCEL)
        return self._result()


def _coerce_enum(enum_cls, value):
    """Enum member for a matching value/name (case-insensitive); otherwise the raw value."""
    if isinstance(value, enum_cls):
        return value
    key = str(value).strip().upper().replace(" ", "_")
    try:
        return enum_cls(key)
    except ValueError:
        return value
