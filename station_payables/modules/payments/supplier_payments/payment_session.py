# station_payables/modules/payments/supplier_payments/payment_session.py
"""
Row contracts for one supplier payment interaction.

PaymentSession is the only mutable object; everything it references from the
ledger (balances at open time) is copied in and never refreshed in place.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from types import MappingProxyType
from typing import Any, List, Mapping, Optional, Tuple, Union

from ....utils.helpers import to_decimal
from .errors import FieldError
from .ledger_view import SupplierAccount


# ---------- Enums ----------

class PaymentMethod(str, enum.Enum):
    CASH = "CASH"
    BANK_TRANSFER = "BANK_TRANSFER"

    @property
    def label(self) -> str:
        return "Cash" if self is PaymentMethod.CASH else "Bank Transfer"


class ApplicationMethod(str, enum.Enum):
    OLDEST_FIRST = "OLDEST_FIRST"
    MANUAL = "MANUAL"


class SessionStep(str, enum.Enum):
    DETAILS = "DETAILS"
    REVIEW = "REVIEW"
    SUBMITTING = "SUBMITTING"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionStep.COMPLETE, SessionStep.CANCELLED)


# ---------- Value objects ----------

@dataclass(frozen=True)
class MethodDetail:
    """stationId (+ optional shiftId) for CASH; bankAccountId for BANK_TRANSFER."""
    station_id: Optional[str] = None
    shift_id: Optional[str] = None
    bank_account_id: Optional[str] = None


@dataclass(frozen=True)
class MethodOptions:
    """Known bank accounts / station wallets; empty sets mean 'not loaded, skip the check'."""
    bank_account_ids: frozenset = frozenset()
    station_ids: frozenset = frozenset()


@dataclass(frozen=True)
class Allocation:
    invoice_id: str
    amount: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "invoice_id", str(self.invoice_id))
        object.__setattr__(self, "amount", to_decimal(self.amount))
        if self.amount <= 0:
            raise ValueError(f"Allocation for invoice {self.invoice_id} must be positive")

    def to_payload(self) -> dict:
        return {"invoiceTransactionId": self.invoice_id, "amount": self.amount}


@dataclass(frozen=True)
class PaymentResult:
    """
    What the ledger service reported back. confirmed=False means the payment
    was accepted but the response could not be read in full (no transfer
    number, malformed allocations); note says what was missing and the
    allocations are the ones that were sent.
    """
    transfer_number: Optional[str]
    allocations: Tuple[Allocation, ...] = ()
    new_supplier_balance: Optional[Decimal] = None
    credit_balance: Decimal = Decimal("0")
    confirmed: bool = True
    note: Optional[str] = None
    raw: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def has_credit(self) -> bool:
        return self.credit_balance > 0


# ---------- Session ----------

@dataclass
class PaymentSession:
    supplier_account_id: str
    snapshot_balances: Mapping[str, Decimal]
    payment_amount: Decimal = Decimal("0")
    payment_method: Union[PaymentMethod, str, None] = None
    method_detail: MethodDetail = field(default_factory=MethodDetail)
    application_method: Union[ApplicationMethod, str] = ApplicationMethod.OLDEST_FIRST
    allocations: List[Allocation] = field(default_factory=list)
    description: str = ""
    reference: str = ""
    current_step: SessionStep = SessionStep.DETAILS
    last_errors: List[FieldError] = field(default_factory=list)
    last_error: Optional[str] = None
    result: Optional[PaymentResult] = None
    opened_at: datetime = field(default_factory=datetime.now)

    @classmethod
    def open(cls, account: SupplierAccount) -> "PaymentSession":
        """Start a session on a snapshot; balances are frozen at this point."""
        return cls(
            supplier_account_id=account.id,
            snapshot_balances=MappingProxyType(dict(account.remaining_balances())),
        )

    def allocation_for(self, invoice_id: str) -> Optional[Allocation]:
        key = str(invoice_id)
        for a in self.allocations:
            if a.invoice_id == key:
                return a
        return None
