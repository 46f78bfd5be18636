# station_payables/modules/payments/supplier_payments/ledger_view.py
"""
Read-only snapshot of one supplier's payables, as handed to a payment session.

- Invoice / SupplierAccount are frozen; the ledger service owns the real balances
- sorted_by_due_date() gives the oldest-first order used by auto allocation
- *_from_api() turn ledger JSON (camelCase) into the dataclasses
- No I/O here; fetching lives in api_client.SupplierPaymentsClient
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from ....utils.helpers import to_decimal
from ..payment_utilities.calculations import ZERO, sum_amounts
from ..payment_utilities import status as invoice_status


def _parse_date(v: Any) -> Optional[date]:
    """Accept date, datetime, 'YYYY-MM-DD' or an ISO timestamp; None/'' -> None."""
    if v is None or v == "":
        return None
    if isinstance(v, datetime):
        return v.date()
    if isinstance(v, date):
        return v
    s = str(v).strip()
    try:
        return date.fromisoformat(s[:10])
    except ValueError as e:
        raise ValueError(f"Could not parse {v!r} as a date.") from e


def fallback_invoice_number(invoice_id: str) -> str:
    """Ledger rows without a reference number are shown as INV-<last 6 chars of id>."""
    tail = str(invoice_id)[-6:] if invoice_id else ""
    return f"INV-{tail or 'N/A'}"


@dataclass(frozen=True)
class Invoice:
    id: str
    invoice_number: str
    original_amount: Decimal
    remaining_balance: Decimal
    due_date: Optional[date] = None
    is_overdue: bool = False
    purchase_number: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "id", str(self.id))
        object.__setattr__(self, "original_amount", to_decimal(self.original_amount))
        object.__setattr__(self, "remaining_balance", to_decimal(self.remaining_balance))
        object.__setattr__(self, "due_date", _parse_date(self.due_date))
        if self.original_amount < ZERO:
            raise ValueError(f"Invoice {self.id}: original amount cannot be negative")
        if self.remaining_balance < ZERO:
            raise ValueError(f"Invoice {self.id}: remaining balance cannot be negative")
        if self.remaining_balance > self.original_amount:
            raise ValueError(
                f"Invoice {self.id}: remaining balance {self.remaining_balance} "
                f"exceeds original amount {self.original_amount}"
            )

    @property
    def is_settled(self) -> bool:
        return self.remaining_balance == ZERO


@dataclass(frozen=True)
class SupplierAccount:
    id: str
    supplier_name: str
    current_balance: Decimal
    outstanding_invoices: Tuple[Invoice, ...] = ()
    credit_limit: Optional[Decimal] = None
    available_credit: Optional[Decimal] = None
    contact_person: Optional[str] = None
    phone: Optional[str] = None
    status: Optional[str] = None
    payment_terms: Optional[str] = None
    total_outstanding: Optional[Decimal] = None
    snapshot_date: date = field(default_factory=date.today)

    def __post_init__(self) -> None:
        object.__setattr__(self, "id", str(self.id))
        object.__setattr__(self, "current_balance", to_decimal(self.current_balance))
        object.__setattr__(self, "outstanding_invoices", tuple(self.outstanding_invoices))
        if self.credit_limit is not None:
            object.__setattr__(self, "credit_limit", to_decimal(self.credit_limit))
        if self.available_credit is not None:
            object.__setattr__(self, "available_credit", to_decimal(self.available_credit))
        elif self.credit_limit is not None:
            object.__setattr__(self, "available_credit", self.credit_limit - self.current_balance)
        if self.total_outstanding is not None:
            object.__setattr__(self, "total_outstanding", to_decimal(self.total_outstanding))
        seen = set()
        for inv in self.outstanding_invoices:
            if inv.id in seen:
                raise ValueError(f"Duplicate invoice id in snapshot: {inv.id!r}")
            seen.add(inv.id)

    def invoice(self, invoice_id: str) -> Optional[Invoice]:
        key = str(invoice_id)
        for inv in self.outstanding_invoices:
            if inv.id == key:
                return inv
        return None

    def total_remaining(self) -> Decimal:
        return sum_amounts(inv.remaining_balance for inv in self.outstanding_invoices)

    def balance_drift(self) -> Decimal:
        """current_balance minus the sum of invoice balances; 0 when the snapshot is consistent."""
        return self.current_balance - self.total_remaining()

    def remaining_balances(self) -> Dict[str, Decimal]:
        return {inv.id: inv.remaining_balance for inv in self.outstanding_invoices}


# ---------------------------------------------------------------- ordering

def _due_key(inv: Invoice):
    # Invoices without a due date go last
    return (inv.due_date is None, inv.due_date or date.min, inv.id)


def sorted_by_due_date(invoices: Iterable[Invoice]) -> List[Invoice]:
    """Ascending by due date; ties broken by id so the order is deterministic."""
    return sorted(invoices, key=_due_key)


def days_until_due(inv: Invoice, as_of: Optional[date] = None) -> Optional[int]:
    return invoice_status.days_until_due(inv.due_date, as_of or date.today())


def overdue_invoices(invoices: Iterable[Invoice]) -> List[Invoice]:
    return [inv for inv in sorted_by_due_date(invoices) if inv.is_overdue]


# ---------------------------------------------------------------- API mapping

def invoice_from_api(raw: Mapping[str, Any], *, as_of: Optional[date] = None) -> Invoice:
    """
    Map one ledger invoice row. Accepts the raw ledger shape
    (referenceNumber / amount / purchase.purchaseNumber) as well as the already
    flattened shape (invoiceNumber / originalAmount / purchaseNumber).
    """
    as_of = as_of or date.today()
    inv_id = str(raw.get("id") or "")
    if not inv_id:
        raise ValueError("Invoice row has no id")

    number = raw.get("invoiceNumber") or raw.get("referenceNumber") or fallback_invoice_number(inv_id)
    original = raw.get("originalAmount", raw.get("amount"))
    remaining = raw.get("remainingBalance")
    if remaining is None:
        remaining = original
    if original is None:
        original = remaining
    if original is None:
        raise ValueError(f"Invoice {inv_id} has no amount")

    purchase = raw.get("purchase") or {}
    purchase_number = raw.get("purchaseNumber") or (purchase.get("purchaseNumber") if isinstance(purchase, dict) else None)
    due = _parse_date(raw.get("dueDate"))

    return Invoice(
        id=inv_id,
        invoice_number=str(number),
        original_amount=to_decimal(original),
        remaining_balance=to_decimal(remaining),
        due_date=due,
        is_overdue=invoice_status.is_overdue(due, as_of),
        purchase_number=purchase_number,
        description=raw.get("description"),
        status=invoice_status.normalize(raw.get("status")),
    )


def supplier_account_from_api(raw: Mapping[str, Any], *, as_of: Optional[date] = None) -> SupplierAccount:
    """
    Map a ledger supplier account (with outstandingInvoices) to a SupplierAccount.
    Settled invoices (remaining balance 0) are dropped; the engine only sees open ones.
    """
    as_of = as_of or date.today()
    acct_id = str(raw.get("id") or "")
    if not acct_id:
        raise ValueError("Supplier account has no id")

    supplier = raw.get("supplier") or {}
    if not isinstance(supplier, dict):
        supplier = {}
    name = raw.get("supplierName") or supplier.get("name") or "Unknown Supplier"

    invoices = []
    for row in raw.get("outstandingInvoices") or []:
        inv = invoice_from_api(row, as_of=as_of)
        if inv.is_settled:
            continue
        invoices.append(inv)

    def _opt(key: str) -> Optional[Decimal]:
        v = raw.get(key)
        return None if v is None or v == "" else to_decimal(v)

    return SupplierAccount(
        id=acct_id,
        supplier_name=str(name),
        current_balance=to_decimal(raw.get("currentBalance") or 0),
        outstanding_invoices=tuple(invoices),
        credit_limit=_opt("creditLimit"),
        available_credit=_opt("availableCredit"),
        contact_person=raw.get("contactPerson") or supplier.get("contactPerson"),
        phone=raw.get("phone") or supplier.get("phone"),
        status=raw.get("status"),
        payment_terms=raw.get("paymentTerms"),
        total_outstanding=_opt("totalOutstanding"),
        snapshot_date=as_of,
    )
