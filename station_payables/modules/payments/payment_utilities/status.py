from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional

# ---------- Canonical invoice statuses ----------
OUTSTANDING = "OUTSTANDING"
PARTIALLY_PAID = "PARTIALLY_PAID"
PAID = "PAID"
OVERDUE = "OVERDUE"

VALID_STATUSES: tuple[str, ...] = (OUTSTANDING, PARTIALLY_PAID, OVERDUE, PAID)

# ---------- Human labels ----------
LABELS = {
    OUTSTANDING: "Outstanding",
    PARTIALLY_PAID: "Partially Paid",
    PAID: "Paid",
    OVERDUE: "Overdue",
}

# ---------- Supplier ledger transaction types ----------
TRANSACTION_TYPE_LABELS = {
    "PURCHASE_INVOICE": "Purchase Invoice",
    "PAYMENT_MADE": "Payment",
    "CREDIT_NOTE": "Credit Note",
    "DEBIT_NOTE": "Debit Note",
    "ADJUSTMENT": "Adjustment",
}

# ---------- API ----------

def normalize(status: Optional[str]) -> Optional[str]:
    """Uppercase & strip; return None if empty."""
    if status is None:
        return None
    s = str(status).strip().upper().replace(" ", "_")
    return s or None


def is_valid(status: Optional[str]) -> bool:
    s = normalize(status)
    return s in VALID_STATUSES if s is not None else False


def label(status: str) -> str:
    """Human label ('Partially Paid'). Unknown values come back title-cased."""
    s = normalize(status)
    if s in LABELS:
        return LABELS[s]  # type: ignore[index]
    return (status or "").strip().replace("_", " ").title()


def transaction_type_label(tx_type: str) -> str:
    """'PAYMENT_MADE' -> 'Payment'. Unknown types are returned unchanged."""
    return TRANSACTION_TYPE_LABELS.get(normalize(tx_type) or "", tx_type)


def is_overdue(due_date: Optional[date], as_of: date) -> bool:
    """An invoice with no due date is never overdue."""
    if due_date is None:
        return False
    return due_date < as_of


def days_until_due(due_date: Optional[date], as_of: date) -> Optional[int]:
    """Whole days from as_of to due_date; negative when overdue, None without a due date."""
    if due_date is None:
        return None
    return (due_date - as_of).days


def status_for_invoice(
    original_amount: Decimal,
    remaining_balance: Decimal,
    due_date: Optional[date],
    as_of: date,
) -> str:
    """
    Status rules:
      - PAID           if remaining <= 0
      - OVERDUE        if remaining > 0 and due_date < as_of
      - PARTIALLY_PAID if 0 < remaining < original
      - OUTSTANDING    otherwise
    """
    if remaining_balance <= 0:
        return PAID
    if is_overdue(due_date, as_of):
        return OVERDUE
    if remaining_balance < original_amount:
        return PARTIALLY_PAID
    return OUTSTANDING
