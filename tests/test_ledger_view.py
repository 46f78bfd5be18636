# tests/test_ledger_view.py
from datetime import date
from decimal import Decimal

import pytest

from station_payables.modules.payments.supplier_payments.ledger_view import (
    Invoice,
    SupplierAccount,
    days_until_due,
    fallback_invoice_number,
    invoice_from_api,
    overdue_invoices,
    sorted_by_due_date,
    supplier_account_from_api,
)

from conftest import AS_OF, make_account, make_invoice

D = Decimal


def test_l1_invoice_from_raw_ledger_row():
    inv = invoice_from_api({
        "id": "cm3x9k2abc123",
        "amount": "1200.50",
        "remainingBalance": 700,
        "dueDate": "2024-02-15",
        "purchase": {"purchaseNumber": "PO-2024-001"},
        "description": "Diesel delivery",
        "status": "partially paid",
    }, as_of=AS_OF)
    assert inv.invoice_number == "INV-abc123"
    assert inv.original_amount == D("1200.50")
    assert inv.remaining_balance == D("700")
    assert inv.due_date == date(2024, 2, 15)
    assert inv.is_overdue is True
    assert inv.purchase_number == "PO-2024-001"
    assert inv.status == "PARTIALLY_PAID"


def test_l2_invoice_without_due_date_never_overdue():
    inv = invoice_from_api({"id": "x1", "invoiceNumber": "PI-9", "originalAmount": 50}, as_of=AS_OF)
    assert inv.due_date is None
    assert inv.is_overdue is False
    assert inv.remaining_balance == D("50")
    assert days_until_due(inv, AS_OF) is None


def test_l3_invoice_invariants():
    with pytest.raises(ValueError):
        Invoice(id="1", invoice_number="A", original_amount=100, remaining_balance=101)
    with pytest.raises(ValueError):
        Invoice(id="1", invoice_number="A", original_amount=100, remaining_balance=-1)
    with pytest.raises(ValueError):
        invoice_from_api({"id": "", "amount": 1})


def test_l4_account_from_api_drops_settled_and_derives_credit():
    acct = supplier_account_from_api({
        "id": 42,
        "supplier": {"name": "Lake Petroleum"},
        "currentBalance": "300",
        "creditLimit": "1000",
        "paymentTerms": "NET30",
        "outstandingInvoices": [
            {"id": "a", "amount": 300, "remainingBalance": 300, "dueDate": "2024-04-01"},
            {"id": "b", "amount": 200, "remainingBalance": 0, "dueDate": "2024-01-01"},
        ],
    }, as_of=AS_OF)
    assert acct.id == "42"
    assert acct.supplier_name == "Lake Petroleum"
    assert [i.id for i in acct.outstanding_invoices] == ["a"]
    assert acct.available_credit == D("700")
    assert acct.payment_terms == "NET30"
    assert acct.snapshot_date == AS_OF
    assert acct.balance_drift() == D("0")


def test_l5_duplicate_invoices_rejected_and_drift_reported():
    inv = make_invoice("1", "100")
    with pytest.raises(ValueError):
        SupplierAccount(id="s", supplier_name="S", current_balance=200, outstanding_invoices=(inv, inv))

    drifted = make_account([inv], balance=D("150"))
    assert drifted.balance_drift() == D("50")
    assert drifted.invoice("1") is inv
    assert drifted.invoice("2") is None


def test_l6_due_date_order_and_overdue():
    invs = [
        make_invoice("b", "1", "2024-01-10"),
        make_invoice("z", "1"),
        make_invoice("a", "1", "2024-01-10"),
        make_invoice("c", "1", "2024-05-01"),
    ]
    assert [i.id for i in sorted_by_due_date(invs)] == ["a", "b", "c", "z"]
    assert [i.id for i in overdue_invoices(invs)] == ["a", "b"]
    assert days_until_due(invs[3], AS_OF) == 61


def test_l7_fallback_number():
    assert fallback_invoice_number("1234567890") == "INV-567890"
    assert fallback_invoice_number("") == "INV-N/A"
