# tests/test_payment_form_model.py
from decimal import Decimal

import pytest

from station_payables.modules.payments.supplier_payments.payment_form_model import normalize_form
from station_payables.modules.payments.supplier_payments.payment_session import (
    ApplicationMethod,
    PaymentMethod,
)


def test_f1_service_field_names_are_mapped():
    out = normalize_form({
        "paymentAmount": " 1500.00 ",
        "paymentMethod": "BANK_TRANSFER",
        "bankAccountId": "ba-1",
        "applicationMethod": "OLDEST_FIRST",
        "paymentReference": " MPESA-XYZ ",
        "description": "Invoice batch",
        "supplierAccountId": "ignored",
    })
    assert out == {
        "payment_amount": "1500.00",
        "payment_method": PaymentMethod.BANK_TRANSFER,
        "bank_account_id": "ba-1",
        "application_method": ApplicationMethod.OLDEST_FIRST,
        "reference": "MPESA-XYZ",
        "description": "Invoice batch",
    }


@pytest.mark.parametrize("raw,expected", [
    ("cash", PaymentMethod.CASH),
    (" Cash ", PaymentMethod.CASH),
    ("bank transfer", PaymentMethod.BANK_TRANSFER),
    ("bt", PaymentMethod.BANK_TRANSFER),
    ("Transfer", PaymentMethod.BANK_TRANSFER),
    ("cheque", "cheque"),
])
def test_f2_method_canonicalisation(raw, expected):
    assert normalize_form({"method": raw})["payment_method"] == expected


def test_f3_empty_and_missing_values():
    out = normalize_form({"amount": None, "payment_method": "  ", "station": "", "notes": None})
    assert out == {"station_id": ""}


def test_f4_rejects_non_dict():
    with pytest.raises(TypeError):
        normalize_form([("amount", 1)])


def test_f5_feeds_set_details(model):
    res = model.set_details(**normalize_form({
        "amount": 250,
        "method": "cash",
        "station_wallet": "st-9",
        "shift": "sh-1",
        "allocation_method": "manual",
    }))
    assert res.errors == []
    s = model.session
    assert s.payment_amount == Decimal("250.00")
    assert s.payment_method is PaymentMethod.CASH
    assert (s.method_detail.station_id, s.method_detail.shift_id) == ("st-9", "sh-1")
    assert s.application_method is ApplicationMethod.MANUAL
