# station_payables/tests/conftest.py
# ---------------------------------------------------------------------
# Ground rules:
# - No network: collaborators are in-memory fakes (or httpx.MockTransport)
# - Canonical ledger: invoice "1" (500, due 2024-01-01), invoice "2"
#   (300, due 2024-02-01); supplier balance 800; snapshot date 2024-03-01
# - Audit events go to a propagating test logger so caplog can see them
# ---------------------------------------------------------------------

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

import pytest

from station_payables.config import EngineConfig
from station_payables.modules.payments.supplier_payments.ledger_view import Invoice, SupplierAccount
from station_payables.modules.payments.supplier_payments.session_model import PaymentSessionModel
from station_payables.modules.payments.supplier_payments.submission import SubmissionCoordinator

AS_OF = date(2024, 3, 1)
AUDIT_LOGGER_NAME = "station_payables.tests.audit"


# ---------- Ledger builders ----------
def make_invoice(inv_id: str, remaining, due: Optional[str] = None, *, original=None) -> Invoice:
    remaining = Decimal(str(remaining))
    return Invoice(
        id=inv_id,
        invoice_number=f"INV-{inv_id}",
        original_amount=remaining if original is None else Decimal(str(original)),
        remaining_balance=remaining,
        due_date=due,
        is_overdue=bool(due) and date.fromisoformat(due) < AS_OF,
    )


def make_account(invoices, *, acct_id: str = "acct-1", balance=None) -> SupplierAccount:
    invoices = tuple(invoices)
    if balance is None:
        balance = sum((i.remaining_balance for i in invoices), Decimal("0"))
    return SupplierAccount(
        id=acct_id,
        supplier_name="Rift Valley Fuels",
        current_balance=balance,
        outstanding_invoices=invoices,
        snapshot_date=AS_OF,
    )


@pytest.fixture()
def invoices() -> List[Invoice]:
    return [
        make_invoice("1", "500", "2024-01-01"),
        make_invoice("2", "300", "2024-02-01"),
    ]


@pytest.fixture()
def account(invoices) -> SupplierAccount:
    return make_account(invoices)


# ---------- Collaborator fakes ----------
class FakeGateway:
    """Records payloads; returns `response` or raises `error`."""

    def __init__(self, response: Optional[Mapping[str, Any]] = None, error: Optional[BaseException] = None):
        self.response = response if response is not None else {
            "success": True,
            "data": {"transferNumber": "TRF-0001", "newSupplierBalance": 200},
        }
        self.error = error
        self.calls: List[tuple] = []
        self.on_call = None

    def _handle(self, kind: str, payload: Mapping[str, Any]) -> Mapping[str, Any]:
        self.calls.append((kind, payload))
        if self.on_call is not None:
            self.on_call()
        if self.error is not None:
            raise self.error
        return self.response

    def process_cash_payment(self, payload):
        return self._handle("cash", payload)

    def process_bank_payment(self, payload):
        return self._handle("bank", payload)


class FakeLedger:
    def __init__(self, account: SupplierAccount, error: Optional[BaseException] = None):
        self.account = account
        self.error = error
        self.reads: List[str] = []

    def get_supplier_account(self, supplier_account_id: str) -> SupplierAccount:
        self.reads.append(supplier_account_id)
        if self.error is not None:
            raise self.error
        return self.account


@pytest.fixture()
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture()
def audit_logger() -> logging.Logger:
    logger = logging.getLogger(AUDIT_LOGGER_NAME)
    logger.setLevel(logging.INFO)
    return logger


@pytest.fixture()
def coordinator(gateway, audit_logger) -> SubmissionCoordinator:
    return SubmissionCoordinator(gateway, audit_logger=audit_logger)


@pytest.fixture()
def config() -> EngineConfig:
    return EngineConfig(log_level="DEBUG")


@pytest.fixture()
def model(account, coordinator, config) -> PaymentSessionModel:
    return PaymentSessionModel(account, coordinator, config=config)


# ---------- Small helpers ----------
def pairs(allocations) -> List[tuple]:
    """[(invoice_id, Decimal amount), ...] for compact assertions."""
    return [(a.invoice_id, a.amount) for a in allocations]


def fill_cash_details(model: PaymentSessionModel, amount="600", station_id="st-1") -> Dict[str, Any]:
    res = model.set_details(payment_amount=amount, payment_method="CASH", station_id=station_id)
    assert res.errors == []
    return {"amount": amount, "station_id": station_id}
