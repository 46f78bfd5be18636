# tests/test_allocations_model.py
from decimal import Decimal

import pytest

from station_payables.modules.payments.supplier_payments import allocations_model as engine
from station_payables.modules.payments.supplier_payments.ledger_view import sorted_by_due_date
from station_payables.modules.payments.supplier_payments.payment_session import PaymentSession

from conftest import make_account, make_invoice, pairs

D = Decimal


def test_a1_oldest_first_spills_into_next_invoice(invoices):
    rows, leftover = engine.auto_allocate(D("600"), invoices)
    assert pairs(rows) == [("1", D("500")), ("2", D("100"))]
    assert leftover == D("0")


def test_a2_small_payment_touches_only_oldest(invoices):
    rows, leftover = engine.auto_allocate(D("200"), invoices)
    assert pairs(rows) == [("1", D("200"))]
    assert leftover == D("0")


def test_a3_payment_above_total_leaves_leftover(invoices):
    rows, leftover = engine.auto_allocate(D("1000"), invoices)
    assert pairs(rows) == [("1", D("500")), ("2", D("300"))]
    assert leftover == D("200")


def test_a4_manual_amount_is_clamped_to_remaining(account):
    session = PaymentSession.open(account)
    alloc = engine.add_or_update_allocation(session, "1", D("700"))
    assert alloc.amount == D("500")
    assert pairs(session.allocations) == [("1", D("500"))]


@pytest.mark.parametrize("amount", ["0.01", "1", "299.99", "500", "500.01", "799.99", "800", "1234.56"])
def test_a5_sum_and_bounds_laws(invoices, amount):
    p = D(amount)
    rows, leftover = engine.auto_allocate(p, invoices)
    total = sum((r.amount for r in rows), D("0"))
    balances = {i.id: i.remaining_balance for i in invoices}

    assert total + leftover == p
    assert total <= p
    assert leftover >= 0
    for r in rows:
        assert D("0") < r.amount <= balances[r.invoice_id]


def test_a6_ordering_law_prefix_of_due_order():
    invs = [
        make_invoice("c", "100", "2024-03-01"),
        make_invoice("a", "100", "2024-01-15"),
        make_invoice("b", "100", "2024-01-15"),
        make_invoice("d", "100"),
    ]
    rows, _ = engine.auto_allocate(D("250"), invs)
    order = [i.id for i in sorted_by_due_date(invs)]
    assert order == ["a", "b", "c", "d"]
    assert [r.invoice_id for r in rows] == order[: len(rows)]
    # every invoice before the last touched one is fully settled
    assert pairs(rows) == [("a", D("100")), ("b", D("100")), ("c", D("50"))]


def test_a7_auto_allocate_is_idempotent(invoices):
    first = engine.auto_allocate(D("650"), invoices)
    second = engine.auto_allocate(D("650"), invoices)
    assert first == second


@pytest.mark.parametrize("amount", [D("0"), D("-5")])
def test_a8_non_positive_payment_rejected(invoices, amount):
    with pytest.raises(ValueError):
        engine.auto_allocate(amount, invoices)


def test_a9_no_invoices_means_everything_left_over():
    rows, leftover = engine.auto_allocate(D("75"), [])
    assert rows == []
    assert leftover == D("75")


def test_a10_update_keeps_position_and_zero_removes(account):
    session = PaymentSession.open(account)
    engine.add_or_update_allocation(session, "1", "100")
    engine.add_or_update_allocation(session, "2", "50")
    engine.add_or_update_allocation(session, "1", "120")
    assert pairs(session.allocations) == [("1", D("120")), ("2", D("50"))]

    assert engine.add_or_update_allocation(session, "1", "-10") is None
    assert pairs(session.allocations) == [("2", D("50"))]

    engine.remove_allocation(session, "does-not-exist")
    assert pairs(session.allocations) == [("2", D("50"))]


def test_a11_unknown_invoice_is_rejected(account):
    session = PaymentSession.open(account)
    with pytest.raises(KeyError):
        engine.add_or_update_allocation(session, "99", "10")


def test_a12_highest_first_suggestion():
    invs = [
        make_invoice("1", "100", "2024-01-01"),
        make_invoice("2", "400", "2024-02-01"),
        make_invoice("3", "400", "2024-01-20"),
    ]
    rows, leftover = engine.suggest_highest_first(D("600"), invs)
    assert pairs(rows) == [("3", D("400")), ("2", D("200"))]
    assert leftover == D("0")


def test_a13_summary_and_credit_balance(account):
    session = PaymentSession.open(account)
    session.payment_amount = D("600")
    engine.add_or_update_allocation(session, "1", "500")

    summary = engine.payment_summary(session)
    assert summary.total_allocated == D("500")
    assert summary.credit_balance == D("100") == engine.credit_balance(session)
    assert summary.is_overpayment is True
    assert summary.is_valid is True

    engine.add_or_update_allocation(session, "2", "150")
    summary = engine.payment_summary(session)
    assert summary.credit_balance == D("-50")
    assert summary.is_valid is False

    engine.clear_allocations(session)
    assert engine.total_allocated(session) == D("0")


def test_a14_engine_never_touches_ledger_balances(account):
    before = account.remaining_balances()
    session = PaymentSession.open(account)
    engine.replace_allocations(session, engine.auto_allocate(D("800"), account.outstanding_invoices)[0])
    assert account.remaining_balances() == before
    assert make_account(account.outstanding_invoices).current_balance == D("800")
