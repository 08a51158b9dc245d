"""End-to-end money flows across the ledger, the order and the party balances."""
from decimal import Decimal

import pytest

from crud import cheques as crud_cheques
from crud import payments as crud_payments
from models.enums import DocumentPaymentStatus, PaymentMode, PaymentStatus
from conftest import TENANT, SHOP, ACTOR, receipt_for, payment_to


def _order_totals(db, order):
    db.refresh(order)
    return order.paid_amount, order.due_amount, order.payment_status


@pytest.fixture
def advance_then_cheque(db, make_customer, make_order):
    customer = make_customer()
    order = make_order("10000", customer)

    crud_payments.create_payment(db, receipt_for(customer, "4000", reference=order), TENANT, SHOP, ACTOR)
    assert _order_totals(db, order) == (Decimal("4000"), Decimal("6000"), DocumentPaymentStatus.PARTIAL)
    db.refresh(customer)
    assert customer.balance == Decimal("-4000")

    cheque = crud_payments.create_payment(
        db, receipt_for(customer, "6000", mode=PaymentMode.CHEQUE, reference=order, cheque_number="120045"), TENANT, SHOP, ACTOR,
    ).payment
    assert _order_totals(db, order) == (Decimal("10000"), Decimal("0"), DocumentPaymentStatus.PAID)
    return order, customer, cheque


def test_custom_order_paid_by_advance_and_cleared_cheque(db, advance_then_cheque):
    order, customer, cheque = advance_then_cheque

    result = crud_cheques.clear_cheque(db, cheque.id, TENANT, SHOP, ACTOR)

    assert result.payment.status == PaymentStatus.COMPLETED
    assert _order_totals(db, order) == (Decimal("10000"), Decimal("0"), DocumentPaymentStatus.PAID)
    db.refresh(customer)
    assert customer.balance == Decimal("-10000")


def test_custom_order_cheque_bounces(db, advance_then_cheque):
    order, customer, cheque = advance_then_cheque

    result = crud_cheques.bounce_cheque(db, cheque.id, "Account closed", TENANT, SHOP, ACTOR)

    assert result.payment.status == PaymentStatus.FAILED
    assert _order_totals(db, order) == (Decimal("4000"), Decimal("6000"), DocumentPaymentStatus.PARTIAL)
    db.refresh(customer)
    assert customer.balance == Decimal("-4000")


def test_settling_a_supplier_advance(db, make_supplier):
    supplier = make_supplier("-5000")

    result = crud_payments.create_payment(db, payment_to(supplier, "5000", mode=PaymentMode.CASH), TENANT, SHOP, ACTOR)

    assert result.ok
    db.refresh(supplier)
    assert supplier.balance == Decimal("0")


def test_create_then_cancel_round_trip(db, make_customer, make_sale):
    customer = make_customer("1500")
    sale = make_sale("8000", customer)
    before = (sale.paid_amount, sale.due_amount, sale.payment_status, customer.balance)

    payment = crud_payments.create_payment(
        db, receipt_for(customer, "3000", mode=PaymentMode.UPI, reference=sale, transaction_id="UPI-55"), TENANT, SHOP, ACTOR,
    ).payment
    crud_payments.cancel_payment(db, payment.id, "Duplicate entry", TENANT, SHOP, ACTOR)

    db.refresh(sale)
    db.refresh(customer)
    assert (sale.paid_amount, sale.due_amount, sale.payment_status, customer.balance) == before
