from datetime import datetime
from decimal import Decimal

import pytest

from crud import cheques as crud_cheques
from crud import payments as crud_payments
from models.enums import ChequeStatus, DocumentPaymentStatus, PaymentMode, PaymentStatus
from utils.errors import ConflictError, InvalidTransitionError, NotFoundError
from conftest import TENANT, SHOP, ACTOR, receipt_for


@pytest.fixture
def cheque_receipt(db, make_customer, make_sale):
    customer = make_customer()
    sale = make_sale("6000", customer)
    result = crud_payments.create_payment(
        db, receipt_for(customer, "6000", mode=PaymentMode.CHEQUE, reference=sale, cheque_number="004512"), TENANT, SHOP, ACTOR,
    )
    return result.payment, sale, customer


def test_clear_completes_and_applies_balance_once(db, cheque_receipt):
    payment, sale, customer = cheque_receipt

    result = crud_cheques.clear_cheque(db, payment.id, TENANT, SHOP, ACTOR, notes="Credited to current account")

    assert result.ok
    assert result.payment.status == PaymentStatus.COMPLETED
    assert result.payment.cheque_status == ChequeStatus.CLEARED
    assert result.payment.clearance_date is not None
    db.refresh(customer)
    assert customer.balance == Decimal("-6000")

    with pytest.raises(ConflictError):
        crud_cheques.clear_cheque(db, payment.id, TENANT, SHOP, ACTOR)
    db.refresh(customer)
    assert customer.balance == Decimal("-6000")


def test_clear_uses_given_clearance_date(db, cheque_receipt):
    payment, _, _ = cheque_receipt
    result = crud_cheques.clear_cheque(db, payment.id, TENANT, SHOP, ACTOR, clearance_date=datetime(2026, 10, 22, 11, 30))
    assert result.payment.clearance_date.replace(tzinfo=None) == datetime(2026, 10, 22, 11, 30)


def test_bounce_reverses_reference_only(db, cheque_receipt):
    payment, sale, customer = cheque_receipt

    result = crud_cheques.bounce_cheque(db, payment.id, "Insufficient funds", TENANT, SHOP, ACTOR)

    assert result.payment.status == PaymentStatus.FAILED
    assert result.payment.cheque_status == ChequeStatus.BOUNCED
    assert result.payment.bounce_reason == "Insufficient funds"
    db.refresh(sale)
    db.refresh(customer)
    assert sale.payment_status == DocumentPaymentStatus.UNPAID
    assert sale.due_amount == Decimal("6000")
    assert customer.balance == Decimal("0")

    with pytest.raises(ConflictError):
        crud_cheques.bounce_cheque(db, payment.id, "again", TENANT, SHOP, ACTOR)


def test_cleared_cheque_cannot_bounce(db, cheque_receipt):
    payment, sale, customer = cheque_receipt
    crud_cheques.clear_cheque(db, payment.id, TENANT, SHOP, ACTOR)

    with pytest.raises(InvalidTransitionError):
        crud_cheques.bounce_cheque(db, payment.id, "late return", TENANT, SHOP, ACTOR)

    db.refresh(sale)
    db.refresh(customer)
    assert sale.payment_status == DocumentPaymentStatus.PAID
    assert customer.balance == Decimal("-6000")


def test_cancel_after_clear_reverses_both_effects(db, cheque_receipt):
    payment, sale, customer = cheque_receipt
    crud_cheques.clear_cheque(db, payment.id, TENANT, SHOP, ACTOR)

    crud_payments.cancel_payment(db, payment.id, "Wrong customer", TENANT, SHOP, ACTOR)

    db.refresh(sale)
    db.refresh(customer)
    assert sale.paid_amount == Decimal("0")
    assert customer.balance == Decimal("0")


def test_non_cheque_payment_is_not_found(db, make_customer):
    cash = crud_payments.create_payment(db, receipt_for(make_customer(), "100"), TENANT, SHOP, ACTOR).payment
    with pytest.raises(NotFoundError):
        crud_cheques.clear_cheque(db, cash.id, TENANT, SHOP, ACTOR)


def test_cheque_listings(db, make_customer):
    customer = make_customer()
    ids = [
        crud_payments.create_payment(db, receipt_for(customer, "100", mode=PaymentMode.CHEQUE, cheque_number=str(n)), TENANT, SHOP, ACTOR).payment.id
        for n in range(3)
    ]
    crud_cheques.clear_cheque(db, ids[0], TENANT, SHOP, ACTOR)
    crud_cheques.bounce_cheque(db, ids[1], "Signature mismatch", TENANT, SHOP, ACTOR)

    assert [p.id for p in crud_cheques.get_pending_cheques(db, TENANT, SHOP)] == [ids[2]]
    assert [p.id for p in crud_cheques.get_cleared_cheques(db, TENANT, SHOP)] == [ids[0]]
    assert [p.id for p in crud_cheques.get_bounced_cheques(db, TENANT, SHOP)] == [ids[1]]


def test_pending_cheques_exclude_dead_payments(db, make_customer):
    customer = make_customer()
    ids = [
        crud_payments.create_payment(db, receipt_for(customer, "100", mode=PaymentMode.CHEQUE, cheque_number=f"7{n}"), TENANT, SHOP, ACTOR).payment.id
        for n in range(4)
    ]
    crud_payments.cancel_payment(db, ids[0], "Customer paid cash instead", TENANT, SHOP, ACTOR)
    crud_payments.update_payment_status(db, ids[1], PaymentStatus.FAILED, TENANT, SHOP, ACTOR, reason="Cheque lost")
    crud_payments.delete_payment(db, ids[2], TENANT, SHOP, ACTOR)

    assert [p.id for p in crud_cheques.get_pending_cheques(db, TENANT, SHOP)] == [ids[3]]
    with pytest.raises(InvalidTransitionError):
        crud_cheques.clear_cheque(db, ids[0], TENANT, SHOP, ACTOR)
