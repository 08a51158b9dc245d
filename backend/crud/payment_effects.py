"""
Application and reversal of a payment's effects on its reference document
and its party's balance.

``Payment.reference_applied`` / ``Payment.balance_applied`` record which
effects are in force, so each one is applied at most once and reversed at
most once whatever sequence of create/clear/bounce/cancel/delete runs.
A missing document or party is not an error: the step is skipped and an
``EffectIssue`` is returned to the caller.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session
from models.payments import Payment
from models.enums import PartyType
from crud.reference_status import apply_reference_payment, reference_model
from crud.party_balance import adjust_party_balance, signed_balance_delta

logger = logging.getLogger("payments")


@dataclass
class EffectIssue:
    step: str
    detail: str


@dataclass
class PaymentResult:
    payment: Optional[Payment]
    issues: List[EffectIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.issues

    def add_issue(self, step: str, detail: str):
        logger.warning(f"{step} step skipped: {detail}")
        self.issues.append(EffectIssue(step=step, detail=detail))


def reference_delta(payment: Payment) -> Decimal:
    """Signed amount this payment moves on its document's ``paid_amount``.

    Positive when the payment runs in the document's natural direction
    (receipts for sales and orders, payments for purchases); a refund runs
    the other way and is negative.
    """
    model = reference_model(payment.reference_type)
    amount = Decimal(payment.amount)
    if model is None or payment.transaction_type == model.natural_transaction_type:
        return amount
    return -amount


def _has_balance_store(payment: Payment) -> bool:
    return payment.party_type != PartyType.OTHER and payment.party_id is not None


def apply_reference_effect(db: Session, payment: Payment, result: PaymentResult):
    if not payment.has_reference or payment.reference_applied:
        return
    document = apply_reference_payment(db, payment.reference_type, payment.reference_id, reference_delta(payment), payment.tenant_id, payment.shop_id)
    if document is None:
        result.add_issue("reference", f"{payment.reference_type.value} {payment.reference_id} not found; {payment.payment_number} was not applied to it")
        return
    payment.reference_applied = True


def reverse_reference_effect(db: Session, payment: Payment, result: PaymentResult):
    if not payment.reference_applied:
        return
    document = apply_reference_payment(db, payment.reference_type, payment.reference_id, -reference_delta(payment), payment.tenant_id, payment.shop_id)
    if document is None:
        result.add_issue("reference", f"{payment.reference_type.value} {payment.reference_id} not found; {payment.payment_number} could not be reversed on it")
        return
    payment.reference_applied = False


def apply_balance_effect(db: Session, payment: Payment, result: PaymentResult):
    if not _has_balance_store(payment) or payment.balance_applied:
        return
    delta = signed_balance_delta(payment.transaction_type, payment.amount)
    party = adjust_party_balance(db, payment.party_type, payment.party_id, delta, payment.tenant_id, payment.shop_id)
    if party is None:
        result.add_issue("balance", f"{payment.party_type.value} {payment.party_id} not found; balance not adjusted for {payment.payment_number}")
        return
    payment.balance_applied = True


def reverse_balance_effect(db: Session, payment: Payment, result: PaymentResult):
    if not payment.balance_applied:
        return
    delta = -signed_balance_delta(payment.transaction_type, payment.amount)
    party = adjust_party_balance(db, payment.party_type, payment.party_id, delta, payment.tenant_id, payment.shop_id)
    if party is None:
        result.add_issue("balance", f"{payment.party_type.value} {payment.party_id} not found; balance not restored for {payment.payment_number}")
        return
    payment.balance_applied = False


def apply_effects(db: Session, payment: Payment, result: PaymentResult, include_balance: bool = True):
    """Reference first, then balance."""
    apply_reference_effect(db, payment, result)
    if include_balance:
        apply_balance_effect(db, payment, result)


def reverse_effects(db: Session, payment: Payment, result: PaymentResult):
    """Reference first, then balance, mirroring ``apply_effects``."""
    reverse_reference_effect(db, payment, result)
    reverse_balance_effect(db, payment, result)
