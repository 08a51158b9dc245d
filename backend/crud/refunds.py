import logging
from decimal import Decimal
from typing import List

from sqlalchemy.orm import Session
from database import transaction_scope
from models.payments import Payment
from models.audit_mixin import now_ist
from models.enums import PaymentMode, PaymentStatus, ApprovalStatus, TransactionType, AuditSeverity
from crud.app_config import get_refund_number_prefix
from crud.audit_log import record_event
from crud.sequences import next_document_number
from crud.payment_status import transition_payment_status
from crud.payment_effects import PaymentResult, apply_effects
from crud.payments import get_payment
from utils import format_indian_currency
from utils.errors import ValidationError

logger = logging.getLogger("refunds")


def flipped_transaction_type(transaction_type: TransactionType) -> TransactionType:
    if transaction_type == TransactionType.RECEIPT:
        return TransactionType.PAYMENT
    return TransactionType.RECEIPT


def process_refund(db: Session, original_id: int, refund_amount, refund_mode: PaymentMode, reason: str,
                   tenant_id: str, shop_id: str, actor: str) -> PaymentResult:
    """Refund a completed payment with a compensating payment of the opposite type.

    The original becomes ``refunded``; the refund carries its own reference
    and balance effects, so the document shows the net of both.
    """
    amount = Decimal(refund_amount)
    if amount <= 0:
        raise ValidationError("Refund amount must be greater than zero", {"refund_amount": str(amount)})

    with transaction_scope(db):
        original = get_payment(db, original_id, tenant_id, shop_id, lock=True)
        if amount > original.amount:
            raise ValidationError(
                "Refund amount cannot exceed original payment amount",
                {"refund_amount": str(amount), "original_amount": str(original.amount)},
            )
        transition_payment_status(original, PaymentStatus.REFUNDED)
        original.updated_by = actor

        refund_number = next_document_number(db, tenant_id, shop_id, get_refund_number_prefix(db, tenant_id, shop_id))
        refund = Payment(
            tenant_id=tenant_id,
            shop_id=shop_id,
            payment_number=refund_number,
            payment_date=now_ist(),
            transaction_type=flipped_transaction_type(original.transaction_type),
            payment_mode=refund_mode,
            amount=amount,
            status=PaymentStatus.COMPLETED,
            notes=f"Refund for {original.payment_number}: {reason}",
            party_type=original.party_type,
            party_id=original.party_id,
            party_name=original.party_name,
            reference_type=original.reference_type,
            reference_id=original.reference_id,
            reference_number=original.reference_number,
            discrepancy=Decimal(0),
            is_reconciled=False,
            requires_approval=False,
            approval_status=ApprovalStatus.PENDING,
            is_refund=True,
            original_payment_id=original.id,
            refund_reason=reason,
            refunded_by=actor,
            reference_applied=False,
            balance_applied=False,
            created_by=actor,
        )
        db.add(refund)
        db.flush()

        result = PaymentResult(payment=refund)
        apply_effects(db, refund, result)

    logger.info(f"Refund {refund.payment_number} of {refund.amount} for payment {original.payment_number} processed by user {actor} for tenant {tenant_id}")
    record_event(
        db, actor, tenant_id, shop_id, "refund",
        f"Refund {refund.payment_number} of {format_indian_currency(refund.amount)} issued for {original.payment_number}",
        {
            "refund_payment_id": refund.id,
            "original_payment_id": original.id,
            "amount": refund.amount,
            "reason": reason,
            "issues": [issue.detail for issue in result.issues],
        },
        severity=AuditSeverity.WARN,
    )
    return result


def get_refunds(db: Session, tenant_id: str, shop_id: str, skip: int = 0, limit: int = 100) -> List[Payment]:
    return (
        db.query(Payment)
        .filter(Payment.tenant_id == tenant_id, Payment.shop_id == shop_id, Payment.is_refund.is_(True))
        .order_by(Payment.payment_date.desc(), Payment.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )
