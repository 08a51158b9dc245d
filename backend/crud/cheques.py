import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session
from database import transaction_scope
from models.payments import Payment
from models.audit_mixin import now_ist
from models.enums import PaymentMode, PaymentStatus, ChequeStatus, AuditSeverity
from crud.audit_log import record_event
from crud.payment_status import transition_payment_status
from crud.payment_effects import PaymentResult, apply_effects, reverse_effects
from crud.payments import append_note
from utils.errors import NotFoundError, ConflictError

logger = logging.getLogger("cheques")


def get_cheque_payment(db: Session, payment_id: int, tenant_id: str, shop_id: str, lock: bool = False) -> Payment:
    query = db.query(Payment).filter(
        Payment.id == payment_id,
        Payment.tenant_id == tenant_id,
        Payment.shop_id == shop_id,
        Payment.payment_mode == PaymentMode.CHEQUE,
    )
    if lock:
        query = query.with_for_update()
    payment = query.first()
    if payment is None:
        raise NotFoundError("Cheque payment not found", {"payment_id": payment_id})
    return payment


def clear_cheque(db: Session, payment_id: int, tenant_id: str, shop_id: str, actor: str,
                 clearance_date: Optional[datetime] = None, notes: str = None) -> PaymentResult:
    """Mark the cheque cleared, complete the payment and apply its deferred balance effect."""
    with transaction_scope(db):
        payment = get_cheque_payment(db, payment_id, tenant_id, shop_id, lock=True)
        if payment.cheque_status == ChequeStatus.CLEARED:
            raise ConflictError("Cheque is already cleared")

        transition_payment_status(payment, PaymentStatus.COMPLETED)
        payment.cheque_status = ChequeStatus.CLEARED
        payment.clearance_date = clearance_date or now_ist()
        append_note(payment, notes)
        payment.updated_by = actor

        result = PaymentResult(payment=payment)
        apply_effects(db, payment, result)

    logger.info(f"Cheque {payment.cheque_number} on payment {payment.payment_number} cleared by user {actor} for tenant {tenant_id}")
    record_event(
        db, actor, tenant_id, shop_id, "cheque_cleared",
        f"Cheque {payment.cheque_number} cleared",
        {"payment_id": payment.id, "clearance_date": payment.clearance_date},
        severity=AuditSeverity.SUCCESS,
    )
    return result


def bounce_cheque(db: Session, payment_id: int, bounce_reason: str, tenant_id: str, shop_id: str, actor: str,
                  notes: str = None) -> PaymentResult:
    """Mark the cheque bounced, fail the payment and reverse every effect it had in force."""
    with transaction_scope(db):
        payment = get_cheque_payment(db, payment_id, tenant_id, shop_id, lock=True)
        if payment.cheque_status == ChequeStatus.BOUNCED:
            raise ConflictError("Cheque is already bounced")

        transition_payment_status(payment, PaymentStatus.FAILED)
        payment.cheque_status = ChequeStatus.BOUNCED
        payment.bounce_reason = bounce_reason
        append_note(payment, notes)
        payment.updated_by = actor

        result = PaymentResult(payment=payment)
        reverse_effects(db, payment, result)

    logger.warning(f"Cheque {payment.cheque_number} on payment {payment.payment_number} bounced ({bounce_reason}) by user {actor} for tenant {tenant_id}")
    record_event(
        db, actor, tenant_id, shop_id, "cheque_bounced",
        f"Cheque {payment.cheque_number} bounced",
        {"payment_id": payment.id, "reason": bounce_reason},
        severity=AuditSeverity.WARN,
    )
    return result


def _cheques(db: Session, tenant_id: str, shop_id: str, cheque_status: ChequeStatus):
    return db.query(Payment).filter(
        Payment.tenant_id == tenant_id,
        Payment.shop_id == shop_id,
        Payment.payment_mode == PaymentMode.CHEQUE,
        Payment.cheque_status == cheque_status,
    )


def get_pending_cheques(db: Session, tenant_id: str, shop_id: str) -> List[Payment]:
    """Cheques still awaiting clearance; cancelled or failed payments are left out."""
    query = _cheques(db, tenant_id, shop_id, ChequeStatus.PENDING).filter(Payment.status == PaymentStatus.PENDING)
    return query.order_by(Payment.cheque_date.asc(), Payment.id.asc()).all()


def get_bounced_cheques(db: Session, tenant_id: str, shop_id: str) -> List[Payment]:
    return _cheques(db, tenant_id, shop_id, ChequeStatus.BOUNCED).order_by(Payment.payment_date.desc()).all()


def get_cleared_cheques(db: Session, tenant_id: str, shop_id: str,
                        start_date: Optional[datetime] = None, end_date: Optional[datetime] = None) -> List[Payment]:
    query = _cheques(db, tenant_id, shop_id, ChequeStatus.CLEARED)
    if start_date:
        query = query.filter(Payment.clearance_date >= start_date)
    if end_date:
        query = query.filter(Payment.clearance_date <= end_date)
    return query.order_by(Payment.clearance_date.desc()).all()
