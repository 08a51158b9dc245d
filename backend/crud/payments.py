"""
Payment Ledger.

Every operation here runs its payment write, reference update and balance
update inside one ``transaction_scope``; the audit event is emitted after the
commit and may fail without affecting the result.
"""
import logging
from decimal import Decimal

from sqlalchemy.orm import Session
from database import transaction_scope
from models.payments import Payment
from models.audit_mixin import now_ist
from models.enums import (
    PaymentMode,
    PaymentStatus,
    ChequeStatus,
    ApprovalStatus,
    PartyType,
    ReferenceType,
    AuditSeverity,
)
from schemas.payments import PaymentCreate, PaymentUpdate, ReferenceIn
from crud.app_config import get_approval_threshold, get_payment_number_prefix
from crud.audit_log import record_event
from crud.sequences import next_document_number
from crud.reference_status import get_reference_document
from crud.payment_status import transition_payment_status, initial_payment_status
from crud.payment_effects import PaymentResult, apply_effects, reverse_effects
from utils import format_indian_currency
from utils.errors import NotFoundError, ConflictError, ValidationError, UnprocessableError

logger = logging.getLogger("payments")


def append_note(payment: Payment, note: str):
    if note:
        payment.notes = f"{payment.notes}\n{note}" if payment.notes else note


def get_payment(db: Session, payment_id: int, tenant_id: str, shop_id: str = None, lock: bool = False) -> Payment:
    query = db.query(Payment).filter(Payment.id == payment_id, Payment.tenant_id == tenant_id)
    if shop_id is not None:
        query = query.filter(Payment.shop_id == shop_id)
    if lock:
        query = query.with_for_update()
    payment = query.first()
    if payment is None:
        raise NotFoundError("Payment not found", {"payment_id": payment_id})
    return payment


def _validate_payment_request(payment_in: PaymentCreate) -> Decimal:
    amount = Decimal(payment_in.amount)
    if amount <= 0:
        raise ValidationError("Payment amount must be greater than zero", {"amount": str(amount)})

    if payment_in.payment_mode == PaymentMode.CHEQUE and not (payment_in.cheque and payment_in.cheque.cheque_number):
        raise ValidationError("Cheque number is required for cheque payments")

    if payment_in.party.party_type != PartyType.OTHER and payment_in.party.party_id is None:
        raise ValidationError(f"party_id is required for {payment_in.party.party_type.value} payments")

    reference = payment_in.reference
    if reference and reference.reference_type != ReferenceType.NONE and reference.reference_id is None:
        raise ValidationError(f"reference_id is required for a {reference.reference_type.value} reference")
    return amount


def _check_against_document(document, payment_in: PaymentCreate, amount: Decimal):
    if payment_in.transaction_type != document.natural_transaction_type:
        raise ValidationError(
            f"A {payment_in.transaction_type.value} cannot be applied to {type(document).__name__.lower()} {document.document_number}",
            {"expected_transaction_type": document.natural_transaction_type.value},
        )
    if amount > document.due_amount:
        raise UnprocessableError(
            f"Payment amount ({amount}) exceeds remaining due amount ({document.due_amount}) for {document.document_number}",
            {"amount": str(amount), "due_amount": str(document.due_amount)},
        )


def create_payment(db: Session, payment_in: PaymentCreate, tenant_id: str, shop_id: str, actor: str) -> PaymentResult:
    """Record a payment and apply it to its reference document and party balance.

    Cheque payments are applied to the reference at once, but their balance
    effect waits for ``clear_cheque``.
    """
    amount = _validate_payment_request(payment_in)
    reference = payment_in.reference or ReferenceIn()
    result = PaymentResult(payment=None)

    with transaction_scope(db):
        if reference.reference_type != ReferenceType.NONE:
            document = get_reference_document(db, reference.reference_type, reference.reference_id, tenant_id, shop_id, lock=True)
            if document is not None:
                _check_against_document(document, payment_in, amount)
                reference.reference_number = reference.reference_number or document.document_number

        payment_number = next_document_number(db, tenant_id, shop_id, get_payment_number_prefix(db, tenant_id, shop_id))
        payment = Payment(
            tenant_id=tenant_id,
            shop_id=shop_id,
            payment_number=payment_number,
            payment_date=payment_in.payment_date or now_ist(),
            transaction_type=payment_in.transaction_type,
            payment_mode=payment_in.payment_mode,
            amount=amount,
            status=initial_payment_status(payment_in.payment_mode, payment_in.transaction_id),
            transaction_id=payment_in.transaction_id,
            notes=payment_in.notes,
            party_type=payment_in.party.party_type,
            party_id=payment_in.party.party_id,
            party_name=payment_in.party.party_name,
            reference_type=reference.reference_type,
            reference_id=reference.reference_id,
            reference_number=reference.reference_number,
            payment_details=payment_in.payment_details,
            discrepancy=Decimal(0),
            is_reconciled=False,
            requires_approval=False,
            approval_status=ApprovalStatus.PENDING,
            is_refund=False,
            reference_applied=False,
            balance_applied=False,
            created_by=actor,
        )
        if payment_in.payment_mode == PaymentMode.CHEQUE:
            payment.cheque_number = payment_in.cheque.cheque_number
            payment.cheque_date = payment_in.cheque.cheque_date
            payment.cheque_bank_name = payment_in.cheque.bank_name
            payment.cheque_status = ChequeStatus.PENDING

        threshold = get_approval_threshold(db, tenant_id, shop_id)
        if threshold is not None and amount >= threshold:
            payment.requires_approval = True

        db.add(payment)
        db.flush()
        result.payment = payment

        apply_effects(db, payment, result, include_balance=payment.payment_mode != PaymentMode.CHEQUE)

    logger.info(f"Payment {payment.payment_number} ({payment.transaction_type.value} {payment.amount} via {payment.payment_mode.value}) created with status {payment.status.value} by user {actor} for tenant {tenant_id}")
    record_event(
        db, actor, tenant_id, shop_id, "create",
        f"Payment {payment.payment_number} created - {payment.transaction_type.value} {format_indian_currency(payment.amount)}",
        {
            "payment_id": payment.id,
            "payment_number": payment.payment_number,
            "amount": payment.amount,
            "party_id": payment.party_id,
            "payment_mode": payment.payment_mode,
            "issues": [issue.detail for issue in result.issues],
        },
        severity=AuditSeverity.WARN if result.issues else AuditSeverity.INFO,
    )
    return result


def update_payment(db: Session, payment_id: int, payment_update: PaymentUpdate, tenant_id: str, shop_id: str, actor: str) -> Payment:
    """Edit the non-financial fields of a pending payment."""
    with transaction_scope(db):
        payment = get_payment(db, payment_id, tenant_id, shop_id, lock=True)
        if payment.status != PaymentStatus.PENDING:
            raise ConflictError("Cannot edit completed or reconciled payments", {"status": payment.status.value})

        changes = payment_update.model_dump(exclude_unset=True)
        if "payment_date" in changes and changes["payment_date"] is None:
            raise ValidationError("payment_date cannot be cleared")
        if payment.payment_mode != PaymentMode.CHEQUE and ({"cheque_date", "cheque_bank_name"} & changes.keys()):
            raise ValidationError("Cheque details can only be set on cheque payments")
        for key, value in changes.items():
            setattr(payment, key, value)
        payment.updated_by = actor

    logger.info(f"Payment {payment.payment_number} updated ({', '.join(sorted(changes))}) by user {actor} for tenant {tenant_id}")
    record_event(db, actor, tenant_id, shop_id, "update", f"Payment {payment.payment_number} updated", {"payment_id": payment.id, "fields": sorted(changes)})
    return payment


def cancel_payment(db: Session, payment_id: int, reason: str, tenant_id: str, shop_id: str, actor: str) -> PaymentResult:
    """Cancel a pending or completed payment and reverse whatever it applied."""
    with transaction_scope(db):
        payment = get_payment(db, payment_id, tenant_id, shop_id, lock=True)
        result = _cancel_locked(db, payment, reason, actor)

    logger.info(f"Payment {payment.payment_number} cancelled by user {actor} for tenant {tenant_id}: {reason}")
    record_event(
        db, actor, tenant_id, shop_id, "cancel",
        f"Payment {payment.payment_number} cancelled",
        {"payment_id": payment.id, "reason": reason},
        severity=AuditSeverity.WARN,
    )
    return result


def _cancel_locked(db: Session, payment: Payment, reason: str, actor: str) -> PaymentResult:
    if payment.status == PaymentStatus.CANCELLED:
        raise ConflictError("Payment is already cancelled")
    transition_payment_status(payment, PaymentStatus.CANCELLED)
    append_note(payment, f"Cancellation reason: {reason}" if reason else None)
    payment.updated_by = actor

    result = PaymentResult(payment=payment)
    reverse_effects(db, payment, result)
    db.flush()
    return result


def delete_payment(db: Session, payment_id: int, tenant_id: str, shop_id: str, actor: str) -> PaymentResult:
    """Reverse a pending payment's effects and soft-delete it."""
    with transaction_scope(db):
        payment = get_payment(db, payment_id, tenant_id, shop_id, lock=True)
        if payment.status != PaymentStatus.PENDING or payment.is_reconciled:
            raise ConflictError("Cannot delete completed or reconciled payments", {"status": payment.status.value})

        result = PaymentResult(payment=payment)
        reverse_effects(db, payment, result)
        payment.deleted_at = now_ist()
        payment.deleted_by = actor
        payment.updated_by = actor

    logger.info(f"Payment {payment.payment_number} deleted by user {actor} for tenant {tenant_id}")
    record_event(
        db, actor, tenant_id, shop_id, "delete",
        f"Payment {payment.payment_number} deleted",
        {"payment_id": payment.id, "reason": "Soft delete"},
        severity=AuditSeverity.WARN,
    )
    return result


def update_payment_status(db: Session, payment_id: int, target: PaymentStatus, tenant_id: str, shop_id: str, actor: str, reason: str = None) -> PaymentResult:
    """Move a payment along the status machine, applying or reversing effects.

    ``cancelled`` goes through ``cancel_payment``; cheques complete through
    ``clear_cheque`` and refunds through ``process_refund``.
    """
    if target == PaymentStatus.CANCELLED:
        return cancel_payment(db, payment_id, reason, tenant_id, shop_id, actor)
    if target == PaymentStatus.REFUNDED:
        raise ValidationError("Refunds must be processed through the refund operation")

    with transaction_scope(db):
        payment = get_payment(db, payment_id, tenant_id, shop_id, lock=True)
        if target == PaymentStatus.COMPLETED and payment.payment_mode == PaymentMode.CHEQUE:
            raise ValidationError("Cheque payments are completed by clearing the cheque")

        old_status = transition_payment_status(payment, target)
        append_note(payment, reason)
        payment.updated_by = actor

        result = PaymentResult(payment=payment)
        if target == PaymentStatus.COMPLETED:
            apply_effects(db, payment, result)
        elif target == PaymentStatus.FAILED:
            reverse_effects(db, payment, result)

    logger.info(f"Payment {payment.payment_number} status {old_status.value} -> {target.value} by user {actor} for tenant {tenant_id}")
    record_event(
        db, actor, tenant_id, shop_id, "update_status",
        f"Payment {payment.payment_number} status changed from {old_status.value} to {target.value}",
        {"payment_id": payment.id, "old_status": old_status, "new_status": target},
    )
    return result


def approve_payment(db: Session, payment_id: int, tenant_id: str, shop_id: str, actor: str, notes: str = None) -> Payment:
    with transaction_scope(db):
        payment = get_payment(db, payment_id, tenant_id, shop_id, lock=True)
        if payment.approval_status == ApprovalStatus.APPROVED:
            raise ConflictError("Payment is already approved")
        if payment.approval_status == ApprovalStatus.REJECTED:
            raise ConflictError("Payment has been rejected")
        payment.approval_status = ApprovalStatus.APPROVED
        payment.approved_by = actor
        payment.approved_at = now_ist()
        append_note(payment, notes)
        payment.updated_by = actor

    logger.info(f"Payment {payment.payment_number} approved by user {actor} for tenant {tenant_id}")
    record_event(db, actor, tenant_id, shop_id, "approve", f"Payment {payment.payment_number} approved", {"payment_id": payment.id}, severity=AuditSeverity.SUCCESS)
    return payment


def reject_payment(db: Session, payment_id: int, reason: str, tenant_id: str, shop_id: str, actor: str) -> PaymentResult:
    """Reject and cancel the payment, reversing its effects."""
    with transaction_scope(db):
        payment = get_payment(db, payment_id, tenant_id, shop_id, lock=True)
        if payment.approval_status == ApprovalStatus.REJECTED:
            raise ConflictError("Payment is already rejected")
        result = _cancel_locked(db, payment, f"Rejected: {reason}", actor)
        payment.approval_status = ApprovalStatus.REJECTED
        payment.approved_by = actor
        payment.approved_at = now_ist()
        payment.rejection_reason = reason

    logger.info(f"Payment {payment.payment_number} rejected by user {actor} for tenant {tenant_id}: {reason}")
    record_event(
        db, actor, tenant_id, shop_id, "reject",
        f"Payment {payment.payment_number} rejected: {reason}",
        {"payment_id": payment.id, "reason": reason},
        severity=AuditSeverity.WARN,
    )
    return result
