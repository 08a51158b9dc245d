"""
Reconciliation Tracker: matching completed payments against bank statement lines.

The recorded discrepancy is informational only; it never touches reference
documents or party balances.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session
from database import transaction_scope
from models.payments import Payment
from models.audit_mixin import now_ist
from models.enums import PaymentStatus
from crud.audit_log import record_event
from crud.payments import get_payment
from utils.errors import NotFoundError, ConflictError

logger = logging.getLogger("reconciliation")


@dataclass
class BulkReconcileResult:
    reconciled_count: int = 0
    total_provided: int = 0
    skipped_ids: List[int] = field(default_factory=list)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped_ids)


def _mark_reconciled(payment: Payment, actor: str, reconciled_with: str, discrepancy, notes: Optional[str]):
    payment.is_reconciled = True
    payment.reconciled_at = now_ist()
    payment.reconciled_by = actor
    payment.reconciled_with = reconciled_with
    payment.discrepancy = Decimal(discrepancy or 0)
    payment.reconciliation_notes = notes
    payment.updated_by = actor


def reconcile_payment(db: Session, payment_id: int, reconciled_with: str, tenant_id: str, shop_id: str, actor: str,
                      discrepancy=0, notes: str = None) -> Payment:
    with transaction_scope(db):
        payment = get_payment(db, payment_id, tenant_id, shop_id, lock=True)
        if payment.is_reconciled:
            raise ConflictError("Payment is already reconciled", {"reconciled_with": payment.reconciled_with})
        if payment.status != PaymentStatus.COMPLETED:
            raise ConflictError("Only completed payments can be reconciled", {"status": payment.status.value})
        _mark_reconciled(payment, actor, reconciled_with, discrepancy, notes)

    logger.info(f"Payment {payment.payment_number} reconciled with {reconciled_with} (discrepancy {payment.discrepancy}) by user {actor} for tenant {tenant_id}")
    record_event(
        db, actor, tenant_id, shop_id, "reconcile",
        f"Payment {payment.payment_number} reconciled with {reconciled_with}",
        {"payment_id": payment.id, "discrepancy": payment.discrepancy},
    )
    return payment


def bulk_reconcile_payments(db: Session, payment_ids: List[int], reconciled_with: str, tenant_id: str, shop_id: str,
                            actor: str, notes: str = None) -> BulkReconcileResult:
    """Reconcile every eligible payment; already reconciled, non-completed and unknown ids are skipped."""
    unique_ids = list(dict.fromkeys(payment_ids))
    result = BulkReconcileResult(total_provided=len(payment_ids))

    with transaction_scope(db):
        payments = (
            db.query(Payment)
            .filter(Payment.id.in_(unique_ids), Payment.tenant_id == tenant_id, Payment.shop_id == shop_id)
            .with_for_update()
            .all()
        )
        if not payments:
            raise NotFoundError("No valid payments found", {"payment_ids": unique_ids})

        found = {payment.id: payment for payment in payments}
        for payment_id in unique_ids:
            payment = found.get(payment_id)
            if payment is None or payment.is_reconciled or payment.status != PaymentStatus.COMPLETED:
                result.skipped_ids.append(payment_id)
                continue
            _mark_reconciled(payment, actor, reconciled_with, 0, notes)
            result.reconciled_count += 1

    logger.info(f"Bulk reconciled {result.reconciled_count} of {result.total_provided} payments with {reconciled_with} by user {actor} for tenant {tenant_id}")
    record_event(
        db, actor, tenant_id, shop_id, "bulk_reconcile",
        f"Bulk reconciled {result.reconciled_count} payments",
        {"payment_ids": unique_ids, "reconciled_with": reconciled_with, "skipped_ids": result.skipped_ids},
    )
    return result


def get_unreconciled_payments(db: Session, tenant_id: str, shop_id: str) -> List[Payment]:
    return (
        db.query(Payment)
        .filter(
            Payment.tenant_id == tenant_id,
            Payment.shop_id == shop_id,
            Payment.is_reconciled.is_(False),
            Payment.status == PaymentStatus.COMPLETED,
        )
        .order_by(Payment.payment_date.desc())
        .all()
    )


def get_reconciliation_summary(db: Session, tenant_id: str, shop_id: str,
                               start_date: Optional[datetime] = None, end_date: Optional[datetime] = None) -> dict:
    base = db.query(Payment).filter(Payment.tenant_id == tenant_id, Payment.shop_id == shop_id, Payment.deleted_at.is_(None))
    if start_date:
        base = base.filter(Payment.payment_date >= start_date)
    if end_date:
        base = base.filter(Payment.payment_date <= end_date)

    reconciled = base.filter(Payment.is_reconciled.is_(True))
    unreconciled = base.filter(Payment.is_reconciled.is_(False), Payment.status == PaymentStatus.COMPLETED)

    def _count_and_sum(query, column):
        count, total = query.with_entities(func.count(Payment.id), func.coalesce(func.sum(column), 0)).one()
        return count, Decimal(str(total))

    reconciled_count, reconciled_amount = _count_and_sum(reconciled, Payment.amount)
    unreconciled_count, unreconciled_amount = _count_and_sum(unreconciled, Payment.amount)
    _, total_discrepancy = _count_and_sum(reconciled, Payment.discrepancy)

    return {
        "total_count": base.count(),
        "reconciled": {"count": reconciled_count, "amount": reconciled_amount},
        "unreconciled": {"count": unreconciled_count, "amount": unreconciled_amount},
        "total_discrepancy": total_discrepancy,
    }
