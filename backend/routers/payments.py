from fastapi import APIRouter, Depends, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date, datetime
from decimal import Decimal
import logging

from database import get_db
from models.enums import TransactionType, PaymentMode, PaymentStatus, PartyType, ReferenceType
from schemas.payments import (
    Payment,
    PaymentCreate,
    PaymentUpdate,
    PaymentStatusUpdate,
    PaymentCancel,
    PaymentOutcome,
    ChequeClear,
    ChequeBounce,
    ReconcileRequest,
    BulkReconcileRequest,
    BulkReconcileResult,
    ReconciliationSummary,
    PartyPaymentSummary,
    RefundRequest,
    RejectRequest,
    ExportRequest,
    ModeBreakdown,
    CashCollection,
    DigitalCollection,
    PaymentAnalytics,
    PaymentDashboard,
)
from crud import payments as crud_payments
from crud import cheques as crud_cheques
from crud import reconciliation as crud_reconciliation
from crud import refunds as crud_refunds
from crud import payment_reports as crud_reports
from crud import payment_analytics as crud_analytics
from crud.payment_effects import PaymentResult
from utils.tenancy import get_tenant_id, get_actor_id
from models.audit_mixin import now_ist

router = APIRouter(prefix="/shops/{shop_id}/payments", tags=["Payments"])
logger = logging.getLogger("payments")


def to_outcome(result: PaymentResult) -> PaymentOutcome:
    return PaymentOutcome.model_validate(result, from_attributes=True)


@router.post("/", response_model=PaymentOutcome, status_code=status.HTTP_201_CREATED)
def create_payment(
    shop_id: str,
    payment: PaymentCreate,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
    actor: str = Depends(get_actor_id),
):
    """Record a receipt or payment and apply it to its reference document and party."""
    return to_outcome(crud_payments.create_payment(db, payment, tenant_id, shop_id, actor))


@router.get("/", response_model=List[Payment])
def list_payments(
    shop_id: str,
    transaction_type: Optional[TransactionType] = None,
    payment_mode: Optional[PaymentMode] = None,
    payment_status: Optional[PaymentStatus] = None,
    party_type: Optional[PartyType] = None,
    party_id: Optional[int] = None,
    reference_type: Optional[ReferenceType] = None,
    reference_id: Optional[int] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    min_amount: Optional[Decimal] = None,
    max_amount: Optional[Decimal] = None,
    search: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
):
    return crud_reports.list_payments(
        db, tenant_id, shop_id,
        transaction_type=transaction_type,
        payment_mode=payment_mode,
        status=payment_status,
        party_type=party_type,
        party_id=party_id,
        reference_type=reference_type,
        reference_id=reference_id,
        start_date=start_date,
        end_date=end_date,
        min_amount=min_amount,
        max_amount=max_amount,
        search=search,
        skip=skip,
        limit=limit,
    )


@router.get("/cheques/pending", response_model=List[Payment])
def pending_cheques(shop_id: str, db: Session = Depends(get_db), tenant_id: str = Depends(get_tenant_id)):
    return crud_cheques.get_pending_cheques(db, tenant_id, shop_id)


@router.get("/cheques/bounced", response_model=List[Payment])
def bounced_cheques(shop_id: str, db: Session = Depends(get_db), tenant_id: str = Depends(get_tenant_id)):
    return crud_cheques.get_bounced_cheques(db, tenant_id, shop_id)


@router.get("/cheques/cleared", response_model=List[Payment])
def cleared_cheques(
    shop_id: str,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
):
    return crud_cheques.get_cleared_cheques(db, tenant_id, shop_id, start_date, end_date)


@router.get("/refunds", response_model=List[Payment])
def list_refunds(shop_id: str, skip: int = 0, limit: int = 100, db: Session = Depends(get_db), tenant_id: str = Depends(get_tenant_id)):
    return crud_refunds.get_refunds(db, tenant_id, shop_id, skip=skip, limit=limit)


@router.get("/unreconciled", response_model=List[Payment])
def unreconciled_payments(shop_id: str, db: Session = Depends(get_db), tenant_id: str = Depends(get_tenant_id)):
    return crud_reconciliation.get_unreconciled_payments(db, tenant_id, shop_id)


@router.get("/reconciliation/summary", response_model=ReconciliationSummary)
def reconciliation_summary(
    shop_id: str,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
):
    return crud_reconciliation.get_reconciliation_summary(db, tenant_id, shop_id, start_date, end_date)


@router.post("/reconcile/bulk", response_model=BulkReconcileResult)
def bulk_reconcile(
    shop_id: str,
    request: BulkReconcileRequest,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
    actor: str = Depends(get_actor_id),
):
    result = crud_reconciliation.bulk_reconcile_payments(
        db, request.payment_ids, request.reconciled_with, tenant_id, shop_id, actor, notes=request.notes,
    )
    return BulkReconcileResult(
        reconciled_count=result.reconciled_count,
        skipped_count=result.skipped_count,
        total_provided=result.total_provided,
        skipped_ids=result.skipped_ids,
    )


@router.get("/by-reference/{reference_type}/{reference_id}", response_model=List[Payment])
def payments_for_reference(
    shop_id: str,
    reference_type: ReferenceType,
    reference_id: int,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
):
    return crud_reports.get_payments_for_reference(db, reference_type, reference_id, tenant_id, shop_id)


@router.get("/by-party/{party_type}/{party_id}/summary", response_model=PartyPaymentSummary)
def party_summary(
    shop_id: str,
    party_type: PartyType,
    party_id: int,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
):
    return crud_reports.get_party_payment_summary(db, party_type, party_id, tenant_id, shop_id)


@router.post("/export")
def export_payments(
    shop_id: str,
    request: ExportRequest,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
):
    """Download the selected payments as an Excel workbook."""
    stream, exported, skipped = crud_reports.export_payments_workbook(db, request.payment_ids, tenant_id, shop_id)
    filename = f"payments_{shop_id}_{now_ist().strftime('%Y%m%d_%H%M%S')}.xlsx"
    return StreamingResponse(
        stream,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={
            "Content-Disposition": f"attachment; filename={filename}",
            "X-Exported-Count": str(exported),
            "X-Skipped-Count": str(skipped),
        },
    )


@router.get("/analytics/by-mode", response_model=List[ModeBreakdown])
def payments_by_mode(
    shop_id: str,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
):
    return crud_analytics.get_payments_by_mode(db, tenant_id, shop_id, start_date, end_date)


@router.get("/analytics/cash-collection", response_model=CashCollection)
def cash_collection(
    shop_id: str,
    collection_date: Optional[date] = None,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
):
    """Cash received and paid on one day (today when no date is given)."""
    return crud_analytics.get_cash_collection(db, tenant_id, shop_id, collection_date)


@router.get("/analytics/digital-collection", response_model=DigitalCollection)
def digital_collection(
    shop_id: str,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
):
    return crud_analytics.get_digital_collection(db, tenant_id, shop_id, start_date, end_date)


@router.get("/analytics", response_model=PaymentAnalytics)
def payment_analytics(
    shop_id: str,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    group_by: str = "day",
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
):
    return crud_analytics.get_payment_analytics(db, tenant_id, shop_id, start_date, end_date, group_by)


@router.get("/dashboard", response_model=PaymentDashboard)
def payment_dashboard(shop_id: str, db: Session = Depends(get_db), tenant_id: str = Depends(get_tenant_id)):
    return crud_analytics.get_payment_dashboard(db, tenant_id, shop_id)


@router.get("/{payment_id}", response_model=Payment)
def read_payment(shop_id: str, payment_id: int, db: Session = Depends(get_db), tenant_id: str = Depends(get_tenant_id)):
    return crud_payments.get_payment(db, payment_id, tenant_id, shop_id)


@router.patch("/{payment_id}", response_model=Payment)
def update_payment(
    shop_id: str,
    payment_id: int,
    payment_update: PaymentUpdate,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
    actor: str = Depends(get_actor_id),
):
    """Edit a pending payment's dates, transaction id, details or notes."""
    return crud_payments.update_payment(db, payment_id, payment_update, tenant_id, shop_id, actor)


@router.delete("/{payment_id}", response_model=PaymentOutcome)
def delete_payment(
    shop_id: str,
    payment_id: int,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
    actor: str = Depends(get_actor_id),
):
    return to_outcome(crud_payments.delete_payment(db, payment_id, tenant_id, shop_id, actor))


@router.post("/{payment_id}/status", response_model=PaymentOutcome)
def update_payment_status(
    shop_id: str,
    payment_id: int,
    status_update: PaymentStatusUpdate,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
    actor: str = Depends(get_actor_id),
):
    result = crud_payments.update_payment_status(
        db, payment_id, status_update.status, tenant_id, shop_id, actor, reason=status_update.reason,
    )
    return to_outcome(result)


@router.post("/{payment_id}/cancel", response_model=PaymentOutcome)
def cancel_payment(
    shop_id: str,
    payment_id: int,
    cancel: PaymentCancel,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
    actor: str = Depends(get_actor_id),
):
    return to_outcome(crud_payments.cancel_payment(db, payment_id, cancel.reason, tenant_id, shop_id, actor))


@router.post("/{payment_id}/approve", response_model=Payment)
def approve_payment(
    shop_id: str,
    payment_id: int,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
    actor: str = Depends(get_actor_id),
):
    return crud_payments.approve_payment(db, payment_id, tenant_id, shop_id, actor)


@router.post("/{payment_id}/reject", response_model=PaymentOutcome)
def reject_payment(
    shop_id: str,
    payment_id: int,
    reject: RejectRequest,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
    actor: str = Depends(get_actor_id),
):
    return to_outcome(crud_payments.reject_payment(db, payment_id, reject.reason, tenant_id, shop_id, actor))


@router.post("/{payment_id}/cheque/clear", response_model=PaymentOutcome)
def clear_cheque(
    shop_id: str,
    payment_id: int,
    clear: ChequeClear,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
    actor: str = Depends(get_actor_id),
):
    result = crud_cheques.clear_cheque(
        db, payment_id, tenant_id, shop_id, actor, clearance_date=clear.clearance_date, notes=clear.notes,
    )
    return to_outcome(result)


@router.post("/{payment_id}/cheque/bounce", response_model=PaymentOutcome)
def bounce_cheque(
    shop_id: str,
    payment_id: int,
    bounce: ChequeBounce,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
    actor: str = Depends(get_actor_id),
):
    result = crud_cheques.bounce_cheque(db, payment_id, bounce.bounce_reason, tenant_id, shop_id, actor, notes=bounce.notes)
    return to_outcome(result)


@router.post("/{payment_id}/reconcile", response_model=Payment)
def reconcile_payment(
    shop_id: str,
    payment_id: int,
    request: ReconcileRequest,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
    actor: str = Depends(get_actor_id),
):
    return crud_reconciliation.reconcile_payment(
        db, payment_id, request.reconciled_with, tenant_id, shop_id, actor,
        discrepancy=request.discrepancy, notes=request.notes,
    )


@router.post("/{payment_id}/refund", response_model=PaymentOutcome, status_code=status.HTTP_201_CREATED)
def refund_payment(
    shop_id: str,
    payment_id: int,
    request: RefundRequest,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
    actor: str = Depends(get_actor_id),
):
    """Refund a completed payment; the response carries the new refund payment."""
    result = crud_refunds.process_refund(
        db, payment_id, request.refund_amount, request.refund_mode, request.refund_reason, tenant_id, shop_id, actor,
    )
    return to_outcome(result)
