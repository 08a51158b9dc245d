from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import date, datetime
from decimal import Decimal

from models.enums import (
    TransactionType,
    PaymentMode,
    PaymentStatus,
    ChequeStatus,
    ApprovalStatus,
    PartyType,
    ReferenceType,
)


class PartyIn(BaseModel):
    party_type: PartyType
    party_id: Optional[int] = None
    party_name: str


class ReferenceIn(BaseModel):
    reference_type: ReferenceType = ReferenceType.NONE
    reference_id: Optional[int] = None
    reference_number: Optional[str] = None


class ChequeDetailsIn(BaseModel):
    cheque_number: Optional[str] = None
    cheque_date: Optional[date] = None
    bank_name: Optional[str] = None


class PaymentCreate(BaseModel):
    transaction_type: TransactionType
    payment_mode: PaymentMode
    amount: Decimal
    party: PartyIn
    reference: Optional[ReferenceIn] = None
    cheque: Optional[ChequeDetailsIn] = None
    payment_details: Optional[Dict[str, Any]] = None
    transaction_id: Optional[str] = None
    payment_date: Optional[datetime] = None
    notes: Optional[str] = None


class PaymentUpdate(BaseModel):
    payment_date: Optional[datetime] = None
    transaction_id: Optional[str] = None
    payment_details: Optional[Dict[str, Any]] = None
    cheque_date: Optional[date] = None
    cheque_bank_name: Optional[str] = None
    notes: Optional[str] = None


class PaymentStatusUpdate(BaseModel):
    status: PaymentStatus
    reason: Optional[str] = None


class PaymentCancel(BaseModel):
    reason: str


class ChequeClear(BaseModel):
    clearance_date: Optional[datetime] = None
    notes: Optional[str] = None


class ChequeBounce(BaseModel):
    bounce_reason: str
    notes: Optional[str] = None


class ReconcileRequest(BaseModel):
    reconciled_with: str
    discrepancy: Decimal = Decimal(0)
    notes: Optional[str] = None


class BulkReconcileRequest(BaseModel):
    payment_ids: List[int] = Field(..., min_length=1)
    reconciled_with: str
    notes: Optional[str] = None


class BulkReconcileResult(BaseModel):
    reconciled_count: int
    skipped_count: int
    total_provided: int
    skipped_ids: List[int] = []


class RefundRequest(BaseModel):
    refund_amount: Decimal
    refund_mode: PaymentMode
    refund_reason: str


class RejectRequest(BaseModel):
    reason: str


class ExportRequest(BaseModel):
    payment_ids: List[int] = Field(..., min_length=1)


class Payment(BaseModel):
    id: int
    tenant_id: str
    shop_id: str
    payment_number: str
    payment_date: datetime
    transaction_type: TransactionType
    payment_mode: PaymentMode
    amount: Decimal
    status: PaymentStatus
    transaction_id: Optional[str] = None
    notes: Optional[str] = None

    party_type: PartyType
    party_id: Optional[int] = None
    party_name: str

    reference_type: ReferenceType
    reference_id: Optional[int] = None
    reference_number: Optional[str] = None

    payment_details: Optional[Dict[str, Any]] = None
    cheque_number: Optional[str] = None
    cheque_date: Optional[date] = None
    cheque_bank_name: Optional[str] = None
    cheque_status: Optional[ChequeStatus] = None
    clearance_date: Optional[datetime] = None
    bounce_reason: Optional[str] = None

    is_reconciled: bool
    reconciled_at: Optional[datetime] = None
    reconciled_by: Optional[str] = None
    reconciled_with: Optional[str] = None
    discrepancy: Decimal = Decimal(0)
    reconciliation_notes: Optional[str] = None

    requires_approval: bool
    approval_status: ApprovalStatus
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None

    is_refund: bool
    original_payment_id: Optional[int] = None
    refund_reason: Optional[str] = None
    refunded_by: Optional[str] = None

    reference_applied: bool
    balance_applied: bool

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    created_by: Optional[str] = None
    updated_by: Optional[str] = None

    class Config:
        from_attributes = True


class SideEffectIssue(BaseModel):
    step: str
    detail: str

    class Config:
        from_attributes = True


class PaymentOutcome(BaseModel):
    payment: Payment
    issues: List[SideEffectIssue] = []

    class Config:
        from_attributes = True


class ModeTotal(BaseModel):
    count: int
    amount: Decimal


class ReconciliationSummary(BaseModel):
    total_count: int
    reconciled: ModeTotal
    unreconciled: ModeTotal
    total_discrepancy: Decimal


class PartyPaymentSummary(BaseModel):
    party_type: PartyType
    party_id: int
    total_received: Decimal
    total_paid: Decimal
    pending_received: Decimal
    pending_paid: Decimal
    payment_count: int
    balance: Optional[Decimal] = None


class ModeBreakdown(BaseModel):
    payment_mode: PaymentMode
    count: int
    amount: Decimal


class CashCollection(BaseModel):
    collection_date: date
    cash_received: ModeTotal
    cash_paid: ModeTotal
    net_cash_balance: Decimal


class DigitalCollection(BaseModel):
    breakdown: List[ModeBreakdown]
    total_digital_collection: Decimal


class AnalyticsPoint(BaseModel):
    period: str
    transaction_type: TransactionType
    count: int
    amount: Decimal


class AnalyticsSummary(BaseModel):
    total_receipts: ModeTotal
    total_payments: ModeTotal
    net_cash_flow: Decimal
    mode_breakdown: List[ModeBreakdown]


class PaymentAnalytics(BaseModel):
    group_by: str
    series: List[AnalyticsPoint]
    summary: AnalyticsSummary


class PaymentDashboard(BaseModel):
    today_collection: CashCollection
    week_collection: Decimal
    month_collection: Decimal
    pending_cheques_count: int
    unreconciled_count: int
    recent_payments: List[Payment]
