"""Read-side queries over the payment ledger and the Excel export."""
import logging
from datetime import datetime
from decimal import Decimal
from io import BytesIO
from typing import List, Optional, Tuple

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Alignment
from openpyxl.utils import get_column_letter
from sqlalchemy import or_
from sqlalchemy.orm import Session
from models.payments import Payment
from models.enums import TransactionType, PaymentMode, PaymentStatus, PartyType, ReferenceType
from crud.party_balance import get_party
from utils import format_indian_currency

logger = logging.getLogger("payment_reports")

EXPORT_COLUMNS = [
    ("Payment No", 16), ("Date", 20), ("Type", 10), ("Mode", 14), ("Amount", 14), ("Status", 12),
    ("Party", 28), ("Reference", 16), ("Transaction ID", 22), ("Cheque No", 14), ("Cheque Status", 14),
    ("Reconciled", 11), ("Refund", 8), ("Notes", 40),
]


def list_payments(
    db: Session,
    tenant_id: str,
    shop_id: str,
    transaction_type: Optional[TransactionType] = None,
    payment_mode: Optional[PaymentMode] = None,
    status: Optional[PaymentStatus] = None,
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
) -> List[Payment]:
    query = db.query(Payment).filter(Payment.tenant_id == tenant_id, Payment.shop_id == shop_id)

    if transaction_type:
        query = query.filter(Payment.transaction_type == transaction_type)
    if payment_mode:
        query = query.filter(Payment.payment_mode == payment_mode)
    if status:
        query = query.filter(Payment.status == status)
    if party_type:
        query = query.filter(Payment.party_type == party_type)
    if party_id is not None:
        query = query.filter(Payment.party_id == party_id)
    if reference_type:
        query = query.filter(Payment.reference_type == reference_type)
    if reference_id is not None:
        query = query.filter(Payment.reference_id == reference_id)
    if start_date:
        query = query.filter(Payment.payment_date >= start_date)
    if end_date:
        query = query.filter(Payment.payment_date <= end_date)
    if min_amount is not None:
        query = query.filter(Payment.amount >= min_amount)
    if max_amount is not None:
        query = query.filter(Payment.amount <= max_amount)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(
            Payment.payment_number.ilike(pattern),
            Payment.party_name.ilike(pattern),
            Payment.transaction_id.ilike(pattern),
            Payment.reference_number.ilike(pattern),
        ))

    return query.order_by(Payment.payment_date.desc(), Payment.id.desc()).offset(skip).limit(limit).all()


def get_payments_for_reference(db: Session, reference_type: ReferenceType, reference_id: int, tenant_id: str, shop_id: str) -> List[Payment]:
    return (
        db.query(Payment)
        .filter(
            Payment.tenant_id == tenant_id,
            Payment.shop_id == shop_id,
            Payment.reference_type == reference_type,
            Payment.reference_id == reference_id,
        )
        .order_by(Payment.payment_date.asc(), Payment.id.asc())
        .all()
    )


def get_party_payment_summary(db: Session, party_type: PartyType, party_id: int, tenant_id: str, shop_id: str) -> dict:
    """Completed and pending totals in each direction for one party, plus its running balance."""
    payments = (
        db.query(Payment)
        .filter(
            Payment.tenant_id == tenant_id,
            Payment.shop_id == shop_id,
            Payment.party_type == party_type,
            Payment.party_id == party_id,
        )
        .all()
    )

    totals = {
        (TransactionType.RECEIPT, PaymentStatus.COMPLETED): Decimal(0),
        (TransactionType.PAYMENT, PaymentStatus.COMPLETED): Decimal(0),
        (TransactionType.RECEIPT, PaymentStatus.PENDING): Decimal(0),
        (TransactionType.PAYMENT, PaymentStatus.PENDING): Decimal(0),
    }
    for payment in payments:
        key = (payment.transaction_type, payment.status)
        if key in totals:
            totals[key] += Decimal(payment.amount)

    party = get_party(db, party_type, party_id, tenant_id, shop_id)
    return {
        "party_type": party_type,
        "party_id": party_id,
        "total_received": totals[(TransactionType.RECEIPT, PaymentStatus.COMPLETED)],
        "total_paid": totals[(TransactionType.PAYMENT, PaymentStatus.COMPLETED)],
        "pending_received": totals[(TransactionType.RECEIPT, PaymentStatus.PENDING)],
        "pending_paid": totals[(TransactionType.PAYMENT, PaymentStatus.PENDING)],
        "payment_count": len(payments),
        "balance": party.balance if party is not None else None,
    }


def _export_row(payment: Payment) -> list:
    return [
        payment.payment_number,
        payment.payment_date.strftime("%d-%m-%Y %H:%M") if payment.payment_date else "",
        payment.transaction_type.value,
        payment.payment_mode.value,
        format_indian_currency(payment.amount),
        payment.status.value,
        payment.party_name,
        payment.reference_number or "",
        payment.transaction_id or "",
        payment.cheque_number or "",
        payment.cheque_status.value if payment.cheque_status else "",
        "Yes" if payment.is_reconciled else "No",
        "Yes" if payment.is_refund else "No",
        payment.notes or "",
    ]


def export_payments_workbook(db: Session, payment_ids: List[int], tenant_id: str, shop_id: str) -> Tuple[BytesIO, int, int]:
    """Write the requested payments to an Excel workbook.

    Returns the workbook stream with the exported and skipped counts; ids that
    do not belong to the shop are skipped.
    """
    unique_ids = list(dict.fromkeys(payment_ids))
    payments = (
        db.query(Payment)
        .filter(Payment.id.in_(unique_ids), Payment.tenant_id == tenant_id, Payment.shop_id == shop_id)
        .order_by(Payment.payment_date.asc(), Payment.id.asc())
        .all()
    )

    wb = Workbook()
    ws = wb.active
    ws.title = "Payments"

    header_fill = PatternFill(start_color="FF6600", end_color="FF6600", fill_type="solid")
    header_font = Font(bold=True, color="FFFFFF")
    ws.append([title for title, _ in EXPORT_COLUMNS])
    for col_idx, (_, width) in enumerate(EXPORT_COLUMNS, start=1):
        cell = ws.cell(row=1, column=col_idx)
        cell.fill = header_fill
        cell.font = header_font
        cell.alignment = Alignment(horizontal='center', vertical='center')
        ws.column_dimensions[get_column_letter(col_idx)].width = width

    for payment in payments:
        ws.append(_export_row(payment))

    stream = BytesIO()
    wb.save(stream)
    stream.seek(0)

    exported = len(payments)
    skipped = len(unique_ids) - exported
    logger.info(f"Exported {exported} payments ({skipped} skipped) for shop {shop_id}, tenant {tenant_id}")
    return stream, exported, skipped
