"""
Collection summaries and analytics over completed payments.

All figures count completed, non-deleted payments only. Day boundaries are
taken in the shop timezone (Asia/Kolkata).
"""
import calendar
import logging
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Iterable, List, Optional

import pytz
from sqlalchemy import func
from sqlalchemy.orm import Session
from models.payments import Payment
from models.audit_mixin import now_ist
from models.enums import PaymentMode, PaymentStatus, TransactionType
from crud.cheques import get_pending_cheques
from utils.errors import ValidationError

logger = logging.getLogger("payment_analytics")

SHOP_TZ = pytz.timezone('Asia/Kolkata')

DIGITAL_MODES = (PaymentMode.CARD, PaymentMode.UPI, PaymentMode.WALLET, PaymentMode.BANK_TRANSFER)

PERIOD_FORMATS = {
    "day": "%Y-%m-%d",
    "week": "%G-W%V",
    "month": "%Y-%m",
}


def start_of_day(day: date) -> datetime:
    return SHOP_TZ.localize(datetime.combine(day, time.min))


def end_of_day(day: date) -> datetime:
    return SHOP_TZ.localize(datetime.combine(day, time.max))


def month_before(day: date) -> date:
    year, month = (day.year, day.month - 1) if day.month > 1 else (day.year - 1, 12)
    return day.replace(year=year, month=month, day=min(day.day, calendar.monthrange(year, month)[1]))


def _completed(db: Session, tenant_id: str, shop_id: str, start_date: Optional[date] = None, end_date: Optional[date] = None):
    query = db.query(Payment).filter(
        Payment.tenant_id == tenant_id,
        Payment.shop_id == shop_id,
        Payment.status == PaymentStatus.COMPLETED,
        Payment.deleted_at.is_(None),
    )
    if start_date:
        query = query.filter(Payment.payment_date >= start_of_day(start_date))
    if end_date:
        query = query.filter(Payment.payment_date <= end_of_day(end_date))
    return query


def _count_and_amount(query) -> dict:
    count, total = query.with_entities(func.count(Payment.id), func.coalesce(func.sum(Payment.amount), 0)).one()
    return {"count": count, "amount": Decimal(str(total))}


def _mode_breakdown(query) -> List[dict]:
    rows = (
        query.with_entities(Payment.payment_mode, func.count(Payment.id), func.coalesce(func.sum(Payment.amount), 0))
        .group_by(Payment.payment_mode)
        .all()
    )
    breakdown = [{"payment_mode": mode, "count": count, "amount": Decimal(str(total))} for mode, count, total in rows]
    return sorted(breakdown, key=lambda item: item["amount"], reverse=True)


def get_payments_by_mode(db: Session, tenant_id: str, shop_id: str,
                         start_date: Optional[date] = None, end_date: Optional[date] = None) -> List[dict]:
    """Count and amount of completed payments per mode, largest amount first."""
    return _mode_breakdown(_completed(db, tenant_id, shop_id, start_date, end_date))


def get_cash_collection(db: Session, tenant_id: str, shop_id: str, day: Optional[date] = None) -> dict:
    """Cash received and paid out on one day, and the net of the two."""
    day = day or now_ist().date()
    cash = _completed(db, tenant_id, shop_id, day, day).filter(Payment.payment_mode == PaymentMode.CASH)

    received = _count_and_amount(cash.filter(Payment.transaction_type == TransactionType.RECEIPT))
    paid = _count_and_amount(cash.filter(Payment.transaction_type == TransactionType.PAYMENT))
    return {
        "collection_date": day,
        "cash_received": received,
        "cash_paid": paid,
        "net_cash_balance": received["amount"] - paid["amount"],
    }


def get_digital_collection(db: Session, tenant_id: str, shop_id: str,
                           start_date: Optional[date] = None, end_date: Optional[date] = None) -> dict:
    query = _completed(db, tenant_id, shop_id, start_date, end_date).filter(Payment.payment_mode.in_(DIGITAL_MODES))
    breakdown = _mode_breakdown(query)
    return {
        "breakdown": breakdown,
        "total_digital_collection": sum((item["amount"] for item in breakdown), Decimal(0)),
    }


def _period_key(payment_date: datetime, group_by: str) -> str:
    if payment_date.tzinfo is not None:
        payment_date = payment_date.astimezone(SHOP_TZ)
    return payment_date.strftime(PERIOD_FORMATS[group_by])


def _series(rows: Iterable, group_by: str) -> List[dict]:
    buckets = {}
    for payment_date, transaction_type, amount in rows:
        key = (_period_key(payment_date, group_by), transaction_type)
        bucket = buckets.setdefault(key, {"count": 0, "amount": Decimal(0)})
        bucket["count"] += 1
        bucket["amount"] += Decimal(str(amount))
    return [
        {"period": period, "transaction_type": transaction_type, **bucket}
        for (period, transaction_type), bucket in sorted(buckets.items(), key=lambda item: (item[0][0], item[0][1].value))
    ]


def get_payment_analytics(db: Session, tenant_id: str, shop_id: str,
                          start_date: Optional[date] = None, end_date: Optional[date] = None, group_by: str = "day") -> dict:
    """Receipts and payments per day, ISO week or month, with totals and the mode breakdown."""
    if group_by not in PERIOD_FORMATS:
        raise ValidationError(f"group_by must be one of {', '.join(PERIOD_FORMATS)}", {"group_by": group_by})

    query = _completed(db, tenant_id, shop_id, start_date, end_date)
    rows = query.with_entities(Payment.payment_date, Payment.transaction_type, Payment.amount).all()

    receipts = _count_and_amount(query.filter(Payment.transaction_type == TransactionType.RECEIPT))
    payments = _count_and_amount(query.filter(Payment.transaction_type == TransactionType.PAYMENT))
    return {
        "group_by": group_by,
        "series": _series(rows, group_by),
        "summary": {
            "total_receipts": receipts,
            "total_payments": payments,
            "net_cash_flow": receipts["amount"] - payments["amount"],
            "mode_breakdown": _mode_breakdown(query),
        },
    }


def get_payment_dashboard(db: Session, tenant_id: str, shop_id: str, recent_limit: int = 10) -> dict:
    today = now_ist().date()

    def receipts_since(since: date):
        query = _completed(db, tenant_id, shop_id, start_date=since)
        return _count_and_amount(query.filter(Payment.transaction_type == TransactionType.RECEIPT))["amount"]

    unreconciled_count = (
        _completed(db, tenant_id, shop_id)
        .filter(Payment.is_reconciled.is_(False))
        .with_entities(func.count(Payment.id))
        .scalar()
    )
    recent_payments = (
        db.query(Payment)
        .filter(Payment.tenant_id == tenant_id, Payment.shop_id == shop_id)
        .order_by(Payment.payment_date.desc(), Payment.id.desc())
        .limit(recent_limit)
        .all()
    )

    dashboard = {
        "today_collection": get_cash_collection(db, tenant_id, shop_id, today),
        "week_collection": receipts_since(today - timedelta(days=7)),
        "month_collection": receipts_since(month_before(today)),
        "pending_cheques_count": len(get_pending_cheques(db, tenant_id, shop_id)),
        "unreconciled_count": unreconciled_count,
        "recent_payments": recent_payments,
    }
    logger.debug(f"Dashboard built for shop {shop_id}, tenant {tenant_id}")
    return dashboard
