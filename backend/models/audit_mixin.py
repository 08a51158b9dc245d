from sqlalchemy import Column, DateTime, String
from datetime import datetime
import pytz


def now_ist():
    """Current time in the shop timezone (Asia/Kolkata)."""
    return datetime.now(pytz.timezone('Asia/Kolkata'))


class TimestampMixin:
    """Mixin that provides created/updated timestamps and user info.

    Used on every table of the back office. Soft-delete columns live in a
    separate mixin so tables that are never soft-deleted (sequences, settings)
    stay free of them.
    """
    # DateTime(timezone=True) ensures the timezone info is persisted in the database.
    created_at = Column(DateTime(timezone=True), default=now_ist)
    updated_at = Column(DateTime(timezone=True), onupdate=now_ist)
    created_by = Column(String, nullable=True)
    updated_by = Column(String, nullable=True)


class SoftDeleteMixin:
    """Mixin for soft-delete columns (deleted_at, deleted_by).

    Financial records (payments, sales, purchases, orders) are never hard
    deleted; the session-wide loader criteria in ``database`` hides them.
    """
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    deleted_by = Column(String, nullable=True)


class AuditMixin(TimestampMixin, SoftDeleteMixin):
    """Timestamps + soft-delete."""
    pass
