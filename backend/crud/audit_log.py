import logging
from decimal import Decimal
from enum import Enum

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from models.audit_log import AuditLog
from models.enums import AuditSeverity
from schemas.audit_log import AuditEventCreate

logger = logging.getLogger("audit")


def _json_safe(metadata):
    if not metadata:
        return metadata
    safe = {}
    for key, value in metadata.items():
        if isinstance(value, Decimal):
            value = str(value)
        elif isinstance(value, Enum):
            value = value.value
        elif hasattr(value, 'isoformat'):
            value = value.isoformat()
        safe[key] = value
    return safe


def create_audit_log(db: Session, event: AuditEventCreate):
    """Persist an audit event. Best effort: a failure is logged and swallowed
    so the business operation that emitted it is never failed by it.

    Must be called after the operation's own commit; it commits (or rolls back)
    only the audit row.
    """
    try:
        db_event = AuditLog(
            actor=event.actor,
            tenant_id=event.tenant_id,
            shop_id=event.shop_id,
            module=event.module,
            action=event.action,
            description=event.description,
            event_metadata=_json_safe(event.metadata),
            severity=event.severity,
        )
        db.add(db_event)
        db.commit()
        return db_event
    except SQLAlchemyError:
        db.rollback()
        logger.warning(f"Audit event '{event.action}' by {event.actor} for shop {event.shop_id} could not be recorded", exc_info=True)
        return None


def record_event(db: Session, actor: str, tenant_id: str, shop_id: str, action: str, description: str,
                 metadata: dict = None, severity: AuditSeverity = AuditSeverity.INFO, module: str = "payment"):
    return create_audit_log(db, AuditEventCreate(
        actor=actor,
        tenant_id=tenant_id,
        shop_id=shop_id,
        module=module,
        action=action,
        description=description,
        metadata=metadata,
        severity=severity,
    ))
