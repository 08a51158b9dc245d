from sqlalchemy import Column, Integer, String, DateTime, JSON, Text
from database import Base
from models.audit_mixin import now_ist
from models.enums import enum_column_type, AuditSeverity

class AuditLog(Base):
    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, index=True)
    actor = Column(String, nullable=False)
    tenant_id = Column(String, index=True)
    shop_id = Column(String, index=True)
    module = Column(String, nullable=False, default="payment")
    action = Column(String, nullable=False)  # e.g. 'create', 'cancel', 'cheque_cleared'
    description = Column(Text, nullable=True)
    event_metadata = Column("metadata", JSON)
    severity = Column(enum_column_type(AuditSeverity), nullable=False, default=AuditSeverity.INFO)
    created_at = Column(DateTime(timezone=True), default=now_ist)
