from sqlalchemy import Column, Integer, String, UniqueConstraint
from database import Base
from models.audit_mixin import TimestampMixin


class DocumentSequence(Base, TimestampMixin):
    """Last issued number per (tenant, shop, prefix).

    Rows are read ``FOR UPDATE`` and incremented inside the transaction that
    stores the numbered document.
    """
    __tablename__ = "document_sequences"
    __table_args__ = (UniqueConstraint('tenant_id', 'shop_id', 'prefix', name='_tenant_shop_prefix_uc'),)

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String, nullable=False, index=True)
    shop_id = Column(String, nullable=False, index=True)
    prefix = Column(String(16), nullable=False)
    last_value = Column(Integer, nullable=False, default=0)
