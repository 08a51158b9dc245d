from sqlalchemy import Column, Integer, String, UniqueConstraint
from database import Base
from models.audit_mixin import TimestampMixin

class ShopSetting(Base, TimestampMixin):
    __tablename__ = "shop_settings"
    __table_args__ = (UniqueConstraint('name', 'tenant_id', 'shop_id', name='_shop_setting_name_uc'),)

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, index=True)
    value = Column(String(255), nullable=False)
    tenant_id = Column(String, index=True)
    shop_id = Column(String, index=True)
