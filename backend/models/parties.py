from sqlalchemy import Column, Integer, String, Text, Numeric, Boolean
from decimal import Decimal
from database import Base
from models.audit_mixin import TimestampMixin


class PartyBalanceMixin:
    """Running balance: the net amount the party owes the shop.

    Negative means the shop owes the party; no floor or ceiling applies.
    """
    balance = Column(Numeric(12, 2), nullable=False, default=0, server_default='0')

    def adjust(self, delta):
        self.balance = (self.balance or Decimal(0)) + Decimal(delta)
        return self.balance


class Customer(Base, TimestampMixin, PartyBalanceMixin):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String, index=True)
    shop_id = Column(String, index=True)
    name = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    email = Column(String, nullable=True)
    address = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)


class Supplier(Base, TimestampMixin, PartyBalanceMixin):
    __tablename__ = "suppliers"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String, index=True)
    shop_id = Column(String, index=True)
    name = Column(String, nullable=False)
    contact_name = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    email = Column(String, nullable=True)
    gst_number = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
