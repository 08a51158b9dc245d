from sqlalchemy import Column, Integer, String, Text, Numeric, Date, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from database import Base
from models.audit_mixin import AuditMixin, now_ist
from models.enums import enum_column_type, DocumentPaymentStatus, OrderStatus, TransactionType


class PaymentTotalsMixin:
    """Payment totals shared by every document a payment can be applied to.

    ``paid_amount + due_amount == total_amount`` holds after every update made
    through ``crud.reference_status``.
    """
    # Direction of money a normal payment against this document moves
    natural_transaction_type = TransactionType.RECEIPT

    total_amount = Column(Numeric(12, 2), nullable=False, default=0)
    paid_amount = Column(Numeric(12, 2), nullable=False, default=0, server_default='0')
    due_amount = Column(Numeric(12, 2), nullable=False, default=0, server_default='0')
    payment_status = Column(enum_column_type(DocumentPaymentStatus), nullable=False, default=DocumentPaymentStatus.UNPAID)


class Sale(Base, AuditMixin, PaymentTotalsMixin):
    __tablename__ = "sales"
    __table_args__ = (UniqueConstraint('tenant_id', 'shop_id', 'sale_number', name='_tenant_shop_sale_number_uc'),)

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String, index=True)
    shop_id = Column(String, index=True)
    sale_number = Column(String(32), index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=True)
    sale_date = Column(Date, nullable=False)
    notes = Column(Text, nullable=True)

    customer = relationship("Customer")

    @property
    def document_number(self):
        return self.sale_number


class Purchase(Base, AuditMixin, PaymentTotalsMixin):
    __tablename__ = "purchases"
    __table_args__ = (UniqueConstraint('tenant_id', 'shop_id', 'purchase_number', name='_tenant_shop_purchase_number_uc'),)

    natural_transaction_type = TransactionType.PAYMENT

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String, index=True)
    shop_id = Column(String, index=True)
    purchase_number = Column(String(32), index=True)
    bill_no = Column(String, nullable=True)
    supplier_id = Column(Integer, ForeignKey("suppliers.id"), nullable=True)
    purchase_date = Column(Date, nullable=False)
    notes = Column(Text, nullable=True)

    supplier = relationship("Supplier")

    @property
    def document_number(self):
        return self.purchase_number


class Order(Base, AuditMixin, PaymentTotalsMixin):
    """Custom jewelry order (making charges, design, delivery)."""
    __tablename__ = "orders"
    __table_args__ = (UniqueConstraint('tenant_id', 'shop_id', 'order_number', name='_tenant_shop_order_number_uc'),)

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String, index=True)
    shop_id = Column(String, index=True)
    order_number = Column(String(32), index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=True)
    order_date = Column(DateTime(timezone=True), default=now_ist)
    status = Column(enum_column_type(OrderStatus), nullable=False, default=OrderStatus.DRAFT)
    expected_delivery_date = Column(Date, nullable=True)
    actual_start_date = Column(DateTime(timezone=True), nullable=True)
    actual_completion_date = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)

    customer = relationship("Customer")

    @property
    def document_number(self):
        return self.order_number
