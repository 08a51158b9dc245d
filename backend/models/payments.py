from sqlalchemy import Column, Integer, Numeric, Date, DateTime, String, ForeignKey, Text, Boolean, JSON, UniqueConstraint, Index
from sqlalchemy.orm import relationship
from database import Base
from models.audit_mixin import AuditMixin, now_ist
from models.enums import (
    enum_column_type,
    TransactionType,
    PaymentMode,
    PaymentStatus,
    ChequeStatus,
    ApprovalStatus,
    PartyType,
    ReferenceType,
)


class Payment(Base, AuditMixin):
    __tablename__ = "payments"
    __table_args__ = (
        UniqueConstraint('tenant_id', 'shop_id', 'payment_number', name='_tenant_shop_payment_number_uc'),
        Index('ix_payments_shop_status', 'shop_id', 'status'),
        Index('ix_payments_party', 'party_type', 'party_id'),
        Index('ix_payments_reference', 'reference_type', 'reference_id'),
    )

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String, index=True, nullable=False)
    shop_id = Column(String, index=True, nullable=False)
    payment_number = Column(String(32), nullable=False, index=True)  # e.g. PAY000042
    payment_date = Column(DateTime(timezone=True), nullable=False, default=now_ist)

    transaction_type = Column(enum_column_type(TransactionType), nullable=False)
    payment_mode = Column(enum_column_type(PaymentMode), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    status = Column(enum_column_type(PaymentStatus), nullable=False, default=PaymentStatus.PENDING)
    transaction_id = Column(String, nullable=True)  # UPI/card/bank reference
    notes = Column(Text, nullable=True)

    # Party (immutable after creation)
    party_type = Column(enum_column_type(PartyType), nullable=False)
    party_id = Column(Integer, nullable=True)
    party_name = Column(String, nullable=False)

    # Reference document
    reference_type = Column(enum_column_type(ReferenceType), nullable=False, default=ReferenceType.NONE)
    reference_id = Column(Integer, nullable=True)
    reference_number = Column(String, nullable=True)

    # Mode specific details (card/upi/bank transfer/wallet); cheque fields are columns below
    payment_details = Column(JSON, nullable=True)

    cheque_number = Column(String, nullable=True)
    cheque_date = Column(Date, nullable=True)
    cheque_bank_name = Column(String, nullable=True)
    cheque_status = Column(enum_column_type(ChequeStatus), nullable=True)
    clearance_date = Column(DateTime(timezone=True), nullable=True)
    bounce_reason = Column(Text, nullable=True)

    # Reconciliation against a bank statement line
    is_reconciled = Column(Boolean, nullable=False, default=False)
    reconciled_at = Column(DateTime(timezone=True), nullable=True)
    reconciled_by = Column(String, nullable=True)
    reconciled_with = Column(String, nullable=True)
    discrepancy = Column(Numeric(12, 2), nullable=False, default=0)
    reconciliation_notes = Column(Text, nullable=True)

    # Approval for high value transactions
    requires_approval = Column(Boolean, nullable=False, default=False)
    approval_status = Column(enum_column_type(ApprovalStatus), nullable=False, default=ApprovalStatus.PENDING)
    approved_by = Column(String, nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    rejection_reason = Column(Text, nullable=True)

    # Refund
    is_refund = Column(Boolean, nullable=False, default=False)
    original_payment_id = Column(Integer, ForeignKey("payments.id"), nullable=True)
    refund_reason = Column(Text, nullable=True)
    refunded_by = Column(String, nullable=True)

    # Which side effects of this payment are currently in force
    reference_applied = Column(Boolean, nullable=False, default=False)
    balance_applied = Column(Boolean, nullable=False, default=False)

    # Relationships
    original_payment = relationship("Payment", remote_side=[id], foreign_keys=[original_payment_id])

    @property
    def has_reference(self):
        return self.reference_type not in (None, ReferenceType.NONE) and self.reference_id is not None

    def __repr__(self):
        return f"<Payment {self.payment_number} {self.transaction_type} {self.amount} {self.status}>"
