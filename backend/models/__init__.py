from models.audit_log import AuditLog
from models.app_config import ShopSetting
from models.document_sequences import DocumentSequence
from models.parties import Customer, Supplier
from models.reference_documents import Sale, Purchase, Order
from models.payments import Payment

__all__ = ['AuditLog', 'Customer', 'DocumentSequence', 'Order', 'Payment', 'Purchase', 'Sale', 'ShopSetting', 'Supplier',]
