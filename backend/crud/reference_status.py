"""
Reference Status Updater.

Keeps ``paid_amount``, ``due_amount`` and ``payment_status`` of a sale,
purchase or order in step with the payments applied against it. The updater
does no idempotency bookkeeping of its own; ``crud.payment_effects`` calls it
at most once per direction per payment.
"""
import logging
from decimal import Decimal

from sqlalchemy.orm import Session
from models.enums import ReferenceType, DocumentPaymentStatus
from models.reference_documents import Sale, Purchase, Order

logger = logging.getLogger("reference_status")

REFERENCE_MODELS = {
    ReferenceType.SALE: Sale,
    ReferenceType.PURCHASE: Purchase,
    ReferenceType.ORDER: Order,
}


def compute_document_payment_status(paid_amount, total_amount) -> DocumentPaymentStatus:
    if paid_amount >= total_amount:
        return DocumentPaymentStatus.PAID
    if paid_amount > 0:
        return DocumentPaymentStatus.PARTIAL
    return DocumentPaymentStatus.UNPAID


def recompute_payment_totals(document):
    """Derive ``due_amount`` and ``payment_status`` from total and paid."""
    total = Decimal(document.total_amount or 0)
    paid = Decimal(document.paid_amount or 0)
    document.paid_amount = paid
    document.due_amount = total - paid
    document.payment_status = compute_document_payment_status(paid, total)
    return document


def reference_model(reference_type: ReferenceType):
    return REFERENCE_MODELS.get(reference_type)


def get_reference_document(db: Session, reference_type: ReferenceType, reference_id: int, tenant_id: str, shop_id: str,
                           lock: bool = False):
    model = reference_model(reference_type)
    if model is None or reference_id is None:
        return None
    query = db.query(model).filter(model.id == reference_id, model.tenant_id == tenant_id, model.shop_id == shop_id)
    if lock:
        query = query.with_for_update()
    return query.first()


def apply_reference_payment(db: Session, reference_type: ReferenceType, reference_id: int, delta, tenant_id: str, shop_id: str):
    """Add ``delta`` to the document's paid amount and recompute due/status.

    Returns the updated document, or ``None`` when it does not exist (the
    caller decides how to surface that).
    """
    document = get_reference_document(db, reference_type, reference_id, tenant_id, shop_id, lock=True)
    if document is None:
        logger.warning(f"{reference_type.value} {reference_id} not found in shop {shop_id} for tenant {tenant_id}; payment delta {delta} not applied")
        return None

    previous_status = document.payment_status
    document.paid_amount = Decimal(document.paid_amount or 0) + Decimal(delta)
    recompute_payment_totals(document)
    db.flush()

    if document.payment_status != previous_status:
        logger.info(f"{reference_type.value} {document.document_number} payment status {previous_status.value if previous_status else None} -> {document.payment_status.value}")
    return document
