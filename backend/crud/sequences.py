import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from models.document_sequences import DocumentSequence
from utils import format_document_number

logger = logging.getLogger("sequences")


def _locked_sequence(db: Session, tenant_id: str, shop_id: str, prefix: str):
    return (
        db.query(DocumentSequence)
        .filter(
            DocumentSequence.tenant_id == tenant_id,
            DocumentSequence.shop_id == shop_id,
            DocumentSequence.prefix == prefix,
        )
        .with_for_update()
        .first()
    )


def next_document_number(db: Session, tenant_id: str, shop_id: str, prefix: str) -> str:
    """Issue the next number for ``prefix`` in this shop, e.g. ``PAY000007``.

    The counter row stays locked until the caller's transaction commits, so
    two concurrent creations for the same shop are serialized instead of both
    reading the same "last" number. The very first number of a shop races on
    the insert; the unique constraint catches the loser, which then re-reads
    the winner's row.
    """
    sequence = _locked_sequence(db, tenant_id, shop_id, prefix)
    if sequence is None:
        try:
            with db.begin_nested():
                sequence = DocumentSequence(tenant_id=tenant_id, shop_id=shop_id, prefix=prefix, last_value=0)
                db.add(sequence)
        except IntegrityError:
            logger.info(f"Sequence {prefix} for shop {shop_id} created concurrently, re-reading it")
            sequence = _locked_sequence(db, tenant_id, shop_id, prefix)

    sequence.last_value = (sequence.last_value or 0) + 1
    db.flush()
    return format_document_number(prefix, sequence.last_value)
