"""
Party Balance Store.

``balance`` is the net amount the party owes the shop: a receipt (money in
from the party) lowers it, a payment (money out to the party) raises it.
"""
import logging
from decimal import Decimal

from sqlalchemy.orm import Session
from models.enums import PartyType, TransactionType
from models.parties import Customer, Supplier

logger = logging.getLogger("party_balance")

PARTY_MODELS = {
    PartyType.CUSTOMER: Customer,
    PartyType.SUPPLIER: Supplier,
}


def signed_balance_delta(transaction_type: TransactionType, amount) -> Decimal:
    amount = Decimal(amount)
    return -amount if transaction_type == TransactionType.RECEIPT else amount


def get_party(db: Session, party_type: PartyType, party_id: int, tenant_id: str, shop_id: str, lock: bool = False):
    model = PARTY_MODELS.get(party_type)
    if model is None or party_id is None:
        return None
    query = db.query(model).filter(model.id == party_id, model.tenant_id == tenant_id, model.shop_id == shop_id)
    if lock:
        query = query.with_for_update()
    return query.first()


def adjust_party_balance(db: Session, party_type: PartyType, party_id: int, signed_delta, tenant_id: str, shop_id: str):
    """Add ``signed_delta`` to the party's balance.

    Returns the party, or ``None`` when the party has no balance store
    (``other``) or does not exist.
    """
    party = get_party(db, party_type, party_id, tenant_id, shop_id, lock=True)
    if party is None:
        if party_type != PartyType.OTHER:
            logger.warning(f"{party_type.value} {party_id} not found in shop {shop_id} for tenant {tenant_id}; balance delta {signed_delta} not applied")
        return None

    party.adjust(signed_delta)
    db.flush()
    logger.debug(f"{party_type.value} {party.id} balance adjusted by {signed_delta} to {party.balance}")
    return party
