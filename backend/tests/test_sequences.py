from crud.sequences import next_document_number
from models.document_sequences import DocumentSequence
from conftest import TENANT, SHOP


def test_numbers_increase_per_prefix(db):
    issued = [next_document_number(db, TENANT, SHOP, "PAY") for _ in range(3)]
    refund = next_document_number(db, TENANT, SHOP, "REF")
    db.commit()

    assert issued == ["PAY000001", "PAY000002", "PAY000003"]
    assert refund == "REF000001"
    assert db.query(DocumentSequence).count() == 2


def test_rolled_back_number_is_reissued(db):
    next_document_number(db, TENANT, SHOP, "PAY")
    db.rollback()
    assert next_document_number(db, TENANT, SHOP, "PAY") == "PAY000001"


def test_sequences_are_per_shop(db):
    assert next_document_number(db, TENANT, SHOP, "PAY") == "PAY000001"
    assert next_document_number(db, TENANT, "shop-2", "PAY") == "PAY000001"
