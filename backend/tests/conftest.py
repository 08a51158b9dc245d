from datetime import date
from decimal import Decimal

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import models  # noqa: F401
from database import Base, get_db
from models.parties import Customer, Supplier
from models.reference_documents import Sale, Purchase, Order
from models.enums import (
    DocumentPaymentStatus,
    OrderStatus,
    PartyType,
    PaymentMode,
    ReferenceType,
    TransactionType,
)
from schemas.payments import PaymentCreate, PartyIn, ReferenceIn, ChequeDetailsIn
import routers.payments as payments_router
import routers.orders as orders_router
import routers.app_config as app_config_router
from utils.errors import BackOfficeError, backoffice_exception_handler

TENANT = "tenant-1"
SHOP = "shop-1"
ACTOR = "cashier@shop-1"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite handles BEGIN itself and breaks SAVEPOINT; let SQLAlchemy emit it
    @event.listens_for(engine, "connect")
    def _do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    app = FastAPI()
    app.add_exception_handler(BackOfficeError, backoffice_exception_handler)
    app.include_router(payments_router.router)
    app.include_router(orders_router.router)
    app.include_router(app_config_router.router)

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        test_client.headers.update({"X-Tenant-ID": TENANT, "X-User-ID": ACTOR})
        yield test_client


def _add(db, obj):
    db.add(obj)
    db.commit()
    return obj


@pytest.fixture
def make_customer(db):
    def _make(balance="0", name="Meera Jewels Customer"):
        return _add(db, Customer(tenant_id=TENANT, shop_id=SHOP, name=name, balance=Decimal(balance), is_active=True))
    return _make


@pytest.fixture
def make_supplier(db):
    def _make(balance="0", name="Kundan Bullion Traders"):
        return _add(db, Supplier(tenant_id=TENANT, shop_id=SHOP, name=name, balance=Decimal(balance), is_active=True))
    return _make


def _totals(total):
    total = Decimal(total)
    return dict(total_amount=total, paid_amount=Decimal(0), due_amount=total, payment_status=DocumentPaymentStatus.UNPAID)


@pytest.fixture
def make_sale(db):
    counter = {"n": 0}

    def _make(total="10000", customer=None):
        counter["n"] += 1
        return _add(db, Sale(
            tenant_id=TENANT, shop_id=SHOP, sale_number=f"SAL{counter['n']:06d}",
            customer_id=customer.id if customer else None, sale_date=date(2026, 10, 1), **_totals(total),
        ))
    return _make


@pytest.fixture
def make_purchase(db):
    counter = {"n": 0}

    def _make(total="5000", supplier=None):
        counter["n"] += 1
        return _add(db, Purchase(
            tenant_id=TENANT, shop_id=SHOP, purchase_number=f"PUR{counter['n']:06d}",
            supplier_id=supplier.id if supplier else None, purchase_date=date(2026, 10, 1), **_totals(total),
        ))
    return _make


@pytest.fixture
def make_order(db):
    counter = {"n": 0}

    def _make(total="10000", customer=None, status=OrderStatus.DRAFT):
        counter["n"] += 1
        return _add(db, Order(
            tenant_id=TENANT, shop_id=SHOP, order_number=f"ORD{counter['n']:06d}",
            customer_id=customer.id if customer else None, status=status, **_totals(total),
        ))
    return _make


def receipt_for(customer, amount, mode=PaymentMode.CASH, reference=None, cheque_number=None, transaction_id=None):
    """PaymentCreate for money received from ``customer`` (a Customer or ``None`` for a walk-in)."""
    if customer is None:
        party = PartyIn(party_type=PartyType.OTHER, party_name="Walk-in")
    else:
        party = PartyIn(party_type=PartyType.CUSTOMER, party_id=customer.id, party_name=customer.name)
    return PaymentCreate(
        transaction_type=TransactionType.RECEIPT,
        payment_mode=mode,
        amount=Decimal(amount),
        party=party,
        reference=_reference(reference),
        cheque=ChequeDetailsIn(cheque_number=cheque_number, cheque_date=date(2026, 10, 20), bank_name="HDFC Bank") if cheque_number else None,
        transaction_id=transaction_id,
    )


def payment_to(supplier, amount, mode=PaymentMode.BANK_TRANSFER, reference=None, cheque_number=None):
    return PaymentCreate(
        transaction_type=TransactionType.PAYMENT,
        payment_mode=mode,
        amount=Decimal(amount),
        party=PartyIn(party_type=PartyType.SUPPLIER, party_id=supplier.id, party_name=supplier.name),
        reference=_reference(reference),
        cheque=ChequeDetailsIn(cheque_number=cheque_number) if cheque_number else None,
    )


def _reference(document):
    if document is None:
        return None
    reference_type = {
        Sale: ReferenceType.SALE,
        Purchase: ReferenceType.PURCHASE,
        Order: ReferenceType.ORDER,
    }[type(document)]
    return ReferenceIn(reference_type=reference_type, reference_id=document.id)
