import itertools

import pytest

from crud import orders as crud_orders
from crud.orders import ORDER_TRANSITIONS, transition_order_status
from models.audit_log import AuditLog
from models.enums import OrderStatus
from utils.errors import InvalidTransitionError, NotFoundError
from conftest import TENANT, SHOP, ACTOR

ALLOWED = {
    OrderStatus.DRAFT: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.IN_PROGRESS, OrderStatus.CANCELLED},
    OrderStatus.IN_PROGRESS: {OrderStatus.ON_HOLD, OrderStatus.QUALITY_CHECK, OrderStatus.CANCELLED},
    OrderStatus.ON_HOLD: {OrderStatus.IN_PROGRESS, OrderStatus.CANCELLED},
    OrderStatus.QUALITY_CHECK: {OrderStatus.READY, OrderStatus.IN_PROGRESS},
    OrderStatus.READY: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: {OrderStatus.COMPLETED},
}


class _Order:
    def __init__(self, status):
        self.status = status
        self.actual_start_date = None
        self.actual_completion_date = None


@pytest.mark.parametrize("source, target", list(itertools.product(OrderStatus, OrderStatus)))
def test_every_pair(source, target):
    order = _Order(source)
    if target in ALLOWED.get(source, set()):
        transition_order_status(order, target)
        assert order.status == target
    else:
        with pytest.raises(InvalidTransitionError) as excinfo:
            transition_order_status(order, target)
        assert order.status == source
        assert excinfo.value.details["from"] == source.value
        assert excinfo.value.details["to"] == target.value


def test_completed_and_cancelled_are_terminal():
    assert ORDER_TRANSITIONS[OrderStatus.COMPLETED] == set()
    assert ORDER_TRANSITIONS[OrderStatus.CANCELLED] == set()


def test_start_date_is_stamped_once():
    order = _Order(OrderStatus.CONFIRMED)
    transition_order_status(order, OrderStatus.IN_PROGRESS)
    first_start = order.actual_start_date
    assert first_start is not None

    transition_order_status(order, OrderStatus.ON_HOLD)
    transition_order_status(order, OrderStatus.IN_PROGRESS)
    assert order.actual_start_date is first_start
    assert order.actual_completion_date is None


def test_full_workflow_persists_and_audits(db, make_order):
    order = make_order()
    for target in (
        OrderStatus.CONFIRMED,
        OrderStatus.IN_PROGRESS,
        OrderStatus.QUALITY_CHECK,
        OrderStatus.READY,
        OrderStatus.DELIVERED,
        OrderStatus.COMPLETED,
    ):
        order = crud_orders.update_order_status(db, order.id, target, TENANT, SHOP, ACTOR)

    assert order.status == OrderStatus.COMPLETED
    assert order.actual_start_date is not None
    assert order.actual_completion_date is not None
    events = db.query(AuditLog).filter(AuditLog.module == "order").all()
    assert len(events) == 6


def test_invalid_persisted_transition_leaves_order_untouched(db, make_order):
    order = make_order()
    with pytest.raises(InvalidTransitionError):
        crud_orders.update_order_status(db, order.id, OrderStatus.DELIVERED, TENANT, SHOP, ACTOR)
    db.refresh(order)
    assert order.status == OrderStatus.DRAFT


def test_unknown_order(db):
    with pytest.raises(NotFoundError):
        crud_orders.update_order_status(db, 404, OrderStatus.CONFIRMED, TENANT, SHOP, ACTOR)
