import logging

from sqlalchemy.orm import Session
from database import transaction_scope
from models.reference_documents import Order
from models.audit_mixin import now_ist
from models.enums import OrderStatus
from crud.audit_log import record_event
from utils.errors import NotFoundError, InvalidTransitionError

logger = logging.getLogger("orders")

ORDER_TRANSITIONS = {
    OrderStatus.DRAFT: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.IN_PROGRESS, OrderStatus.CANCELLED},
    OrderStatus.IN_PROGRESS: {OrderStatus.ON_HOLD, OrderStatus.QUALITY_CHECK, OrderStatus.CANCELLED},
    OrderStatus.ON_HOLD: {OrderStatus.IN_PROGRESS, OrderStatus.CANCELLED},
    OrderStatus.QUALITY_CHECK: {OrderStatus.READY, OrderStatus.IN_PROGRESS},
    OrderStatus.READY: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: {OrderStatus.COMPLETED},
    OrderStatus.COMPLETED: set(),
    OrderStatus.CANCELLED: set(),
}


def can_transition_order(source: OrderStatus, target: OrderStatus) -> bool:
    return target in ORDER_TRANSITIONS.get(source, set())


def transition_order_status(order: Order, target: OrderStatus) -> OrderStatus:
    """Apply one status move, stamping the first start and the completion."""
    source = order.status
    if not can_transition_order(source, target):
        raise InvalidTransitionError("order", source, target)
    order.status = target
    if target == OrderStatus.IN_PROGRESS and order.actual_start_date is None:
        order.actual_start_date = now_ist()
    elif target == OrderStatus.COMPLETED:
        order.actual_completion_date = now_ist()
    return source


def get_order(db: Session, order_id: int, tenant_id: str, shop_id: str, lock: bool = False) -> Order:
    query = db.query(Order).filter(Order.id == order_id, Order.tenant_id == tenant_id, Order.shop_id == shop_id)
    if lock:
        query = query.with_for_update()
    order = query.first()
    if order is None:
        raise NotFoundError("Order not found", {"order_id": order_id})
    return order


def update_order_status(db: Session, order_id: int, target: OrderStatus, tenant_id: str, shop_id: str, actor: str) -> Order:
    with transaction_scope(db):
        order = get_order(db, order_id, tenant_id, shop_id, lock=True)
        old_status = transition_order_status(order, target)
        order.updated_by = actor

    logger.info(f"Order {order.order_number} status {old_status.value} -> {target.value} by user {actor} for tenant {tenant_id}")
    record_event(
        db, actor, tenant_id, shop_id, "update_status",
        f"Order {order.order_number} status changed from {old_status.value} to {target.value}",
        {"order_id": order.id, "old_status": old_status, "new_status": target},
        module="order",
    )
    return order
