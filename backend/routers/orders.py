from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
import logging

from database import get_db
from schemas.orders import Order, OrderStatusUpdate
from crud import orders as crud_orders
from utils.tenancy import get_tenant_id, get_actor_id

router = APIRouter(prefix="/shops/{shop_id}/orders", tags=["Orders"])
logger = logging.getLogger("orders")


@router.get("/{order_id}", response_model=Order)
def read_order(shop_id: str, order_id: int, db: Session = Depends(get_db), tenant_id: str = Depends(get_tenant_id)):
    return crud_orders.get_order(db, order_id, tenant_id, shop_id)


@router.patch("/{order_id}/status", response_model=Order)
def update_order_status(
    shop_id: str,
    order_id: int,
    status_update: OrderStatusUpdate,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
    actor: str = Depends(get_actor_id),
):
    """Move an order to its next workflow state."""
    return crud_orders.update_order_status(db, order_id, status_update.status, tenant_id, shop_id, actor)
