from pydantic import BaseModel
from typing import Optional
from datetime import date, datetime
from decimal import Decimal

from models.enums import OrderStatus, DocumentPaymentStatus


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class Order(BaseModel):
    id: int
    tenant_id: Optional[str] = None
    shop_id: Optional[str] = None
    order_number: Optional[str] = None
    customer_id: Optional[int] = None
    status: OrderStatus
    expected_delivery_date: Optional[date] = None
    actual_start_date: Optional[datetime] = None
    actual_completion_date: Optional[datetime] = None
    total_amount: Decimal
    paid_amount: Decimal
    due_amount: Decimal
    payment_status: DocumentPaymentStatus
    notes: Optional[str] = None

    class Config:
        from_attributes = True
