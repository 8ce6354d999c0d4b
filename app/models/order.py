from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field, Relationship
from typing import List, Optional
from datetime import datetime
from enum import Enum

from app.models.order_item import OrderItem


class OrderStatus(str, Enum):
    pending = "pending"
    paid = "paid"
    shipped = "shipped"
    delivered = "delivered"
    cancelled = "cancelled"


class Order(SQLModel, table=True):
    __tablename__ = "orders"
    __table_args__ = (
        UniqueConstraint("payment_id", name="uq_orders_payment_id"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)

    total_amount: float
    status: str = Field(default=OrderStatus.pending.value, index=True)

    payment_id: str
    payment_method: str
    gateway_order_id: Optional[str] = None

    # snapshot of the profile at checkout; later profile edits don't touch it
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    user_mobile: Optional[str] = None
    shipping_address: str

    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    items: List["OrderItem"] = Relationship(back_populates="order")
