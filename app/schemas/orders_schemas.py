from pydantic import BaseModel

from app.models.order import OrderStatus


class OrderStatusUpdateRequest(BaseModel):
    order_id: int
    new_status: OrderStatus


class OrderStatusUpdateResponse(BaseModel):
    message: str
    order_id: int
    old_status: str
    new_status: str
