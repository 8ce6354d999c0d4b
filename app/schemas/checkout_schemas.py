from pydantic import BaseModel, Field
from typing import Optional


class CartLine(BaseModel):
    """One cart row joined with the book's current name and price."""
    cart_item_id: int
    book_id: int
    book_name: str
    price: float
    quantity: int

    @property
    def line_total(self) -> float:
        return self.price * self.quantity


class ProfileSnapshot(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    mobile: Optional[str] = None
    shipping_address: Optional[str] = None


class CreateIntentResponse(BaseModel):
    intent_id: str
    amount: int
    currency: str
    key_id: str


class PaymentVerifyRequest(BaseModel):
    intent_id: str = Field(min_length=1)
    payment_id: str = Field(min_length=1)
    # hex HMAC-SHA256 as sent back by the Razorpay checkout widget
    signature: str = Field(pattern="^[0-9a-f]{64}$")


class OrderPlacedResponse(BaseModel):
    order_id: int
    already_processed: bool = False
    cart_cleared: bool = True
    message: str
