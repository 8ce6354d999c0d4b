from fastapi import APIRouter, Depends
from sqlmodel import Session
from app.database import get_session
from app.models.user import User
from app.schemas.checkout_schemas import (
    CreateIntentResponse,
    OrderPlacedResponse,
    PaymentVerifyRequest,
)
from app.services import checkout_service
from app.services.order_finalizer import FinalizedOrder
from app.services.razorpay_gateway import RazorpayGateway, get_payment_gateway
from app.utils.token import get_current_user

router = APIRouter()


def placed_response(result: FinalizedOrder) -> OrderPlacedResponse:
    if result.already_processed:
        message = "Payment already processed"
    elif not result.cart_cleared:
        message = "Order placed. Some items may still show in your cart; you can remove them."
    else:
        message = "Thank you for your order!"

    return OrderPlacedResponse(
        order_id=result.order_id,
        already_processed=result.already_processed,
        cart_cleared=result.cart_cleared,
        message=message,
    )


@router.post("/create-intent", response_model=CreateIntentResponse)
def create_intent(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
):
    """Create a Razorpay order for the server-side cart total."""
    return checkout_service.create_intent(session, current_user, gateway)


@router.post("/verify", response_model=OrderPlacedResponse)
def verify_payment(
    payload: PaymentVerifyRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
):
    """
    Verify Razorpay payment for logged-in user and place the order
    """
    result = checkout_service.verify_and_finalize(
        session,
        current_user,
        intent_id=payload.intent_id,
        payment_id=payload.payment_id,
        signature=payload.signature,
        gateway=gateway,
    )
    return placed_response(result)
