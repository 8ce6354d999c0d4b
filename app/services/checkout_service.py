import logging
from typing import Optional
from uuid import uuid4

from sqlmodel import Session

from app.config import settings
from app.exceptions import (
    AmountMismatchError,
    EmptyCartError,
    InvalidSignatureError,
    MissingShippingAddressError,
)
from app.models.user import User
from app.schemas.checkout_schemas import ProfileSnapshot
from app.services import cart_service, order_finalizer
from app.services.order_finalizer import FinalizedOrder
from app.services.razorpay_gateway import RazorpayGateway, new_receipt, to_minor_units

logger = logging.getLogger(__name__)

RAZORPAY_METHOD = "razorpay"
MOCK_METHOD = "mock_dev_payment"


def profile_snapshot(user: User) -> ProfileSnapshot:
    return ProfileSnapshot(
        name=user.full_name,
        email=user.email,
        mobile=user.mobile,
        shipping_address=(user.shipping_address or "").strip() or None,
    )


def create_intent(session: Session, user: User, gateway: RazorpayGateway) -> dict:
    """Quote the current cart with the gateway. Nothing is persisted."""
    lines = cart_service.cart_snapshot(session, user.id)
    if not lines:
        raise EmptyCartError()

    total = cart_service.cart_total(lines)
    intent = gateway.create_intent(
        amount=to_minor_units(total),
        receipt=new_receipt(),
        notes={"user_id": str(user.id), "user_email": user.email},
    )

    return {
        "intent_id": intent.id,
        "amount": intent.amount,
        "currency": intent.currency,
        "key_id": gateway.key_id,
    }


def verify_and_finalize(
    session: Session,
    user: User,
    *,
    intent_id: str,
    payment_id: str,
    signature: str,
    gateway: RazorpayGateway,
    verify_amount: Optional[bool] = None,
) -> FinalizedOrder:
    """
    Check the payment confirmation returned by the client and, when it is
    genuine, turn the user's cart as it is right now into an order.
    """
    if not gateway.verify_signature(intent_id, payment_id, signature):
        logger.warning(f"Invalid payment signature from user {user.id} (intent {intent_id}, payment {payment_id})")
        raise InvalidSignatureError()

    # a payment that already has an order is answered from it, whatever the
    # profile or cart look like now
    existing = order_finalizer.find_order_by_payment(session, payment_id)
    if existing:
        logger.info(f"Payment {payment_id} already finalized as order {existing.id}")
        return order_finalizer.replay(existing, user.id)

    profile = profile_snapshot(user)
    if not profile.shipping_address:
        raise MissingShippingAddressError()

    lines = cart_service.cart_snapshot(session, user.id)
    if not lines:
        # paid for, but nothing left to order
        raise EmptyCartError(status_code=500)

    if verify_amount is None:
        verify_amount = settings.RAZORPAY_VERIFY_AMOUNT

    if verify_amount:
        intent = gateway.fetch_intent(intent_id)
        expected = to_minor_units(cart_service.cart_total(lines))
        if intent.amount != expected:
            logger.error(
                f"Amount mismatch for payment {payment_id}: intent {intent_id} has {intent.amount}, cart is {expected}"
            )
            raise AmountMismatchError()

    return order_finalizer.finalize(
        session,
        user_id=user.id,
        cart_snapshot=lines,
        profile_snapshot=profile,
        payment_id=payment_id,
        payment_method=RAZORPAY_METHOD,
        gateway_order_id=intent_id,
    )


def create_mock_order(session: Session, user: User) -> FinalizedOrder:
    """Local development only: finalize the cart without a gateway."""
    profile = profile_snapshot(user)
    if not profile.shipping_address:
        raise MissingShippingAddressError()

    lines = cart_service.cart_snapshot(session, user.id)

    return order_finalizer.finalize(
        session,
        user_id=user.id,
        cart_snapshot=lines,
        profile_snapshot=profile,
        payment_id=f"mock_dev_{uuid4().hex}",
        payment_method=MOCK_METHOD,
    )
