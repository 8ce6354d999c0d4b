import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from app.exceptions import (
    EmptyCartError,
    ForbiddenError,
    MissingShippingAddressError,
    PersistenceError,
)
from app.models.order import Order, OrderStatus
from app.models.order_item import OrderItem
from app.schemas.checkout_schemas import CartLine, ProfileSnapshot
from app.services import cart_service
from app.services.order_event_service import ORDER_CREATED, log_order_event

logger = logging.getLogger(__name__)


@dataclass
class FinalizedOrder:
    order_id: int
    already_processed: bool = False
    cart_cleared: bool = True


def find_order_by_payment(session: Session, payment_id: str) -> Optional[Order]:
    return session.exec(
        select(Order).where(Order.payment_id == payment_id)
    ).first()


def replay(order: Order, user_id: int) -> FinalizedOrder:
    if order.user_id != user_id:
        logger.warning(f"Payment {order.payment_id} replayed by user {user_id}, owned by {order.user_id}")
        raise ForbiddenError()
    return FinalizedOrder(order_id=order.id, already_processed=True)


def finalize(
    session: Session,
    *,
    user_id: int,
    cart_snapshot: List[CartLine],
    profile_snapshot: ProfileSnapshot,
    payment_id: str,
    payment_method: str,
    gateway_order_id: Optional[str] = None,
) -> FinalizedOrder:
    """
    Turn a paid cart into an order.

    The order, its items and the creation event are written in one
    transaction, so readers see either nothing or the whole order. Clearing
    the cart happens afterwards in its own commit and may fail without
    affecting the order. A payment id that already has an order returns
    that order instead of creating a second one.
    """
    existing = find_order_by_payment(session, payment_id)
    if existing:
        return replay(existing, user_id)

    if not cart_snapshot:
        raise EmptyCartError()

    if not profile_snapshot.shipping_address:
        raise MissingShippingAddressError()

    total = cart_service.cart_total(cart_snapshot)

    order = Order(
        user_id=user_id,
        total_amount=total,
        status=OrderStatus.paid.value,
        payment_id=payment_id,
        payment_method=payment_method,
        gateway_order_id=gateway_order_id,
        user_name=profile_snapshot.name,
        user_email=profile_snapshot.email,
        user_mobile=profile_snapshot.mobile,
        shipping_address=profile_snapshot.shipping_address,
    )

    try:
        session.add(order)
        session.flush()
        order_id = order.id

        for line in cart_snapshot:
            session.add(
                OrderItem(
                    order_id=order_id,
                    book_id=line.book_id,
                    book_name=line.book_name,
                    price_at_order=line.price,
                    quantity=line.quantity,
                )
            )
        session.flush()

        log_order_event(
            session,
            order_id=order_id,
            event_type=ORDER_CREATED,
            label="Order placed",
            meta={"payment_id": payment_id, "payment_method": payment_method, "total_amount": total},
        )
        session.commit()

    except IntegrityError as e:
        session.rollback()
        # a concurrent request may have committed this payment first
        existing = find_order_by_payment(session, payment_id)
        if existing:
            logger.info(f"Payment {payment_id} already finalized as order {existing.id}")
            return replay(existing, user_id)
        logger.error(f"Order insert failed for payment {payment_id}, rolled back: {e}")
        raise PersistenceError() from e

    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"Order insert failed for payment {payment_id}, rolled back")
        raise PersistenceError() from e

    logger.info(f"Order {order_id} created for user {user_id}: {len(cart_snapshot)} items, total {total}")

    cart_cleared = True
    try:
        cart_service.delete_items(session, user_id, [line.cart_item_id for line in cart_snapshot])
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        cart_cleared = False
        logger.warning(f"Order {order_id} committed but cart clear failed for user {user_id}: {e}")

    return FinalizedOrder(order_id=order_id, cart_cleared=cart_cleared)
