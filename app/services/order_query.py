import csv
import io
import logging
from datetime import datetime
from typing import Optional

from sqlmodel import Session, select

from app.config import settings
from app.constants.order_status import ALLOWED_TRANSITIONS
from app.exceptions import ForbiddenError, InvalidStatusTransitionError, OrderNotFoundError
from app.models.book import Book
from app.models.order import Order, OrderStatus
from app.models.order_item import OrderItem
from app.models.user import User
from app.services.order_event_service import STATUS_CHANGED, log_order_event, order_timeline
from app.utils.pagination import paginate

logger = logging.getLogger(__name__)


def _visible_orders(requester: User):
    query = select(Order)
    # non-admins only ever see rows they own
    if not requester.is_admin:
        query = query.where(Order.user_id == requester.id)
    return query


def load_order(session: Session, order_id: int, requester: User) -> Order:
    order = session.exec(
        _visible_orders(requester).where(Order.id == order_id)
    ).first()
    if order is None:
        raise OrderNotFoundError()
    return order


def order_summary(order: Order) -> dict:
    return {
        "order_id": order.id,
        "customer_name": order.user_name,
        "customer_email": order.user_email,
        "total_amount": order.total_amount,
        "status": order.status,
        "payment_method": order.payment_method,
        "created_at": order.created_at,
    }


def order_items(session: Session, order_id: int) -> list:
    rows = session.exec(
        select(OrderItem, Book)
        .outerjoin(Book, Book.id == OrderItem.book_id)
        .where(OrderItem.order_id == order_id)
        .order_by(OrderItem.id)
    ).all()

    return [
        {
            "book_id": item.book_id,
            "book_name": item.book_name,
            "price_at_order": item.price_at_order,
            "quantity": item.quantity,
            "total": item.line_total,
            "image": book.display_image if book else None,
        }
        for item, book in rows
    ]


def get_order(session: Session, order_id: int, requester: User) -> dict:
    order = load_order(session, order_id, requester)

    return {
        "order_id": order.id,
        "user_id": order.user_id,
        "status": order.status,
        "total_amount": order.total_amount,
        "payment_id": order.payment_id,
        "payment_method": order.payment_method,
        "customer": {
            "name": order.user_name,
            "email": order.user_email,
            "mobile": order.user_mobile,
        },
        "shipping_address": order.shipping_address,
        "created_at": order.created_at,
        "updated_at": order.updated_at,
        "items": order_items(session, order.id),
        "timeline": order_timeline(session, order.id),
    }


def list_orders(
    session: Session,
    requester: User,
    status_filter: Optional[OrderStatus] = None,
    page: int = 1,
    limit: int = 10,
) -> dict:
    query = _visible_orders(requester)

    if status_filter:
        query = query.where(Order.status == OrderStatus(status_filter).value)

    query = query.order_by(Order.created_at.desc(), Order.id.desc())

    data = paginate(
        session=session,
        query=query,
        page=page,
        limit=limit,
        serializer=order_summary,
    )
    data["status"] = OrderStatus(status_filter).value if status_filter else "all"
    return data


def set_status(
    session: Session,
    order_id: int,
    new_status: OrderStatus,
    requester: User,
    enforce_transitions: Optional[bool] = None,
) -> dict:
    """
    Admin-only status change. Any status may be set unless the
    forward-only policy is switched on. Touches nothing but the order row
    and its timeline.
    """
    if not requester.is_admin:
        logger.warning(f"User {requester.id} tried to set status of order {order_id}")
        raise ForbiddenError("Admin access required")

    new_status = OrderStatus(new_status).value
    order = session.get(Order, order_id)
    if order is None:
        raise OrderNotFoundError()

    if enforce_transitions is None:
        enforce_transitions = settings.ENFORCE_STATUS_TRANSITIONS

    old_status = order.status
    if enforce_transitions and new_status != old_status:
        if new_status not in ALLOWED_TRANSITIONS.get(old_status, []):
            raise InvalidStatusTransitionError(
                f"Invalid status change from {old_status} to {new_status}"
            )

    order.status = new_status
    order.updated_at = datetime.utcnow()
    session.add(order)

    log_order_event(
        session,
        order_id=order.id,
        event_type=STATUS_CHANGED,
        label=f"Order {new_status.title()}",
        created_by=f"admin:{requester.id}",
        meta={"old_status": old_status, "new_status": new_status},
    )
    session.commit()

    logger.info(f"Order {order.id} status {old_status} -> {new_status} by admin {requester.id}")

    return {
        "message": "Order status updated",
        "order_id": order.id,
        "old_status": old_status,
        "new_status": new_status,
    }


CSV_HEADERS = [
    "OrderID", "Date", "Customer", "Email", "Mobile", "Address",
    "BookName", "Quantity", "Price", "Total", "Status",
]


def export_order_csv(session: Session, order: Order) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(CSV_HEADERS)

    for item in order_items(session, order.id):
        writer.writerow([
            order.id,
            order.created_at.date().isoformat(),
            order.user_name,
            order.user_email,
            order.user_mobile,
            (order.shipping_address or "").replace("\n", " "),
            item["book_name"],
            item["quantity"],
            item["price_at_order"],
            item["total"],
            order.status,
        ])

    return buffer.getvalue()
