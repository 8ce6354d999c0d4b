# app/services/order_event_service.py

from datetime import datetime
from typing import List, Optional
from uuid import uuid4
from sqlmodel import Session, select
from app.models.order_event import OrderEvent

ORDER_CREATED = "order_created"
STATUS_CHANGED = "status_changed"


def log_order_event(
    session: Session,
    order_id: int,
    event_type: str,
    label: str,
    created_by: str = "system",
    meta: Optional[dict] = None,
) -> OrderEvent:
    """
    Append-only event log for order timeline. Adds to the caller's
    transaction; the caller commits.
    """

    event = OrderEvent(
        id=str(uuid4()),
        order_id=order_id,
        event_type=event_type,
        label=label,
        meta=meta,
        created_by=created_by,
        created_at=datetime.utcnow(),
    )

    session.add(event)
    return event


def order_timeline(session: Session, order_id: int) -> List[dict]:
    events = session.exec(
        select(OrderEvent)
        .where(OrderEvent.order_id == order_id)
        .order_by(OrderEvent.created_at)
    ).all()

    return [
        {
            "event_type": e.event_type,
            "label": e.label,
            "meta": e.meta,
            "created_by": e.created_by,
            "created_at": e.created_at,
        }
        for e in events
    ]
