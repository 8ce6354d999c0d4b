# -------- ADMIN ORDERS --------
from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlmodel import Session
from app.database import get_session
from app.models.order import OrderStatus
from app.models.user import User
from app.schemas.orders_schemas import OrderStatusUpdateRequest, OrderStatusUpdateResponse
from app.services import order_query
from app.utils.token import get_current_admin, get_current_user


router = APIRouter()


@router.get("")
def list_orders(
    status: OrderStatus | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    session: Session = Depends(get_session),
    admin: User = Depends(get_current_admin),
):
    return order_query.list_orders(
        session, admin, status_filter=status, page=page, limit=limit
    )


# the service re-checks the role, so a non-admin gets ForbiddenError there
@router.patch("/status", response_model=OrderStatusUpdateResponse)
def update_order_status(
    payload: OrderStatusUpdateRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return order_query.set_status(
        session, payload.order_id, payload.new_status, current_user
    )


@router.get("/{order_id}")
def order_details(
    order_id: int,
    session: Session = Depends(get_session),
    admin: User = Depends(get_current_admin),
):
    return order_query.get_order(session, order_id, admin)


@router.get("/{order_id}/export")
def export_order(
    order_id: int,
    session: Session = Depends(get_session),
    admin: User = Depends(get_current_admin),
):
    order = order_query.load_order(session, order_id, admin)

    return Response(
        content=order_query.export_order_csv(session, order),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="Order-{order.id}-Details.csv"'},
    )
