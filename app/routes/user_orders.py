from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlmodel import Session
from app.database import get_session
from app.models.order import OrderStatus
from app.models.user import User
from app.services import order_query
from app.services.invoice_service import render_invoice_pdf
from app.utils.token import get_current_user

router = APIRouter()


@router.get("")
def my_orders(
    status: OrderStatus | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return order_query.list_orders(
        session, current_user, status_filter=status, page=page, limit=limit
    )


@router.get("/{order_id}")
def order_detail(
    order_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return order_query.get_order(session, order_id, current_user)


@router.get("/{order_id}/invoice/download")
def download_invoice(
    order_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    order = order_query.load_order(session, order_id, current_user)
    pdf = render_invoice_pdf(order, order_query.order_items(session, order.id))

    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="invoice_{order.id}.pdf"'},
    )
