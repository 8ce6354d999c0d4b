from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session
from app.config import settings
from app.database import get_session
from app.models.user import User
from app.routes.checkout import placed_response
from app.schemas.checkout_schemas import OrderPlacedResponse
from app.services import checkout_service
from app.utils.token import get_current_user


def require_mock_orders():
    # outside local development the endpoint does not exist
    if not settings.mock_orders_enabled:
        raise HTTPException(status_code=404, detail="Not Found")


router = APIRouter(dependencies=[Depends(require_mock_orders)])


@router.post("/mock-order", response_model=OrderPlacedResponse)
def create_mock_order(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """Place an order from the cart without going through Razorpay."""
    result = checkout_service.create_mock_order(session, current_user)
    return placed_response(result)
