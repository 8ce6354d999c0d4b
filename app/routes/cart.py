from fastapi import APIRouter, Depends
from sqlmodel import Session
from app.database import get_session
from app.models.user import User
from app.schemas.cart_schemas import CartAddRequest, CartUpdateRequest
from app.services import cart_service
from app.utils.token import get_current_user  # JWT dependency


router = APIRouter()

# Add to Cart

@router.post("/add")
def add_to_cart(
    data: CartAddRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    item = cart_service.add_item(session, current_user.id, data.book_id, data.quantity)
    return {"message": "Cart updated", "item": item}


# View Cart

@router.get("/")
def get_cart(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    lines = cart_service.cart_snapshot(session, current_user.id)

    return {
        "items": [
            {
                "item_id": line.cart_item_id,
                "book_id": line.book_id,
                "book_name": line.book_name,
                "price": line.price,
                "quantity": line.quantity,
                "total": line.line_total,
            }
            for line in lines
        ],
        "subtotal": cart_service.cart_total(lines),
    }

# Update Cart
@router.put("/update/{item_id}")
def update_cart_item(
    item_id: int,
    data: CartUpdateRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    item = cart_service.update_quantity(session, current_user.id, item_id, data.quantity)

    if item is None:
        return {"message": "Item removed"}

    return {"message": "Quantity updated", "item": item}

# Remove Cart

@router.delete("/remove/{item_id}")
def remove_item(
    item_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    cart_service.remove_item(session, current_user.id, item_id)
    return {"message": "Item removed from cart"}

# Clear Cart

@router.delete("/clear")
def clear_cart_endpoint(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    removed = cart_service.clear_cart(session, current_user.id)
    return {"message": "Cart cleared", "removed": removed}
