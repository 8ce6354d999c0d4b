import logging
from datetime import datetime
from typing import Iterable, List

from sqlalchemy import delete
from sqlalchemy.dialects import postgresql, sqlite
from sqlmodel import Session, select

from app.exceptions import BookNotFoundError, CartItemNotFoundError
from app.models.book import Book
from app.models.cart import CartItem
from app.schemas.checkout_schemas import CartLine

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def add_item(session: Session, user_id: int, book_id: int, quantity: int = 1) -> CartItem:
    """
    Insert the book into the user's cart, or bump the quantity if it is
    already there. One statement, so two concurrent adds both count.
    """
    if session.get(Book, book_id) is None:
        raise BookNotFoundError()

    dialect = session.get_bind().dialect.name
    insert = _UPSERT_DIALECTS.get(dialect)
    if insert is None:
        raise RuntimeError(f"Cart upsert not supported on {dialect}")

    table = CartItem.__table__
    stmt = insert(table).values(
        user_id=user_id,
        book_id=book_id,
        quantity=quantity,
        added_at=datetime.utcnow(),
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[table.c.user_id, table.c.book_id],
        set_={"quantity": table.c.quantity + stmt.excluded.quantity},
    )
    session.execute(stmt)
    session.commit()

    return session.exec(
        select(CartItem).where(
            CartItem.user_id == user_id,
            CartItem.book_id == book_id,
        )
    ).one()


def _owned_item(session: Session, user_id: int, item_id: int) -> CartItem:
    item = session.exec(
        select(CartItem).where(CartItem.id == item_id, CartItem.user_id == user_id)
    ).first()
    if item is None:
        raise CartItemNotFoundError()
    return item


def update_quantity(session: Session, user_id: int, item_id: int, quantity: int):
    """Set the quantity; zero or less removes the line. Returns None when removed."""
    item = _owned_item(session, user_id, item_id)

    if quantity <= 0:
        session.delete(item)
        session.commit()
        return None

    item.quantity = quantity
    session.add(item)
    session.commit()
    session.refresh(item)
    return item


def remove_item(session: Session, user_id: int, item_id: int) -> None:
    item = _owned_item(session, user_id, item_id)
    session.delete(item)
    session.commit()


def clear_cart(session: Session, user_id: int) -> int:
    result = session.execute(delete(CartItem).where(CartItem.user_id == user_id))
    session.commit()
    return result.rowcount


def cart_snapshot(session: Session, user_id: int) -> List[CartLine]:
    """Current cart rows with the catalog's current price, read in one query."""
    rows = session.exec(
        select(CartItem, Book)
        .join(Book, CartItem.book_id == Book.id)
        .where(CartItem.user_id == user_id)
        .order_by(CartItem.id)
    ).all()

    return [
        CartLine(
            cart_item_id=item.id,
            book_id=book.id,
            book_name=book.title,
            price=book.price,
            quantity=item.quantity,
        )
        for item, book in rows
    ]


def cart_total(lines: Iterable[CartLine]) -> float:
    return round(sum(line.line_total for line in lines), 2)


def delete_items(session: Session, user_id: int, item_ids: List[int]) -> int:
    """
    Delete only the given rows of this user's cart. Does not commit.
    Rows added after a snapshot was taken are left alone.
    """
    if not item_ids:
        return 0
    result = session.execute(
        delete(CartItem).where(
            CartItem.user_id == user_id,
            CartItem.id.in_(item_ids),
        )
    )
    return result.rowcount
