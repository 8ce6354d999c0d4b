import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel import select

from app.exceptions import (
    EmptyCartError,
    ForbiddenError,
    MissingShippingAddressError,
    PersistenceError,
)
from app.models.cart import CartItem
from app.models.order import Order
from app.models.order_event import OrderEvent
from app.models.order_item import OrderItem
from app.schemas.checkout_schemas import CartLine, ProfileSnapshot
from app.services import cart_service, order_finalizer
from app.services.checkout_service import profile_snapshot


def _finalize(session, user, lines, payment_id="pay_001"):
    return order_finalizer.finalize(
        session,
        user_id=user.id,
        cart_snapshot=lines,
        profile_snapshot=profile_snapshot(user),
        payment_id=payment_id,
        payment_method="razorpay",
        gateway_order_id="order_test0001",
    )


def _orders(session):
    return session.exec(select(Order)).all()


def test_order_and_items_match_snapshot(session, customer, books, fill_cart):
    fill_cart(customer, (books[0], 2), (books[1], 1))
    lines = cart_service.cart_snapshot(session, customer.id)

    result = _finalize(session, customer, lines)

    order = session.get(Order, result.order_id)
    items = session.exec(select(OrderItem).where(OrderItem.order_id == order.id).order_by(OrderItem.id)).all()

    assert result.already_processed is False
    assert result.cart_cleared is True
    assert order.status == "paid"
    assert order.total_amount == 250.0
    assert order.total_amount == sum(i.price_at_order * i.quantity for i in items)
    assert [(i.book_name, i.price_at_order, i.quantity) for i in items] == [
        ("Book A", 100.0, 2),
        ("Book B", 50.0, 1),
    ]
    assert order.user_name == "Asha Rao"
    assert order.shipping_address == "12 MG Road\nBengaluru 560001"
    assert session.exec(select(CartItem).where(CartItem.user_id == customer.id)).all() == []


def test_items_use_snapshot_price_not_catalog(session, customer, books, fill_cart):
    fill_cart(customer, (books[0], 1))
    lines = cart_service.cart_snapshot(session, customer.id)

    books[0].price = 999.0
    session.add(books[0])
    session.commit()

    result = _finalize(session, customer, lines)

    item = session.exec(select(OrderItem).where(OrderItem.order_id == result.order_id)).one()
    assert item.price_at_order == 100.0


def test_profile_snapshot_is_decoupled_from_later_edits(session, customer, books, fill_cart):
    fill_cart(customer, (books[0], 1))
    result = _finalize(session, customer, cart_service.cart_snapshot(session, customer.id))

    customer.shipping_address = "New address"
    session.add(customer)
    session.commit()

    assert session.get(Order, result.order_id).shipping_address == "12 MG Road\nBengaluru 560001"


def test_empty_snapshot(session, customer):
    with pytest.raises(EmptyCartError):
        _finalize(session, customer, [])
    assert _orders(session) == []


def test_missing_address_in_snapshot(session, make_user, books, fill_cart):
    user = make_user(shipping_address=None)
    fill_cart(user, (books[0], 1))

    with pytest.raises(MissingShippingAddressError):
        _finalize(session, user, cart_service.cart_snapshot(session, user.id))
    assert _orders(session) == []


def test_failed_item_insert_leaves_no_order(session, customer, books, fill_cart):
    fill_cart(customer, (books[0], 1))
    lines = cart_service.cart_snapshot(session, customer.id)
    lines.append(CartLine(cart_item_id=lines[0].cart_item_id, book_id=9999, book_name="Ghost", price=10.0, quantity=1))

    with pytest.raises(PersistenceError):
        _finalize(session, customer, lines)

    assert _orders(session) == []
    assert session.exec(select(OrderItem)).all() == []
    assert session.exec(select(OrderEvent)).all() == []
    # nothing was paid for, so the cart is untouched
    assert len(cart_service.cart_snapshot(session, customer.id)) == 1


def test_same_payment_twice_creates_one_order(session, customer, books, fill_cart):
    fill_cart(customer, (books[0], 1))
    lines = cart_service.cart_snapshot(session, customer.id)

    first = _finalize(session, customer, lines, payment_id="pay_dup")
    second = _finalize(session, customer, lines, payment_id="pay_dup")

    assert second.order_id == first.order_id
    assert second.already_processed is True
    assert len(_orders(session)) == 1


def test_concurrent_duplicate_resolves_to_existing_order(session, customer, books, fill_cart, monkeypatch):
    fill_cart(customer, (books[0], 1))
    lines = cart_service.cart_snapshot(session, customer.id)
    first = _finalize(session, customer, lines, payment_id="pay_race")

    # the pre-check misses (as if the other request had not committed yet);
    # the unique constraint on payment_id catches it
    real_lookup = order_finalizer.find_order_by_payment
    calls = []

    def racing_lookup(session, payment_id):
        calls.append(payment_id)
        if len(calls) == 1:
            return None
        return real_lookup(session, payment_id)

    monkeypatch.setattr(order_finalizer, "find_order_by_payment", racing_lookup)

    second = _finalize(session, customer, lines, payment_id="pay_race")

    assert second.order_id == first.order_id
    assert second.already_processed is True
    assert len(_orders(session)) == 1
    assert len(session.exec(select(OrderItem)).all()) == 1


def test_replay_by_another_user_is_forbidden(session, customer, make_user, books, fill_cart):
    fill_cart(customer, (books[0], 1))
    _finalize(session, customer, cart_service.cart_snapshot(session, customer.id), payment_id="pay_x")

    intruder = make_user()
    with pytest.raises(ForbiddenError):
        _finalize(session, intruder, [], payment_id="pay_x")


def test_cart_clear_failure_keeps_order(session, customer, books, fill_cart, monkeypatch):
    fill_cart(customer, (books[0], 2), (books[1], 1))
    lines = cart_service.cart_snapshot(session, customer.id)

    def broken_delete(*args, **kwargs):
        raise OperationalError("DELETE FROM cart_items", {}, Exception("database is locked"))

    monkeypatch.setattr(cart_service, "delete_items", broken_delete)

    result = _finalize(session, customer, lines)

    assert result.cart_cleared is False
    order = session.get(Order, result.order_id)
    assert order is not None
    assert order.total_amount == 250.0
    assert len(session.exec(select(OrderItem).where(OrderItem.order_id == order.id)).all()) == 2
    # the already-ordered lines are still in the cart
    assert len(cart_service.cart_snapshot(session, customer.id)) == 2


def test_creation_is_recorded_on_timeline(session, customer, books, fill_cart):
    fill_cart(customer, (books[0], 1))
    result = _finalize(session, customer, cart_service.cart_snapshot(session, customer.id))

    event = session.exec(select(OrderEvent).where(OrderEvent.order_id == result.order_id)).one()
    assert event.event_type == "order_created"
    assert event.meta["payment_id"] == "pay_001"


def test_profile_snapshot_blank_address_counts_as_missing(make_user):
    user = make_user(shipping_address="   ")
    assert profile_snapshot(user) == ProfileSnapshot(
        name="Asha Rao", email=user.email, mobile="9876543210", shipping_address=None
    )
