import hashlib
import hmac
import itertools
import os

os.environ.setdefault("secret_key", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("RAZORPAY_KEY_ID", "rzp_test_key")
os.environ.setdefault("RAZORPAY_KEY_SECRET", "rzp_test_secret")

from typing import Generator

import pytest
import razorpay
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel

from app.database import build_engine, create_db_and_tables, get_session
from app.main import app as fastapi_app
from app.models.book import Book
from app.models.book_image import BookImage
from app.models.cart import CartItem
from app.models.user import User
from app.services.razorpay_gateway import RazorpayGateway, get_payment_gateway
from app.utils.token import create_access_token

KEY_ID = "rzp_test_key"
KEY_SECRET = "rzp_test_secret"

_emails = itertools.count(1)


class FakeOrderApi:
    """Stands in for ``razorpay.Client().order``; scripted failures via ``errors``."""

    def __init__(self):
        self.created = {}
        self.create_calls = []
        self.fetch_calls = []
        self.errors = []
        self.fetch_errors = []

    def create(self, data=None, **kwargs):
        self.create_calls.append((data, kwargs))
        if self.errors:
            raise self.errors.pop(0)
        order_id = f"order_test{len(self.created) + 1:04d}"
        order = {
            "id": order_id,
            "amount": data["amount"],
            "currency": data["currency"],
            "receipt": data["receipt"],
            "status": "created",
        }
        self.created[order_id] = order
        return order

    def fetch(self, order_id, **kwargs):
        self.fetch_calls.append((order_id, kwargs))
        if self.fetch_errors:
            raise self.fetch_errors.pop(0)
        if order_id not in self.created:
            raise razorpay.errors.BadRequestError("The id provided does not exist")
        return self.created[order_id]


class FakeRazorpayClient:
    def __init__(self):
        self.order = FakeOrderApi()
        # signature checks run through the real SDK helper
        self.utility = razorpay.Client(auth=(KEY_ID, KEY_SECRET)).utility


@pytest.fixture()
def engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    create_db_and_tables(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def session(engine) -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


@pytest.fixture()
def razorpay_client():
    return FakeRazorpayClient()


@pytest.fixture()
def gateway(razorpay_client, monkeypatch):
    monkeypatch.setattr("app.services.razorpay_gateway.time.sleep", lambda _: None)
    return RazorpayGateway(
        key_id=KEY_ID,
        key_secret=KEY_SECRET,
        currency="INR",
        timeout=5.0,
        max_retries=3,
        client=razorpay_client,
    )


@pytest.fixture()
def client(session, gateway) -> Generator[TestClient, None, None]:
    fastapi_app.dependency_overrides[get_session] = lambda: session
    fastapi_app.dependency_overrides[get_payment_gateway] = lambda: gateway
    yield TestClient(fastapi_app)
    fastapi_app.dependency_overrides.clear()


@pytest.fixture()
def make_user(session):
    def _make_user(role="user", shipping_address="12 MG Road\nBengaluru 560001", **kwargs):
        user = User(
            first_name=kwargs.pop("first_name", "Asha"),
            last_name=kwargs.pop("last_name", "Rao"),
            email=kwargs.pop("email", f"{role}{next(_emails)}@example.com"),
            mobile=kwargs.pop("mobile", "9876543210"),
            shipping_address=shipping_address,
            role=role,
            **kwargs,
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        return user
    return _make_user


@pytest.fixture()
def make_book(session):
    def _make_book(title, price, stock=10, images=()):
        book = Book(title=title, author="Anon", price=price, stock=stock)
        session.add(book)
        session.commit()
        session.refresh(book)
        for i, url in enumerate(images):
            session.add(BookImage(book_id=book.id, image_url=url, sort_order=i))
        session.commit()
        return book
    return _make_book


@pytest.fixture()
def fill_cart(session):
    def _fill_cart(user, *lines):
        for book, quantity in lines:
            session.add(CartItem(user_id=user.id, book_id=book.id, quantity=quantity))
        session.commit()
    return _fill_cart


@pytest.fixture()
def auth_headers():
    def _auth_headers(user):
        token = create_access_token({"sub": str(user.id)})
        return {"Authorization": f"Bearer {token}"}
    return _auth_headers


@pytest.fixture()
def customer(make_user):
    return make_user()


@pytest.fixture()
def admin(make_user):
    return make_user(role="admin", first_name="Store", last_name="Admin", email="admin@example.com")


@pytest.fixture()
def books(make_book):
    """The two-book cart used throughout: A at 100, B at 50."""
    return (
        make_book("Book A", 100.0, images=("https://cdn.example.com/a-front.jpg",)),
        make_book("Book B", 50.0),
    )


@pytest.fixture()
def sign_payment():
    """What Razorpay hands the client: hex HMAC-SHA256 of ``intent|payment``."""
    def _sign(intent_id, payment_id):
        body = f"{intent_id}|{payment_id}".encode()
        return hmac.new(KEY_SECRET.encode(), body, hashlib.sha256).hexdigest()
    return _sign
