from app.models.user import User
from app.models.book import Book
from app.models.book_image import BookImage
from app.models.cart import CartItem
from app.models.order import Order, OrderStatus
from app.models.order_item import OrderItem
from app.models.order_event import OrderEvent

# add ALL models here
