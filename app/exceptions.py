"""
Domain errors raised by the services and rendered by one handler in
``app.main`` as ``{"error": message}`` with the error's status code.
"""
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


class StoreError(Exception):
    status_code = 500
    message = "Something went wrong"

    def __init__(self, message: str | None = None, status_code: int | None = None):
        self.message = message or self.message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class UnauthorizedError(StoreError):
    status_code = 401
    message = "Unauthorized"


class ForbiddenError(StoreError):
    status_code = 403
    message = "You are not allowed to perform this action"


class EmptyCartError(StoreError):
    status_code = 400
    message = "Cart is empty"


class InvalidSignatureError(StoreError):
    status_code = 400
    message = "Invalid Payment Signature"


class MissingShippingAddressError(StoreError):
    status_code = 500
    message = "Please add a shipping address to your profile before checkout"


class AmountMismatchError(StoreError):
    status_code = 500
    message = "Cart changed after payment was started. Please contact support with your payment id."


class GatewayError(StoreError):
    status_code = 500
    message = "Payment gateway is unavailable. Please try again."


class PersistenceError(StoreError):
    status_code = 500
    message = "Could not save your order. Please try again."


class OrderNotFoundError(StoreError):
    status_code = 404
    message = "Order not found"


class BookNotFoundError(StoreError):
    status_code = 404
    message = "Book not found"


class CartItemNotFoundError(StoreError):
    status_code = 404
    message = "Cart item not found"


class InvalidStatusTransitionError(StoreError):
    status_code = 400
    message = "Invalid status change"


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError):
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.message},
            headers=headers,
        )
