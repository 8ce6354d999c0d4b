import logging
import random
import time
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Optional
from uuid import uuid4

import razorpay
import requests

from app.config import settings
from app.exceptions import GatewayError

logger = logging.getLogger(__name__)

# network-level failures worth another attempt when creating an intent
RETRYABLE_ERRORS = (requests.exceptions.Timeout, requests.exceptions.ConnectionError)


@dataclass
class PaymentIntent:
    id: str
    amount: int
    currency: str


def to_minor_units(amount: float) -> int:
    """Rupees to paise, rounded half-up to a whole paisa."""
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def new_receipt() -> str:
    return f"receipt_{uuid4().hex}"


class RazorpayGateway:
    """
    Thin wrapper over the Razorpay SDK: intent (Razorpay order) creation
    and lookup with a bounded timeout, plus payment signature checks.
    """

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        currency: str = "INR",
        timeout: float = 10.0,
        max_retries: int = 3,
        client: Optional[razorpay.Client] = None,
    ):
        self.key_id = key_id
        self._key_secret = key_secret
        self.currency = currency
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.client = client or razorpay.Client(auth=(key_id, key_secret))

    def create_intent(self, amount: int, receipt: str, notes: Optional[Dict[str, Any]] = None) -> PaymentIntent:
        payload = {
            "amount": amount,
            "currency": self.currency,
            "receipt": receipt,
            "notes": notes or {},
        }
        last_error = None

        for attempt in range(1, self.max_retries + 1):
            try:
                order = self.client.order.create(data=payload, timeout=self.timeout)
                logger.info(f"Razorpay order {order['id']} created for {amount} {self.currency} (attempt {attempt})")
                return PaymentIntent(
                    id=order["id"],
                    amount=int(order["amount"]),
                    currency=order.get("currency", self.currency),
                )
            except RETRYABLE_ERRORS as e:
                last_error = e
                logger.warning(f"Razorpay order create attempt {attempt} failed: {e}")
                if attempt < self.max_retries:
                    time.sleep((2 ** (attempt - 1)) * 0.5 + random.random() * 0.1)
            except (razorpay.errors.BadRequestError, razorpay.errors.ServerError,
                    razorpay.errors.GatewayError, requests.exceptions.RequestException) as e:
                logger.error(f"Razorpay order create failed: {e}")
                raise GatewayError() from e

        logger.error(f"Razorpay order create gave up after {self.max_retries} attempts: {last_error}")
        raise GatewayError() from last_error

    def fetch_intent(self, intent_id: str) -> PaymentIntent:
        # no retry: an unanswered lookup during verify must stay a failure
        try:
            order = self.client.order.fetch(intent_id, timeout=self.timeout)
        except (razorpay.errors.BadRequestError, razorpay.errors.ServerError,
                razorpay.errors.GatewayError, requests.exceptions.RequestException) as e:
            logger.error(f"Razorpay order fetch failed for {intent_id}: {e}")
            raise GatewayError() from e

        return PaymentIntent(
            id=order["id"],
            amount=int(order["amount"]),
            currency=order.get("currency", self.currency),
        )

    def verify_signature(self, intent_id: str, payment_id: str, signature: str) -> bool:
        try:
            self.client.utility.verify_payment_signature({
                "razorpay_order_id": intent_id,
                "razorpay_payment_id": payment_id,
                "razorpay_signature": signature,
            })
        except razorpay.errors.SignatureVerificationError:
            return False
        except TypeError:
            # compare_digest refuses non-ASCII text; such a signature can't match
            return False
        return True


def get_payment_gateway() -> RazorpayGateway:
    return RazorpayGateway(
        key_id=settings.RAZORPAY_KEY_ID,
        key_secret=settings.RAZORPAY_KEY_SECRET,
        currency=settings.RAZORPAY_CURRENCY,
        timeout=settings.RAZORPAY_TIMEOUT_SECONDS,
        max_retries=settings.RAZORPAY_MAX_RETRIES,
    )
