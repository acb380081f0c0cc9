"""
Hosted-checkout payment gateway.

``StripeGateway`` is the only module that talks to the Stripe SDK. The rest of
the service works with the plain models defined here, so tests can swap in
an in-memory gateway through the ``get_gateway`` dependency.
"""
import asyncio
from functools import lru_cache
from typing import Any, Optional

import stripe
import structlog
from pydantic import BaseModel

from shared.config.settings import CURRENCY, STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRET
from shared.errors import NotFound, UpstreamFailure

logger = structlog.get_logger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"
PAYMENT_FAILED = "payment_intent.payment_failed"
PAID = "paid"

# Labels of the synthetic lines added next to the real cart items
TAX_LINE = "Tax"
DELIVERY_FEE_LINE = "Delivery Fee"
SYNTHETIC_LINES = frozenset({TAX_LINE, DELIVERY_FEE_LINE})

# Stripe rejects metadata values longer than this
METADATA_VALUE_LIMIT = 500


class CheckoutLineItem(BaseModel):
    name: str
    unit_amount: int  # minor units
    quantity: int
    image: Optional[str] = None


class CheckoutRedirect(BaseModel):
    session_id: str
    redirect_url: str


class GatewayLineItem(BaseModel):
    description: Optional[str] = None
    amount_total: int = 0  # minor units for the whole line
    quantity: int = 1


class GatewaySession(BaseModel):
    session_id: str
    payment_status: Optional[str] = None
    amount_total: Optional[int] = None
    customer_email: Optional[str] = None
    line_items: list[GatewayLineItem] = []
    metadata: dict[str, str] = {}

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PAID


class GatewayEvent(BaseModel):
    event_id: Optional[str] = None
    event_type: str
    object_id: Optional[str] = None


def _plain(obj: Any) -> Any:
    """Converts (possibly nested) StripeObjects into dicts and lists."""
    if hasattr(obj, "to_dict"):
        obj = obj.to_dict()
    if isinstance(obj, dict):
        return {k: _plain(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_plain(v) for v in obj]
    return obj


class StripeGateway:
    def __init__(
        self,
        api_key: str = STRIPE_SECRET_KEY,
        webhook_secret: str = STRIPE_WEBHOOK_SECRET,
        currency: str = CURRENCY,
    ):
        self.api_key = api_key
        self.webhook_secret = webhook_secret
        self.currency = currency

    def _price_data(self, item: CheckoutLineItem) -> dict:
        return {
            "price_data": {
                "currency": self.currency,
                "product_data": {
                    "name": item.name,
                    "images": [item.image] if item.image else [],
                },
                "unit_amount": item.unit_amount,
            },
            "quantity": item.quantity,
        }

    async def create_checkout_session(
        self,
        line_items: list[CheckoutLineItem],
        success_url: str,
        cancel_url: str,
        customer_email: str,
        metadata: dict[str, str],
    ) -> CheckoutRedirect:
        # The SDK is blocking; keep it off the event loop
        try:
            session = await asyncio.to_thread(
                stripe.checkout.Session.create,
                api_key=self.api_key,
                payment_method_types=["card"],
                mode="payment",
                line_items=[self._price_data(item) for item in line_items],
                success_url=success_url,
                cancel_url=cancel_url,
                customer_email=customer_email,
                metadata=metadata,
            )
        except stripe.StripeError as e:
            logger.error("gateway.create_session_failed", error=str(e))
            raise UpstreamFailure("Failed to create checkout session") from e

        data = _plain(session)
        return CheckoutRedirect(session_id=data["id"], redirect_url=data["url"])

    async def retrieve_session(self, session_id: str) -> GatewaySession:
        try:
            session = await asyncio.to_thread(
                stripe.checkout.Session.retrieve,
                session_id,
                api_key=self.api_key,
                expand=["line_items"],
            )
        except stripe.InvalidRequestError as e:
            if e.http_status == 404:
                raise NotFound(f"Checkout session {session_id} not found") from e
            logger.error("gateway.retrieve_session_failed", session_id=session_id, error=str(e))
            raise UpstreamFailure("Failed to retrieve checkout session") from e
        except stripe.StripeError as e:
            logger.error("gateway.retrieve_session_failed", session_id=session_id, error=str(e))
            raise UpstreamFailure("Failed to retrieve checkout session") from e

        data = _plain(session)
        line_items = (data.get("line_items") or {}).get("data") or []
        return GatewaySession(
            session_id=data["id"],
            payment_status=data.get("payment_status"),
            amount_total=data.get("amount_total"),
            customer_email=data.get("customer_email")
            or (data.get("customer_details") or {}).get("email"),
            line_items=[
                GatewayLineItem(
                    description=li.get("description"),
                    amount_total=li.get("amount_total") or 0,
                    quantity=li.get("quantity") or 1,
                )
                for li in line_items
            ],
            metadata={k: str(v) for k, v in (data.get("metadata") or {}).items()},
        )

    def construct_event(self, payload: bytes, signature: Optional[str]) -> GatewayEvent:
        """Verifies the notification signature; a bad one raises UpstreamFailure (400)."""
        if not signature:
            raise UpstreamFailure("Missing webhook signature", status_code=400)
        try:
            event = stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except (ValueError, stripe.SignatureVerificationError) as e:
            logger.warning("gateway.signature_rejected", error=str(e))
            raise UpstreamFailure("Webhook signature verification failed", status_code=400) from e

        data = _plain(event)
        obj = (data.get("data") or {}).get("object") or {}
        return GatewayEvent(event_id=data.get("id"), event_type=data.get("type", ""), object_id=obj.get("id"))


@lru_cache
def get_gateway() -> StripeGateway:
    return StripeGateway()
