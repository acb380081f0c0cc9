import json

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from services.auth_service.repository import UserRepository
from services.order_service.models import PHONE_MAX
from shared.config.settings import APP_URL
from shared.errors import AppException, Unauthorized
from shared.money import to_cents, to_minor_units
from shared.observability import restaurant_checkout_sessions_total
from .gateway import DELIVERY_FEE_LINE, METADATA_VALUE_LIMIT, TAX_LINE, CheckoutLineItem
from .schemas import CheckoutRequest, CheckoutSessionResponse

logger = structlog.get_logger(__name__)

SUCCESS_URL = f"{APP_URL}/checkout/success?session_id={{CHECKOUT_SESSION_ID}}"
CANCEL_URL = f"{APP_URL}/checkout"


def build_line_items(data: CheckoutRequest) -> list[CheckoutLineItem]:
    lines = [
        CheckoutLineItem(
            name=item.name,
            unit_amount=to_minor_units(item.price),
            quantity=item.quantity,
            image=item.image,
        )
        for item in data.items
    ]
    if data.tax > 0:
        lines.append(CheckoutLineItem(name=TAX_LINE, unit_amount=to_minor_units(data.tax), quantity=1))
    if data.delivery_fee > 0:
        lines.append(CheckoutLineItem(name=DELIVERY_FEE_LINE, unit_amount=to_minor_units(data.delivery_fee), quantity=1))
    return lines


def build_metadata(user, data: CheckoutRequest) -> dict[str, str]:
    """Gateway metadata values must be strings of at most 500 characters."""
    metadata = {
        "userId": str(user.id),
        "userEmail": user.email,
        "deliveryAddress": data.delivery_info.address,
        "deliveryPhone": data.delivery_info.phone,
        "deliveryInstructions": data.delivery_info.instructions or "",
        "subtotal": str(to_cents(data.subtotal)),
        "tax": str(to_cents(data.tax)),
        "deliveryFee": str(to_cents(data.delivery_fee)),
        "total": str(to_cents(data.total)),
    }
    items = json.dumps([
        {
            "name": item.name,
            "price": float(to_cents(item.price)),
            "quantity": item.quantity,
            "image": item.image,
        }
        for item in data.items
    ], separators=(",", ":"))
    if len(items) <= METADATA_VALUE_LIMIT:
        metadata["items"] = items
    else:
        # Reconciliation falls back to the gateway's line items
        logger.info("checkout.items_metadata_omitted", user_id=user.id, length=len(items))
    for key in ("deliveryAddress", "deliveryInstructions"):
        metadata[key] = metadata[key][:METADATA_VALUE_LIMIT]
    metadata["deliveryPhone"] = metadata["deliveryPhone"][:PHONE_MAX]
    return metadata


class CheckoutService:
    def __init__(self, gateway):
        self.gateway = gateway

    async def create_checkout_session(
        self, db: AsyncSession, user_id: int, data: CheckoutRequest
    ) -> CheckoutSessionResponse:
        user = await UserRepository.get_by_id(db, user_id)
        if not user or not user.is_active:
            raise Unauthorized("Unknown or inactive account")

        try:
            redirect = await self.gateway.create_checkout_session(
                line_items=build_line_items(data),
                success_url=SUCCESS_URL,
                cancel_url=CANCEL_URL,
                customer_email=user.email,
                metadata=build_metadata(user, data),
            )
        except AppException:
            restaurant_checkout_sessions_total.labels(status="failed").inc()
            raise

        restaurant_checkout_sessions_total.labels(status="created").inc()
        logger.info(
            "checkout.session_created",
            user_id=user.id, session_id=redirect.session_id, total=str(data.total), items=len(data.items),
        )
        return CheckoutSessionResponse(session_id=redirect.session_id, url=redirect.redirect_url)
