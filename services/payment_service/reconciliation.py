"""
Turns a paid checkout session into exactly one persisted order.

Two entry points race for the same session: the customer's browser calling
``verify_session`` after the redirect, and the gateway's notification handled
by ``handle_notification``. Both go through ``reconcile``. The lookup by
``checkout_session_id`` is the fast path; the unique constraint on that
column settles the case where both pass the lookup before either commits.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from services.auth_service.repository import UserRepository
from services.order_service.models import (
    ADDRESS_MAX,
    IMAGE_MAX,
    ITEM_NAME_MAX,
    PHONE_MAX,
    Order,
    OrderItem,
)
from services.order_service.repository import OrderRepository
from services.order_service.status import OrderStatus
from shared.errors import AppException, PaymentNotCompleted, Unauthorized, UserNotFound
from shared.money import amounts_match, from_minor_units, parse_amount, to_cents
from shared.observability import restaurant_orders_reconciled_total, restaurant_webhook_events_total
from .gateway import CHECKOUT_COMPLETED, PAYMENT_FAILED, GatewaySession
from .item_resolution import ItemResolutionChain, build_item_resolution_chain
from .schemas import WebhookAck

logger = structlog.get_logger(__name__)

SESSION_NOTE_PREFIX = "Stripe Session:"
MISSING_ADDRESS = "Address not provided"
MISSING_PHONE = "Phone not provided"


def session_note(session_id: str, instructions: Optional[str]) -> str:
    return f"{SESSION_NOTE_PREFIX} {session_id}. {instructions or ''}".strip()


@dataclass(frozen=True)
class OrderAmounts:
    subtotal: Decimal
    tax: Decimal
    delivery_fee: Decimal
    total: Decimal


def resolve_amounts(session: GatewaySession) -> OrderAmounts:
    """Financial fields from metadata, falling back to the gateway's total.

    The result always satisfies ``total == subtotal + tax + delivery_fee``.
    """
    metadata = session.metadata
    subtotal = parse_amount(metadata.get("subtotal"))
    tax = parse_amount(metadata.get("tax"))
    delivery_fee = parse_amount(metadata.get("deliveryFee"))
    declared_total = parse_amount(metadata.get("total"))

    if None not in (subtotal, tax, delivery_fee) and min(subtotal, tax, delivery_fee) >= 0:
        total = subtotal + tax + delivery_fee
        if declared_total is not None and not amounts_match(total, declared_total):
            logger.warning(
                "reconciliation.total_mismatch",
                session_id=session.session_id, declared=str(declared_total), computed=str(total),
            )
        return OrderAmounts(subtotal, tax, delivery_fee, total)

    total = from_minor_units(session.amount_total) if session.amount_total is not None else declared_total
    total = max(total or Decimal("0"), Decimal("0"))
    tax = max(tax or Decimal("0"), Decimal("0"))
    delivery_fee = max(delivery_fee or Decimal("0"), Decimal("0"))
    if tax + delivery_fee > total:
        tax = delivery_fee = Decimal("0")
    logger.warning("reconciliation.metadata_amounts_incomplete", session_id=session.session_id)
    return OrderAmounts(to_cents(total - tax - delivery_fee), tax, delivery_fee, to_cents(total))


@dataclass
class ReconciliationResult:
    order: Order
    created: bool


class ReconciliationService:
    def __init__(self, gateway, chain: Optional[ItemResolutionChain] = None):
        self.gateway = gateway
        self.chain = chain or build_item_resolution_chain()

    async def reconcile(self, db: AsyncSession, session: GatewaySession, path: str) -> ReconciliationResult:
        if not session.is_paid:
            raise PaymentNotCompleted(session.payment_status)

        existing = await OrderRepository.get_by_checkout_session(db, session.session_id)
        if existing:
            restaurant_orders_reconciled_total.labels(path=path, outcome="duplicate").inc()
            logger.info("reconciliation.order_exists", session_id=session.session_id, order_id=existing.id, path=path)
            return ReconciliationResult(existing, created=False)

        metadata = session.metadata
        email = metadata.get("userEmail") or session.customer_email
        user = await UserRepository.get_by_email(db, email) if email else None
        if not user:
            raise UserNotFound(email)

        strategy, items = self.chain.resolve(session)
        amounts = resolve_amounts(session)

        order = Order(
            user_id=user.id,
            subtotal=amounts.subtotal,
            tax=amounts.tax,
            delivery_fee=amounts.delivery_fee,
            total=amounts.total,
            # Session data is not bound by checkout validation; clamp to the columns
            address=(metadata.get("deliveryAddress") or MISSING_ADDRESS)[:ADDRESS_MAX],
            phone=(metadata.get("deliveryPhone") or MISSING_PHONE)[:PHONE_MAX],
            notes=session_note(session.session_id, metadata.get("deliveryInstructions")),
            checkout_session_id=session.session_id,
            status=OrderStatus.CONFIRMED,
            items=[
                OrderItem(
                    name=i.name[:ITEM_NAME_MAX],
                    price=i.price,
                    quantity=i.quantity,
                    image=i.image[:IMAGE_MAX] if i.image else None,
                )
                for i in items
            ],
        )
        try:
            order = await OrderRepository.create_order(db, order)
        except IntegrityError:
            # Lost the race against the other entry point
            await db.rollback()
            winner = await OrderRepository.get_by_checkout_session(db, session.session_id)
            if winner is None:
                raise
            restaurant_orders_reconciled_total.labels(path=path, outcome="duplicate").inc()
            logger.info("reconciliation.race_lost", session_id=session.session_id, order_id=winner.id, path=path)
            return ReconciliationResult(winner, created=False)

        restaurant_orders_reconciled_total.labels(path=path, outcome="created").inc()
        logger.info(
            "reconciliation.order_created",
            session_id=session.session_id, order_id=order.id, user_id=user.id,
            path=path, item_source=strategy, total=str(order.total),
        )
        return ReconciliationResult(order, created=True)

    async def verify_session(self, db: AsyncSession, session_id: str, caller_id: int) -> ReconciliationResult:
        """Client-initiated path: errors propagate to the waiting customer."""
        try:
            session = await self.gateway.retrieve_session(session_id)
            result = await self.reconcile(db, session, path="verify")
        except AppException as exc:
            restaurant_orders_reconciled_total.labels(path="verify", outcome="rejected").inc()
            logger.warning("reconciliation.verify_failed", session_id=session_id, error=exc.code, detail=exc.detail)
            raise

        if result.order.user_id != caller_id:
            raise Unauthorized("Checkout session belongs to another customer")
        return result

    async def handle_notification(self, db: AsyncSession, payload: bytes, signature: Optional[str]) -> WebhookAck:
        """Gateway-initiated path: only a bad signature is rejected."""
        event = self.gateway.construct_event(payload, signature)
        restaurant_webhook_events_total.labels(event_type=event.event_type).inc()

        if event.event_type == PAYMENT_FAILED:
            logger.warning("webhook.payment_failed", event_id=event.event_id, payment_intent=event.object_id)
            return WebhookAck()
        if event.event_type != CHECKOUT_COMPLETED or not event.object_id:
            logger.info("webhook.ignored", event_id=event.event_id, event_type=event.event_type)
            return WebhookAck()

        try:
            session = await self.gateway.retrieve_session(event.object_id)
            result = await self.reconcile(db, session, path="webhook")
        except AppException as exc:
            # Acknowledge anyway: the gateway cannot act on business failures
            restaurant_orders_reconciled_total.labels(path="webhook", outcome="rejected").inc()
            logger.error(
                "webhook.reconciliation_failed",
                event_id=event.event_id, session_id=event.object_id, error=exc.code, detail=exc.detail,
            )
            return WebhookAck(error=exc.code)

        return WebhookAck(order_id=result.order.id, created=result.created)
