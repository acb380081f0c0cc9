from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from services.auth_service.repository import UserRepository
from shared.errors import InvalidTransition, NotFound, Unauthorized
from shared.money import to_cents
from shared.observability import restaurant_order_status_changes_total
from .models import Order, OrderItem
from .repository import OrderRepository
from .schemas import DirectOrderCreate
from .status import OrderStatus, is_customer_transition, is_lifecycle_transition

logger = structlog.get_logger(__name__)


def range_start(date_range: Optional[str], now: Optional[datetime] = None) -> Optional[datetime]:
    """Lower bound of an admin date filter (today, yesterday, week, month)."""
    if not date_range:
        return None
    now = now or datetime.now(timezone.utc)
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    starts = {
        "today": today,
        "yesterday": today - timedelta(days=1),
        "week": now - timedelta(days=7),
        "month": now - timedelta(days=30),
    }
    return starts.get(date_range)


class OrderLifecycle:
    @staticmethod
    async def get_or_404(db: AsyncSession, order_id: str) -> Order:
        order = await OrderRepository.get_order(db, order_id)
        if not order:
            raise NotFound("Order not found")
        return order

    @staticmethod
    async def get_for_customer(db: AsyncSession, order_id: str, user_id: int) -> Order:
        order = await OrderLifecycle.get_or_404(db, order_id)
        if order.user_id != user_id:
            raise Unauthorized("Order belongs to another customer")
        return order

    @staticmethod
    async def list_for_customer(db: AsyncSession, user_id: int) -> list[Order]:
        return await OrderRepository.list_for_user(db, user_id)

    @staticmethod
    async def customer_transition(
        db: AsyncSession, order_id: str, user_id: int, target: OrderStatus
    ) -> Order:
        order = await OrderLifecycle.get_for_customer(db, order_id, user_id)
        if not is_customer_transition(order.status, target):
            raise InvalidTransition(order.status, target)

        previous = order.status
        order = await OrderRepository.update_status(db, order, target)
        restaurant_order_status_changes_total.labels(actor="customer", status=target.value).inc()
        logger.info(
            "order.status_changed",
            order_id=order.id, actor="customer", previous=previous.value, status=target.value,
        )
        return order

    @staticmethod
    async def admin_set_status(db: AsyncSession, order_id: str, target: OrderStatus) -> tuple[Order, bool]:
        """Operator override: any recognised status is accepted.

        Returns the order and whether the change fell outside the lifecycle table.
        """
        order = await OrderLifecycle.get_or_404(db, order_id)
        previous = order.status
        override = previous != target and not is_lifecycle_transition(previous, target)

        order = await OrderRepository.update_status(db, order, target)
        actor = "admin_override" if override else "admin"
        restaurant_order_status_changes_total.labels(actor=actor, status=target.value).inc()
        log = logger.warning if override else logger.info
        log(
            "order.status_changed",
            order_id=order.id, actor=actor, previous=previous.value, status=target.value,
        )
        return order, override

    @staticmethod
    async def admin_cancel(db: AsyncSession, order_id: str) -> Order:
        order, _ = await OrderLifecycle.admin_set_status(db, order_id, OrderStatus.CANCELLED)
        return order

    @staticmethod
    async def admin_list(
        db: AsyncSession,
        status: Optional[OrderStatus] = None,
        date_range: Optional[str] = None,
        search: Optional[str] = None,
    ) -> tuple[list[Order], dict[str, int]]:
        since = range_start(date_range)
        orders = await OrderRepository.list_all(db, status=status, since=since, search=search)
        counts = await OrderRepository.count_by_status(db, since=since)
        stats = {s.value.lower(): n for s, n in counts.items()}
        stats["total"] = sum(counts.values())
        return orders, stats

    @staticmethod
    async def create_direct(db: AsyncSession, data: DirectOrderCreate) -> Order:
        if not await UserRepository.get_by_id(db, data.user_id):
            raise NotFound("User not found")

        items = [
            OrderItem(name=i.name, price=to_cents(i.price), quantity=i.quantity, image=i.image)
            for i in data.items
        ]
        subtotal = to_cents(sum(i.price * i.quantity for i in data.items))
        tax = to_cents(data.tax)
        delivery_fee = to_cents(data.delivery_fee)
        order = Order(
            user_id=data.user_id,
            subtotal=subtotal,
            tax=tax,
            delivery_fee=delivery_fee,
            total=subtotal + tax + delivery_fee,
            address=data.address,
            phone=data.phone,
            notes=data.notes,
            status=OrderStatus.PENDING,
            items=items,
        )
        order = await OrderRepository.create_order(db, order)
        logger.info("order.created_direct", order_id=order.id, user_id=order.user_id)
        return order
