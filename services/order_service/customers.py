"""Admin customer directory: people who have ordered, with their order history rolled up."""
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from services.auth_service.models import User
from services.auth_service.repository import UserRepository
from shared.errors import NotFound
from .analytics import as_money, as_utc
from .models import Order
from .repository import OrderRepository
from .schemas import (
    AdminCustomer,
    AdminCustomerList,
    CustomerOrderSummary,
    CustomerStats,
    CustomerUpdate,
)

logger = structlog.get_logger(__name__)

# A customer is active while their latest order is newer than this
ACTIVE_WINDOW = timedelta(days=30)
RECENT_ORDERS = 5


def customer_status(last_order_at: Optional[datetime], now: datetime) -> str:
    if last_order_at and as_utc(last_order_at) > now - ACTIVE_WINDOW:
        return "active"
    return "inactive"


def _to_customer(
    user: User,
    order_count: int,
    total_spent,
    last_order_at: Optional[datetime],
    orders: list[Order],
    now: datetime,
) -> AdminCustomer:
    return AdminCustomer(
        id=user.id,
        name=user.name or "Unknown",
        email=user.email or "",
        phone=user.phone or "",
        address=user.address or "",
        total_orders=order_count,
        total_spent=as_money(total_spent),
        last_order=as_utc(last_order_at) if last_order_at else None,
        joined_at=as_utc(user.created_at) if user.created_at else None,
        status=customer_status(last_order_at, now),
        orders=[
            CustomerOrderSummary(
                id=order.id,
                created_at=as_utc(order.created_at),
                items=len(order.items),
                total=as_money(order.total),
                status=order.status,
            )
            for order in orders
        ],
    )


class CustomerDirectory:
    @staticmethod
    async def list_customers(
        db: AsyncSession,
        search: Optional[str] = None,
        status: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> AdminCustomerList:
        """Customers with at least one order. ``status`` keeps only active or inactive ones."""
        now = now or datetime.now(timezone.utc)
        rows = await OrderRepository.customer_aggregates(db, search=search)
        recent = await OrderRepository.recent_for_users(db, [row[0].id for row in rows], per_user=RECENT_ORDERS)

        customers = []
        revenue = Decimal("0")
        for user, order_count, total_spent, last_order_at in rows:
            customer = _to_customer(user, order_count, total_spent, last_order_at, recent.get(user.id, []), now)
            if status and customer.status != status:
                continue
            customers.append(customer)
            revenue += Decimal(str(total_spent))

        total_orders = sum(c.total_orders for c in customers)
        active = sum(1 for c in customers if c.status == "active")
        stats = CustomerStats(
            total_customers=len(customers),
            active_customers=active,
            inactive_customers=len(customers) - active,
            total_revenue=as_money(revenue),
            total_orders=total_orders,
            avg_order_value=as_money(revenue / total_orders) if total_orders else 0.0,
        )
        return AdminCustomerList(customers=customers, stats=stats)

    @staticmethod
    async def get_customer(db: AsyncSession, user_id: int, now: Optional[datetime] = None) -> AdminCustomer:
        now = now or datetime.now(timezone.utc)
        user = await UserRepository.get_by_id(db, user_id)
        if not user:
            raise NotFound("Customer not found")

        orders = await OrderRepository.list_for_user(db, user_id)
        total_spent = sum((Decimal(str(o.total)) for o in orders), Decimal("0"))
        last_order_at = orders[0].created_at if orders else None
        return _to_customer(user, len(orders), total_spent, last_order_at, orders, now)

    @staticmethod
    async def update_customer(db: AsyncSession, user_id: int, payload: CustomerUpdate) -> User:
        user = await UserRepository.get_by_id(db, user_id)
        if not user:
            raise NotFound("Customer not found")

        fields = payload.model_dump(exclude_unset=True)
        user = await UserRepository.update(db, user, fields)
        logger.info("customer_updated", user_id=user_id, fields=sorted(fields))
        return user
