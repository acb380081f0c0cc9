from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from services.auth_service.models import User
from .models import Order, OrderItem
from .status import OrderStatus


class OrderRepository:
    @staticmethod
    async def create_order(db: AsyncSession, order: Order) -> Order:
        """Inserts the order and its items. IntegrityError propagates to the caller."""
        db.add(order)
        await db.commit()
        return await OrderRepository.get_order(db, order.id)

    @staticmethod
    async def get_order(db: AsyncSession, order_id: str) -> Optional[Order]:
        result = await db.execute(select(Order).where(Order.id == order_id))
        return result.scalars().first()

    @staticmethod
    async def get_by_checkout_session(db: AsyncSession, checkout_session_id: str) -> Optional[Order]:
        result = await db.execute(
            select(Order).where(Order.checkout_session_id == checkout_session_id)
        )
        return result.scalars().first()

    @staticmethod
    async def list_for_user(db: AsyncSession, user_id: int) -> list[Order]:
        result = await db.execute(
            select(Order).where(Order.user_id == user_id).order_by(Order.created_at.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def list_all(
        db: AsyncSession,
        status: Optional[OrderStatus] = None,
        since: Optional[datetime] = None,
        search: Optional[str] = None,
    ) -> list[Order]:
        stmt = select(Order).join(User, Order.user_id == User.id)
        if status is not None:
            stmt = stmt.where(Order.status == status)
        if since is not None:
            stmt = stmt.where(Order.created_at >= since)
        if search:
            pattern = f"%{search.strip()}%"
            stmt = stmt.where(
                or_(
                    Order.id.ilike(pattern),
                    User.name.ilike(pattern),
                    User.email.ilike(pattern),
                )
            )
        result = await db.execute(stmt.order_by(Order.created_at.desc()))
        return list(result.scalars().all())

    @staticmethod
    async def count_by_status(db: AsyncSession, since: Optional[datetime] = None) -> dict[OrderStatus, int]:
        stmt = select(Order.status, func.count(Order.id)).group_by(Order.status)
        if since is not None:
            stmt = stmt.where(Order.created_at >= since)
        result = await db.execute(stmt)
        counts = {status: 0 for status in OrderStatus}
        for status, count in result.all():
            counts[OrderStatus(status)] = count
        return counts

    @staticmethod
    async def list_since(db: AsyncSession, since: datetime) -> list[Order]:
        result = await db.execute(select(Order).where(Order.created_at >= since))
        return list(result.scalars().all())

    @staticmethod
    async def revenue_summary(db: AsyncSession, since: Optional[datetime] = None) -> tuple[int, float]:
        stmt = select(func.count(Order.id), func.coalesce(func.sum(Order.total), 0))
        if since is not None:
            stmt = stmt.where(Order.created_at >= since)
        count, revenue = (await db.execute(stmt)).one()
        return count, revenue

    @staticmethod
    async def customer_aggregates(
        db: AsyncSession, search: Optional[str] = None
    ) -> list[tuple[User, int, Decimal, datetime]]:
        """Users with at least one order, newest account first, with order count, spend and last order time."""
        stmt = (
            select(
                User,
                func.count(Order.id),
                func.coalesce(func.sum(Order.total), 0),
                func.max(Order.created_at),
            )
            .join(Order, Order.user_id == User.id)
            .group_by(User.id)
            .order_by(User.created_at.desc(), User.id.desc())
        )
        if search:
            pattern = f"%{search.strip()}%"
            stmt = stmt.where(or_(User.name.ilike(pattern), User.email.ilike(pattern)))
        return [tuple(row) for row in (await db.execute(stmt)).all()]

    @staticmethod
    async def recent_for_users(db: AsyncSession, user_ids: list[int], per_user: int = 5) -> dict[int, list[Order]]:
        if not user_ids:
            return {}
        result = await db.execute(
            select(Order).where(Order.user_id.in_(user_ids)).order_by(Order.created_at.desc())
        )
        recent: dict[int, list[Order]] = defaultdict(list)
        for order in result.scalars().all():
            if len(recent[order.user_id]) < per_user:
                recent[order.user_id].append(order)
        return recent

    @staticmethod
    async def top_items(db: AsyncSession, limit: int = 5) -> list[tuple[str, int, float]]:
        quantity = func.sum(OrderItem.quantity).label("quantity")
        stmt = (
            select(OrderItem.name, quantity, func.sum(OrderItem.price * OrderItem.quantity))
            .group_by(OrderItem.name)
            .order_by(quantity.desc(), OrderItem.name)
            .limit(limit)
        )
        return [tuple(row) for row in (await db.execute(stmt)).all()]

    @staticmethod
    async def update_status(db: AsyncSession, order: Order, status: OrderStatus) -> Order:
        order.status = status
        await db.commit()
        return order
