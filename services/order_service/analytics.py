"""Admin dashboard figures. Chart rendering is left to the console."""
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from services.auth_service.repository import UserRepository
from .repository import OrderRepository
from .schemas import DailyRevenue, DashboardOverview, DashboardStats, TopItem


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive timestamps
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def as_money(value) -> float:
    return float(round(Decimal(str(value or 0)), 2))


class DashboardService:
    @staticmethod
    async def build(db: AsyncSession, now: Optional[datetime] = None) -> DashboardStats:
        now = now or datetime.now(timezone.utc)
        today = now.replace(hour=0, minute=0, second=0, microsecond=0)
        last_7_days = today - timedelta(days=7)
        last_30_days = today - timedelta(days=30)

        today_orders, today_revenue = await OrderRepository.revenue_summary(db, today)
        week_orders, week_revenue = await OrderRepository.revenue_summary(db, last_7_days)
        month_orders, month_revenue = await OrderRepository.revenue_summary(db, last_30_days)
        all_orders, all_revenue = await OrderRepository.revenue_summary(db)

        overview = DashboardOverview(
            today_revenue=as_money(today_revenue),
            today_orders=today_orders,
            week_revenue=as_money(week_revenue),
            week_orders=week_orders,
            month_revenue=as_money(month_revenue),
            month_orders=month_orders,
            total_customers=await UserRepository.count(db),
            new_customers_this_week=await UserRepository.count_created_since(db, last_7_days),
            avg_order_value=as_money(Decimal(str(all_revenue)) / all_orders) if all_orders else 0.0,
        )

        status_counts = await OrderRepository.count_by_status(db)

        window_start = today - timedelta(days=6)
        buckets: dict = defaultdict(lambda: [Decimal("0"), 0])
        for order in await OrderRepository.list_since(db, window_start):
            bucket = buckets[as_utc(order.created_at).date()]
            bucket[0] += Decimal(str(order.total))
            bucket[1] += 1

        revenue_by_day = []
        for offset in range(6, -1, -1):
            day = (today - timedelta(days=offset)).date()
            revenue, count = buckets.get(day, (Decimal("0"), 0))
            revenue_by_day.append(DailyRevenue(
                date=day.strftime("%b %d"),
                day=day.strftime("%a"),
                revenue=as_money(revenue),
                orders=count,
            ))

        top_items = [
            TopItem(name=name, quantity=int(quantity), revenue=as_money(revenue))
            for name, quantity, revenue in await OrderRepository.top_items(db, limit=5)
        ]

        return DashboardStats(
            overview=overview,
            status_counts={s.value: n for s, n in status_counts.items()},
            revenue_by_day=revenue_by_day,
            top_items=top_items,
        )
