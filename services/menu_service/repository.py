from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from .models import MenuItem

class MenuRepository:

    @staticmethod
    async def list_available(db: AsyncSession, category: Optional[str] = None):
        stmt = select(MenuItem).where(MenuItem.is_available.is_(True))
        if category:
            stmt = stmt.where(MenuItem.category == category.lower())
        result = await db.execute(stmt.order_by(MenuItem.category, MenuItem.name))
        return result.scalars().all()

    @staticmethod
    async def get_by_slug(db: AsyncSession, slug: str):
        result = await db.execute(select(MenuItem).where(MenuItem.slug == slug))
        return result.scalars().first()
