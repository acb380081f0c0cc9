from datetime import datetime
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import User


class UserRepository:

    @staticmethod
    async def create(db: AsyncSession, user: User) -> User:
        db.add(user)
        await db.commit()
        await db.refresh(user)
        return user

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: int) -> Optional[User]:
        result = await db.execute(select(User).where(User.id == user_id))
        return result.scalars().first()

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> Optional[User]:
        result = await db.execute(select(User).where(func.lower(User.email) == email.lower()))
        return result.scalars().first()

    @staticmethod
    async def count(db: AsyncSession) -> int:
        result = await db.execute(select(func.count(User.id)))
        return result.scalar_one()

    @staticmethod
    async def count_created_since(db: AsyncSession, since: datetime) -> int:
        result = await db.execute(select(func.count(User.id)).where(User.created_at >= since))
        return result.scalar_one()

    @staticmethod
    async def update(db: AsyncSession, user: User, fields: dict) -> User:
        for key, value in fields.items():
            setattr(user, key, value)
        await db.commit()
        await db.refresh(user)
        return user
