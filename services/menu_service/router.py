from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.errors import NotFound
from .repository import MenuRepository
from .schemas import MenuItemResponse

router = APIRouter()
public_router = APIRouter()  # For any public endpoints (e.g. health check)

@public_router.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "menu", "status": "running"}


@router.get("/", response_model=list[MenuItemResponse])
async def list_menu(
    category: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_db)
):
    return await MenuRepository.list_available(db, category)


@router.get("/{slug}", response_model=MenuItemResponse)
async def get_menu_item(slug: str, db: AsyncSession = Depends(get_db)):
    item = await MenuRepository.get_by_slug(db, slug)
    if not item:
        raise NotFound("Menu item not found")
    return item
