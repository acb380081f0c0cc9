from typing import Optional

from pydantic import BaseModel

class MenuItemResponse(BaseModel):
    id: int
    slug: str
    name: str
    description: Optional[str] = None
    price: float
    category: str
    image: Optional[str] = None
    is_available: bool

    class Config:
        from_attributes = True
