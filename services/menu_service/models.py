from sqlalchemy import Boolean, Column, Integer, Numeric, String, Text
from shared.config.database import Base

class MenuItem(Base):
    __tablename__ = "menu_items"

    id = Column(Integer, primary_key=True, index=True)
    slug = Column(String(120), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    category = Column(String(50), nullable=False, index=True) # momos, sides, drinks, desserts
    image = Column(String(500), nullable=True)
    is_available = Column(Boolean, default=True, nullable=False)
