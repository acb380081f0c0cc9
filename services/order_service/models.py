import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from shared.config.database import Base
from services.auth_service.models import User  # noqa: F401 - resolves the customer relationship
from .status import OrderStatus

# Column sizes; checkout validation and reconciliation clamp to these
ADDRESS_MAX = 500
PHONE_MAX = 50
ITEM_NAME_MAX = 255
IMAGE_MAX = 500


def _utcnow():
    return datetime.now(timezone.utc)


class Order(Base):
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    subtotal = Column(Numeric(10, 2), nullable=False)
    tax = Column(Numeric(10, 2), nullable=False)
    delivery_fee = Column(Numeric(10, 2), nullable=False, default=0)
    total = Column(Numeric(10, 2), nullable=False)
    address = Column(String(ADDRESS_MAX), nullable=False)
    phone = Column(String(PHONE_MAX), nullable=False)
    notes = Column(Text, nullable=True)
    # Idempotency key for payment-backed orders; NULL for direct orders
    checkout_session_id = Column(String(255), unique=True, nullable=True)
    status = Column(
        Enum(OrderStatus, name="order_status", native_enum=False, length=20),
        nullable=False,
        default=OrderStatus.PENDING,
        index=True,
    )
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    items = relationship(
        "OrderItem", back_populates="order", lazy="selectin", cascade="all, delete-orphan"
    )
    customer = relationship("User", lazy="selectin")


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(String(36), ForeignKey("orders.id"), nullable=False, index=True)
    name = Column(String(ITEM_NAME_MAX), nullable=False)
    price = Column(Numeric(10, 2), nullable=False) # unit price at purchase time
    quantity = Column(Integer, nullable=False)
    image = Column(String(IMAGE_MAX), nullable=True)

    order = relationship("Order", back_populates="items")
