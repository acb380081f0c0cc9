from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from .models import ADDRESS_MAX, IMAGE_MAX, ITEM_NAME_MAX, PHONE_MAX
from .status import OrderStatus


class OrderItemResponse(BaseModel):
    name: str
    price: float
    quantity: int
    image: Optional[str] = None

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    id: str
    user_id: int
    items: List[OrderItemResponse]
    subtotal: float
    tax: float
    delivery_fee: float
    total: float
    address: str
    phone: str
    notes: Optional[str] = None
    status: OrderStatus
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CustomerSummary(BaseModel):
    id: int
    name: Optional[str] = None
    email: str
    phone: Optional[str] = None
    address: Optional[str] = None

    class Config:
        from_attributes = True


class AdminOrderResponse(OrderResponse):
    customer: CustomerSummary


class AdminOrderList(BaseModel):
    orders: List[AdminOrderResponse]
    stats: dict[str, int]


class StatusUpdate(BaseModel):
    status: OrderStatus

    @field_validator("status", mode="before")
    @classmethod
    def normalise_status(cls, v):
        return v.strip().upper() if isinstance(v, str) else v


class StatusChangeResponse(BaseModel):
    id: str
    status: OrderStatus
    updated_at: datetime
    override: bool = False


class DirectOrderItem(BaseModel):
    name: str = Field(..., min_length=1, max_length=ITEM_NAME_MAX)
    price: Decimal = Field(..., ge=0)
    quantity: int = Field(..., ge=1)
    image: Optional[str] = Field(default=None, max_length=IMAGE_MAX)


class DirectOrderCreate(BaseModel):
    """Internal, non-payment order creation. Orders start in PENDING."""
    user_id: int
    items: List[DirectOrderItem] = Field(..., min_length=1)
    tax: Decimal = Field(default=Decimal("0"), ge=0)
    delivery_fee: Decimal = Field(default=Decimal("0"), ge=0)
    address: str = Field(..., min_length=1, max_length=ADDRESS_MAX)
    phone: str = Field(..., min_length=1, max_length=PHONE_MAX)
    notes: Optional[str] = None


class DailyRevenue(BaseModel):
    date: str
    day: str
    revenue: float
    orders: int


class TopItem(BaseModel):
    name: str
    quantity: int
    revenue: float


class DashboardOverview(BaseModel):
    today_revenue: float
    today_orders: int
    week_revenue: float
    week_orders: int
    month_revenue: float
    month_orders: int
    total_customers: int
    new_customers_this_week: int
    avg_order_value: float


class DashboardStats(BaseModel):
    overview: DashboardOverview
    status_counts: dict[str, int]
    revenue_by_day: List[DailyRevenue]
    top_items: List[TopItem]


class CustomerOrderSummary(BaseModel):
    id: str
    created_at: datetime
    items: int
    total: float
    status: OrderStatus


class AdminCustomer(BaseModel):
    id: int
    name: str
    email: str
    phone: str
    address: str
    total_orders: int
    total_spent: float
    last_order: Optional[datetime] = None
    joined_at: Optional[datetime] = None
    status: Literal["active", "inactive"]
    orders: List[CustomerOrderSummary]


class CustomerStats(BaseModel):
    total_customers: int
    active_customers: int
    inactive_customers: int
    total_revenue: float
    total_orders: int
    avg_order_value: float


class AdminCustomerList(BaseModel):
    customers: List[AdminCustomer]
    stats: CustomerStats


class CustomerUpdate(BaseModel):
    """Contact details an admin may correct. Omitted fields are left alone."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=PHONE_MAX)
    address: Optional[str] = Field(default=None, max_length=ADDRESS_MAX)


class CustomerUpdateResponse(BaseModel):
    id: int
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
