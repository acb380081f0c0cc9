from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from services.order_service.models import ADDRESS_MAX, IMAGE_MAX, ITEM_NAME_MAX, PHONE_MAX
from shared.money import amounts_match


class CheckoutItem(BaseModel):
    name: str = Field(..., min_length=1, max_length=ITEM_NAME_MAX)
    price: Decimal = Field(..., ge=0)
    quantity: int = Field(..., ge=1)
    image: Optional[str] = Field(default=None, max_length=IMAGE_MAX)


class DeliveryInfo(BaseModel):
    address: str = Field(..., min_length=1, max_length=ADDRESS_MAX)
    phone: str = Field(..., min_length=1, max_length=PHONE_MAX)
    instructions: Optional[str] = None


class CheckoutRequest(BaseModel):
    items: List[CheckoutItem] = Field(..., min_length=1)
    delivery_info: DeliveryInfo
    subtotal: Decimal = Field(..., ge=0)
    tax: Decimal = Field(..., ge=0)
    delivery_fee: Decimal = Field(..., ge=0)
    total: Decimal = Field(..., ge=0)

    @model_validator(mode="after")
    def check_totals(self):
        items_sum = sum(item.price * item.quantity for item in self.items)
        if not amounts_match(items_sum, self.subtotal):
            raise ValueError(f"subtotal {self.subtotal} does not match items ({items_sum})")
        if not amounts_match(self.subtotal + self.tax + self.delivery_fee, self.total):
            raise ValueError("total must equal subtotal + tax + delivery_fee")
        return self


class CheckoutSessionResponse(BaseModel):
    session_id: str
    url: str


class VerifySessionRequest(BaseModel):
    session_id: str = Field(..., min_length=1)


class VerifySessionResponse(BaseModel):
    success: bool = True
    order_id: str
    created: bool
    message: str


class WebhookAck(BaseModel):
    received: bool = True
    order_id: Optional[str] = None
    created: Optional[bool] = None
    error: Optional[str] = None
