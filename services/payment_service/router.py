from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.security import Principal, get_current_principal, limiter

from .gateway import get_gateway
from .reconciliation import ReconciliationService
from .schemas import (
    CheckoutRequest,
    CheckoutSessionResponse,
    VerifySessionRequest,
    VerifySessionResponse,
    WebhookAck,
)
from .service import CheckoutService

router = APIRouter()
public_router = APIRouter()  # For any public endpoints (e.g. health check)

@public_router.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "payment", "status": "running"}


@router.post("/create-checkout-session", response_model=CheckoutSessionResponse)
@limiter.limit("10/minute")
async def create_checkout_session(
    request: Request,                          # REQUIRED: slowapi needs this to check IP/Headers
    payload: CheckoutRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    gateway=Depends(get_gateway),
):
    return await CheckoutService(gateway).create_checkout_session(db, principal.user_id, payload)


@router.post("/verify-session", response_model=VerifySessionResponse)
@limiter.limit("20/minute")
async def verify_session(
    request: Request,
    payload: VerifySessionRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    gateway=Depends(get_gateway),
):
    result = await ReconciliationService(gateway).verify_session(db, payload.session_id, principal.user_id)
    return VerifySessionResponse(
        order_id=result.order.id,
        created=result.created,
        message="Order created successfully" if result.created else "Order already exists",
    )


@router.post("/webhook", response_model=WebhookAck)
async def payment_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(default=None, alias="stripe-signature"),
    db: AsyncSession = Depends(get_db),
    gateway=Depends(get_gateway),
):
    # Signature verification needs the raw body
    payload = await request.body()
    return await ReconciliationService(gateway).handle_notification(db, payload, stripe_signature)
