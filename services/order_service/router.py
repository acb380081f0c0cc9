from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.security import Principal, get_current_principal, require_admin, verify_internal_api_key
from .analytics import DashboardService
from .customers import CustomerDirectory
from .schemas import (
    AdminCustomer,
    AdminCustomerList,
    AdminOrderList,
    AdminOrderResponse,
    CustomerUpdate,
    CustomerUpdateResponse,
    DashboardStats,
    DirectOrderCreate,
    OrderResponse,
    StatusChangeResponse,
    StatusUpdate,
)
from .service import OrderLifecycle
from .status import OrderStatus

router = APIRouter()
internal_router = APIRouter(dependencies=[Depends(verify_internal_api_key)])
admin_router = APIRouter(dependencies=[Depends(require_admin)])
public_router = APIRouter()  # For any public endpoints (e.g. health check)

@public_router.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "order", "status": "running"}


# --- Customer ---

@router.get("/", response_model=list[OrderResponse])
async def list_my_orders(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await OrderLifecycle.list_for_customer(db, principal.user_id)

@router.get("/{order_id}", response_model=OrderResponse)
async def get_my_order(
    order_id: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await OrderLifecycle.get_for_customer(db, order_id, principal.user_id)

@router.put("/{order_id}", response_model=OrderResponse)
async def update_my_order(
    order_id: str,
    payload: StatusUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    # Customers may only cancel their own pending orders
    return await OrderLifecycle.customer_transition(db, order_id, principal.user_id, payload.status)


# --- Internal (non-payment) creation path ---

@internal_router.post("/internal", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_direct_order(payload: DirectOrderCreate, db: AsyncSession = Depends(get_db)):
    return await OrderLifecycle.create_direct(db, payload)


# --- Admin console ---

@admin_router.get("/orders", response_model=AdminOrderList)
async def admin_list_orders(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    date_range: Optional[Literal["today", "yesterday", "week", "month"]] = Query(default=None),
    search: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_db),
):
    order_status = None
    if status_filter and status_filter.lower() != "all":
        try:
            order_status = OrderStatus.parse(status_filter)
        except ValueError:
            raise HTTPException(status_code=422, detail=f"Unknown order status: {status_filter}")

    orders, stats = await OrderLifecycle.admin_list(db, order_status, date_range, search)
    return AdminOrderList(
        orders=[AdminOrderResponse.model_validate(o) for o in orders],
        stats=stats,
    )

@admin_router.get("/orders/{order_id}", response_model=AdminOrderResponse)
async def admin_get_order(order_id: str, db: AsyncSession = Depends(get_db)):
    return await OrderLifecycle.get_or_404(db, order_id)

@admin_router.patch("/orders/{order_id}", response_model=StatusChangeResponse)
async def admin_update_status(order_id: str, payload: StatusUpdate, db: AsyncSession = Depends(get_db)):
    order, override = await OrderLifecycle.admin_set_status(db, order_id, payload.status)
    return StatusChangeResponse(id=order.id, status=order.status, updated_at=order.updated_at, override=override)

# Orders are never deleted; cancelling keeps the history
@admin_router.delete("/orders/{order_id}", response_model=StatusChangeResponse)
async def admin_cancel_order(order_id: str, db: AsyncSession = Depends(get_db)):
    order = await OrderLifecycle.admin_cancel(db, order_id)
    return StatusChangeResponse(id=order.id, status=order.status, updated_at=order.updated_at)

@admin_router.get("/stats", response_model=DashboardStats)
async def admin_dashboard(db: AsyncSession = Depends(get_db)):
    return await DashboardService.build(db)

@admin_router.get("/customers", response_model=AdminCustomerList)
async def admin_list_customers(
    search: Optional[str] = Query(default=None),
    status_filter: Optional[Literal["all", "active", "inactive"]] = Query(default=None, alias="status"),
    db: AsyncSession = Depends(get_db),
):
    return await CustomerDirectory.list_customers(
        db, search=search, status=None if status_filter == "all" else status_filter
    )

@admin_router.get("/customers/{customer_id}", response_model=AdminCustomer)
async def admin_get_customer(customer_id: int, db: AsyncSession = Depends(get_db)):
    return await CustomerDirectory.get_customer(db, customer_id)

@admin_router.patch("/customers/{customer_id}", response_model=CustomerUpdateResponse)
async def admin_update_customer(customer_id: int, payload: CustomerUpdate, db: AsyncSession = Depends(get_db)):
    return await CustomerDirectory.update_customer(db, customer_id, payload)
