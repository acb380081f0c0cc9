from fastapi import FastAPI
from shared.errors import register_exception_handlers
from shared.observability import setup_observability
from .router import router, internal_router, admin_router, public_router
from .models import Order, OrderItem  # noqa: F401 - registers models with Base

order_app = FastAPI(title="Order Service", version="1.0.0")

# --- OBSERVABILITY BOOTSTRAP ---
setup_observability(order_app, "order_service")
register_exception_handlers(order_app)

order_app.include_router(public_router)
order_app.include_router(internal_router)
order_app.include_router(router)

admin_app = FastAPI(title="Admin Console API", version="1.0.0")

setup_observability(admin_app, "admin_service")
register_exception_handlers(admin_app)

admin_app.include_router(public_router)
admin_app.include_router(admin_router)
