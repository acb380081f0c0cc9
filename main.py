from fastapi import FastAPI
from shared.config.database import engine, Base

# IMPORTANT: import models so they register with Base
from services.auth_service import models as auth_models  # noqa: F401
from services.menu_service import models as menu_models  # noqa: F401
from services.order_service import models as order_models  # noqa: F401

from services.auth_service.main import auth_app
from services.menu_service.main import menu_app
from services.order_service.main import order_app, admin_app
from services.payment_service.main import payment_app

app = FastAPI(title="Restaurant Ordering")

@app.on_event("startup")
async def startup_event():
    async with engine.begin() as conn:
        # Create all tables
        await conn.run_sync(Base.metadata.create_all)

@app.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "restaurant", "status": "running"}

app.mount("/auth", auth_app)
app.mount("/menu", menu_app)
app.mount("/orders", order_app)
app.mount("/admin", admin_app)
app.mount("/payments", payment_app)
