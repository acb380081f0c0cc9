from fastapi import FastAPI
from shared.errors import register_exception_handlers
from shared.observability import setup_observability
from .router import router, public_router
from .models import MenuItem  # noqa: F401 - registers model with SQLAlchemy Base

menu_app = FastAPI(
    title="Menu Service",
    version="1.0.0"
)

setup_observability(menu_app, "menu_service")
register_exception_handlers(menu_app)

menu_app.include_router(public_router)
menu_app.include_router(router)
