from fastapi import FastAPI

from shared.errors import register_exception_handlers
from shared.observability.setup import setup_observability

from .models import User  # noqa: F401 - registers model with SQLAlchemy Base
from .router import router, public_router

auth_app = FastAPI(
    title="Auth Service",
    version="2.0.0",
    description="Customer directory: register, login, profile lookup.",
)

setup_observability(auth_app, "auth_service")
register_exception_handlers(auth_app)

auth_app.include_router(router)
auth_app.include_router(public_router)
