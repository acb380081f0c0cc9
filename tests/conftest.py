import json
import os
import tempfile

# Configure the environment before any application module is imported
_DB_DIR = tempfile.mkdtemp(prefix="restaurant-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["INTERNAL_API_KEY"] = "test-internal-key"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["TRACING_ENABLED"] = "false"
os.environ["APP_URL"] = "http://storefront.test"

from decimal import Decimal  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402

from main import app  # noqa: E402
from services.auth_service.models import User  # noqa: E402
from services.order_service.models import Order, OrderItem  # noqa: E402
from services.order_service.status import OrderStatus  # noqa: E402
from services.payment_service.gateway import (  # noqa: E402
    CheckoutRedirect,
    GatewayEvent,
    GatewayLineItem,
    GatewaySession,
    get_gateway,
)
from services.payment_service.main import payment_app  # noqa: E402
from shared.config.database import AsyncSessionLocal, Base, engine  # noqa: E402
from shared.errors import NotFound, UpstreamFailure  # noqa: E402
from shared.security import create_access_token  # noqa: E402

INTERNAL_KEY = "test-internal-key"
VALID_SIGNATURE = "t=1,v1=valid"


class FakeGateway:
    """In-memory stand-in for the hosted checkout provider."""

    def __init__(self):
        self.sessions: dict[str, GatewaySession] = {}
        self.created: list[dict] = []
        self.fail_create = False

    async def create_checkout_session(self, line_items, success_url, cancel_url, customer_email, metadata):
        if self.fail_create:
            raise UpstreamFailure("Failed to create checkout session")
        session_id = f"cs_test_{len(self.created) + 1}"
        self.created.append({
            "line_items": line_items,
            "success_url": success_url,
            "cancel_url": cancel_url,
            "customer_email": customer_email,
            "metadata": metadata,
        })
        self.sessions[session_id] = GatewaySession(
            session_id=session_id,
            payment_status="unpaid",
            amount_total=sum(li.unit_amount * li.quantity for li in line_items),
            customer_email=customer_email,
            line_items=[
                GatewayLineItem(description=li.name, amount_total=li.unit_amount * li.quantity, quantity=li.quantity)
                for li in line_items
            ],
            metadata=metadata,
        )
        return CheckoutRedirect(session_id=session_id, redirect_url=f"https://checkout.gateway.test/{session_id}")

    def add_session(self, session: GatewaySession) -> GatewaySession:
        self.sessions[session.session_id] = session
        return session

    def pay(self, session_id: str) -> None:
        self.sessions[session_id] = self.sessions[session_id].model_copy(update={"payment_status": "paid"})

    async def retrieve_session(self, session_id):
        if session_id not in self.sessions:
            raise NotFound(f"Checkout session {session_id} not found")
        return self.sessions[session_id]

    def construct_event(self, payload, signature):
        if signature != VALID_SIGNATURE:
            raise UpstreamFailure("Webhook signature verification failed", status_code=400)
        data = json.loads(payload)
        return GatewayEvent(
            event_id=data.get("id"),
            event_type=data["type"],
            object_id=data["data"]["object"].get("id"),
        )


def webhook_body(event_type: str, object_id: str) -> bytes:
    return json.dumps({
        "id": "evt_test",
        "type": event_type,
        "data": {"object": {"id": object_id}},
    }).encode()


def auth_headers(user: User) -> dict:
    token = create_access_token({"sub": str(user.id), "role": user.role})
    return {"Authorization": f"Bearer {token}"}


def paid_session(session_id: str, email: str, **overrides) -> GatewaySession:
    """A paid session shaped like the one checkout creates for $8×2 + $5×1."""
    items = [
        {"name": "Chicken Momo", "price": 8.0, "quantity": 2, "image": "/img/chicken.jpg"},
        {"name": "Veg Momo", "price": 5.0, "quantity": 1, "image": None},
    ]
    fields = dict(
        session_id=session_id,
        payment_status="paid",
        amount_total=2767,
        customer_email=email,
        line_items=[
            GatewayLineItem(description="Chicken Momo", amount_total=1600, quantity=2),
            GatewayLineItem(description="Veg Momo", amount_total=500, quantity=1),
            GatewayLineItem(description="Tax", amount_total=168, quantity=1),
            GatewayLineItem(description="Delivery Fee", amount_total=499, quantity=1),
        ],
        metadata={
            "userEmail": email,
            "deliveryAddress": "12 Himalaya Rd",
            "deliveryPhone": "555-0101",
            "deliveryInstructions": "Ring twice",
            "subtotal": "21.00",
            "tax": "1.68",
            "deliveryFee": "4.99",
            "total": "27.67",
            "items": json.dumps(items),
        },
    )
    fields.update(overrides)
    return GatewaySession(**fields)


@pytest.fixture
async def database():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    # Pooled aiosqlite connections are bound to this test's event loop
    await engine.dispose()


@pytest.fixture
async def db(database):
    async with AsyncSessionLocal() as session:
        yield session


@pytest.fixture
def gateway():
    fake = FakeGateway()
    payment_app.dependency_overrides[get_gateway] = lambda: fake
    yield fake
    payment_app.dependency_overrides.clear()


@pytest.fixture
async def client(database):
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as c:
        yield c


async def _create_user(db, email, name, role="CUSTOMER") -> User:
    user = User(email=email, name=name, phone="555-0101", hashed_password="not-used", role=role)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest.fixture
async def customer(db):
    return await _create_user(db, "alice@momohouse.com", "Alice Gurung")


@pytest.fixture
async def other_customer(db):
    return await _create_user(db, "bob@momohouse.com", "Bob Tamang")


@pytest.fixture
async def admin(db):
    return await _create_user(db, "chef@momohouse.com", "Head Chef", role="ADMIN")


@pytest.fixture
def make_order(db):
    async def _make(user: User, status: OrderStatus = OrderStatus.PENDING, **fields) -> Order:
        values = dict(
            user_id=user.id,
            subtotal=Decimal("21.00"),
            tax=Decimal("1.68"),
            delivery_fee=Decimal("4.99"),
            total=Decimal("27.67"),
            address="12 Himalaya Rd",
            phone="555-0101",
            status=status,
            items=[OrderItem(name="Chicken Momo", price=Decimal("8.00"), quantity=2)],
        )
        values.update(fields)
        order = Order(**values)
        db.add(order)
        await db.commit()
        return order

    return _make
