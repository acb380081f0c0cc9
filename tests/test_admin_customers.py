from datetime import datetime, timedelta, timezone
from decimal import Decimal

from conftest import auth_headers
from services.order_service.customers import customer_status
from services.order_service.status import OrderStatus


def test_customer_status_uses_thirty_day_window():
    now = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)

    assert customer_status(now - timedelta(days=29), now) == "active"
    assert customer_status(now - timedelta(days=31), now) == "inactive"
    # SQLite returns naive timestamps
    assert customer_status(datetime(2026, 10, 1, 9, 0), now) == "active"
    assert customer_status(None, now) == "inactive"


async def test_list_includes_only_customers_with_orders(client, admin, customer, other_customer, make_order):
    await make_order(customer, OrderStatus.DELIVERED)
    await make_order(customer)
    await make_order(other_customer, created_at=datetime.now(timezone.utc) - timedelta(days=40))

    resp = await client.get("/admin/customers", headers=auth_headers(admin))

    assert resp.status_code == 200
    body = resp.json()
    by_email = {c["email"]: c for c in body["customers"]}
    assert set(by_email) == {customer.email, other_customer.email}

    alice = by_email[customer.email]
    assert alice["name"] == "Alice Gurung"
    assert alice["total_orders"] == 2
    assert alice["total_spent"] == 55.34
    assert alice["status"] == "active"
    assert alice["last_order"] is not None
    assert [(o["items"], o["total"]) for o in alice["orders"]] == [(1, 27.67), (1, 27.67)]
    assert {o["status"] for o in alice["orders"]} == {"PENDING", "DELIVERED"}

    assert by_email[other_customer.email]["status"] == "inactive"

    assert body["stats"] == {
        "total_customers": 2,
        "active_customers": 1,
        "inactive_customers": 1,
        "total_revenue": 83.01,
        "total_orders": 3,
        "avg_order_value": 27.67,
    }


async def test_list_shows_five_most_recent_orders(client, admin, customer, make_order):
    now = datetime.now(timezone.utc)
    placed = [await make_order(customer, created_at=now - timedelta(hours=h)) for h in range(6)]

    resp = await client.get("/admin/customers", headers=auth_headers(admin))

    alice = resp.json()["customers"][0]
    assert alice["total_orders"] == 6
    assert [o["id"] for o in alice["orders"]] == [o.id for o in placed[:5]]


async def test_list_search_and_status_filters(client, admin, customer, other_customer, make_order):
    await make_order(customer)
    await make_order(
        other_customer,
        total=Decimal("15.79"),
        created_at=datetime.now(timezone.utc) - timedelta(days=40),
    )

    searched = await client.get("/admin/customers", params={"search": "TAMANG"}, headers=auth_headers(admin))
    by_email = await client.get("/admin/customers", params={"search": "alice@"}, headers=auth_headers(admin))
    active = await client.get("/admin/customers", params={"status": "active"}, headers=auth_headers(admin))
    inactive = await client.get("/admin/customers", params={"status": "inactive"}, headers=auth_headers(admin))
    everyone = await client.get("/admin/customers", params={"status": "all"}, headers=auth_headers(admin))

    assert [c["name"] for c in searched.json()["customers"]] == ["Bob Tamang"]
    assert [c["name"] for c in by_email.json()["customers"]] == ["Alice Gurung"]
    assert [c["name"] for c in active.json()["customers"]] == ["Alice Gurung"]
    assert active.json()["stats"]["total_revenue"] == 27.67
    assert [c["name"] for c in inactive.json()["customers"]] == ["Bob Tamang"]
    assert inactive.json()["stats"]["avg_order_value"] == 15.79
    assert everyone.json()["stats"]["total_customers"] == 2


async def test_list_rejects_unknown_status_filter(client, admin):
    resp = await client.get("/admin/customers", params={"status": "dormant"}, headers=auth_headers(admin))

    assert resp.status_code == 422


async def test_empty_directory_has_zero_stats(client, admin):
    resp = await client.get("/admin/customers", headers=auth_headers(admin))

    assert resp.json()["customers"] == []
    assert resp.json()["stats"]["avg_order_value"] == 0.0


async def test_customer_detail_lists_every_order(client, admin, customer, make_order):
    now = datetime.now(timezone.utc)
    for h in range(7):
        await make_order(customer, created_at=now - timedelta(hours=h))

    resp = await client.get(f"/admin/customers/{customer.id}", headers=auth_headers(admin))

    assert resp.status_code == 200
    detail = resp.json()
    assert detail["email"] == customer.email
    assert detail["total_orders"] == 7
    assert len(detail["orders"]) == 7
    assert detail["total_spent"] == 193.69
    assert detail["status"] == "active"


async def test_customer_detail_without_orders(client, admin, other_customer):
    resp = await client.get(f"/admin/customers/{other_customer.id}", headers=auth_headers(admin))

    assert resp.status_code == 200
    detail = resp.json()
    assert detail["total_orders"] == 0
    assert detail["total_spent"] == 0.0
    assert detail["last_order"] is None
    assert detail["status"] == "inactive"
    assert detail["orders"] == []


async def test_customer_detail_unknown_id(client, admin):
    resp = await client.get("/admin/customers/4242", headers=auth_headers(admin))

    assert resp.status_code == 404
    assert resp.json()["detail"] == "Customer not found"


async def test_admin_updates_customer_contact_details(client, admin, customer):
    resp = await client.patch(
        f"/admin/customers/{customer.id}",
        json={"phone": "555-0199", "address": "7 Thamel Marg"},
        headers=auth_headers(admin),
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["id"] == customer.id
    assert body["name"] == "Alice Gurung"
    assert (body["phone"], body["address"]) == ("555-0199", "7 Thamel Marg")
    assert body["updated_at"] is not None

    detail = await client.get(f"/admin/customers/{customer.id}", headers=auth_headers(admin))
    assert detail.json()["phone"] == "555-0199"
    assert detail.json()["address"] == "7 Thamel Marg"


async def test_customer_update_validation_and_unknown_id(client, admin, customer):
    too_long = await client.patch(
        f"/admin/customers/{customer.id}", json={"phone": "5" * 58}, headers=auth_headers(admin)
    )
    blank_name = await client.patch(
        f"/admin/customers/{customer.id}", json={"name": ""}, headers=auth_headers(admin)
    )
    missing = await client.patch("/admin/customers/4242", json={"name": "Nobody"}, headers=auth_headers(admin))

    assert too_long.status_code == 422
    assert blank_name.status_code == 422
    assert missing.status_code == 404


async def test_customer_routes_require_admin_role(client, customer, other_customer):
    listing = await client.get("/admin/customers", headers=auth_headers(customer))
    detail = await client.get(f"/admin/customers/{other_customer.id}", headers=auth_headers(customer))
    patch = await client.patch(
        f"/admin/customers/{other_customer.id}", json={"name": "Mallory"}, headers=auth_headers(customer)
    )
    anonymous = await client.get("/admin/customers")

    assert listing.status_code == 403
    assert listing.json()["error"] == "AdminRequired"
    assert detail.status_code == 403
    assert patch.status_code == 403
    assert anonymous.status_code == 401
