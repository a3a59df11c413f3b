from decimal import Decimal

import pytest

from conftest import auth_headers, create_user, earn


@pytest.mark.asyncio
async def test_payout_request_and_balance(client, test_session, marketer, percentage_product):
    await earn(test_session, marketer.id, percentage_product.id, "50.00")
    await earn(test_session, marketer.id, percentage_product.id, "33.34")
    headers = auth_headers(marketer)

    response = await client.get("/api/payouts/balance", headers=headers)
    assert response.status_code == 200
    assert {k: Decimal(v) for k, v in response.json().items()} == {
        "total_earned": Decimal("25.00"),
        "total_committed": Decimal("0.00"),
        "available": Decimal("25.00"),
    }

    response = await client.post("/api/payouts/request", json={"amount": "25.01"}, headers=headers)
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "insufficient_balance"
    assert body["details"] == {"available": "25.00", "requested": "25.01"}

    response = await client.post(
        "/api/payouts/request",
        json={"amount": "25.00", "payment_method": "bank_transfer", "payment_details": "IBAN DE00"},
        headers=headers,
    )
    assert response.status_code == 201
    payout = response.json()
    assert payout["status"] == "pending"
    assert Decimal(payout["amount"]) == Decimal("25.00")

    response = await client.get("/api/payouts/balance", headers=headers)
    assert Decimal(response.json()["available"]) == Decimal("0.00")

    response = await client.get("/api/payouts/my-payouts", headers=headers)
    assert [p["id"] for p in response.json()] == [payout["id"]]


@pytest.mark.asyncio
async def test_payout_below_minimum_is_invalid_amount(client, test_session, marketer, percentage_product):
    await earn(test_session, marketer.id, percentage_product.id, "100.00")

    response = await client.post("/api/payouts/request", json={"amount": "9.99"}, headers=auth_headers(marketer))

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_amount"


@pytest.mark.asyncio
async def test_admin_processes_payouts(client, test_session, marketer, admin_user, percentage_product):
    await earn(test_session, marketer.id, percentage_product.id, "100.00")
    response = await client.post("/api/payouts/request", json={"amount": "20.00"}, headers=auth_headers(marketer))
    payout_id = response.json()["id"]
    admin = auth_headers(admin_user)

    response = await client.get("/api/admin/payouts", params={"status": "pending"}, headers=admin)
    assert response.status_code == 200
    (row,) = response.json()
    assert row["id"] == payout_id
    assert row["email"] == "marketer@example.com"

    response = await client.put(f"/api/admin/payouts/{payout_id}", json={"status": "rejected"}, headers=admin)
    assert response.status_code == 200
    assert response.json()["status"] == "rejected"
    assert response.json()["processed_at"] is not None

    response = await client.get("/api/payouts/balance", headers=auth_headers(marketer))
    assert Decimal(response.json()["available"]) == Decimal("30.00")

    response = await client.put(f"/api/admin/payouts/{payout_id}", json={"status": "approved"}, headers=admin)
    assert response.status_code == 409
    assert response.json()["error"] == "conflict"

    response = await client.put("/api/admin/payouts/999", json={"status": "approved"}, headers=admin)
    assert response.status_code == 404

    response = await client.put(f"/api/admin/payouts/{payout_id}", json={"status": "cancelled"}, headers=admin)
    assert response.status_code == 422

    response = await client.get("/api/admin/payouts", params={"status": "pending"}, headers=admin)
    assert response.json() == []


@pytest.mark.asyncio
async def test_admin_reports(client, test_session, marketer, admin_user, fixed_product):
    other = await create_user(test_session, "other@example.com", name="Other")
    await earn(test_session, marketer.id, fixed_product.id, "39.00")
    await earn(test_session, other.id, fixed_product.id, "39.00")
    admin = auth_headers(admin_user)

    response = await client.get("/api/admin/users", headers=admin)
    assert response.status_code == 200
    users = {u["email"]: u for u in response.json()}
    assert set(users) == {"marketer@example.com", "other@example.com", "admin@example.com"}
    assert Decimal(users["other@example.com"]["total_earnings"]) == Decimal("15.00")

    response = await client.get("/api/admin/conversions", headers=admin)
    assert response.status_code == 200
    assert len(response.json()) == 2
    assert {c["product_name"] for c in response.json()} == {"Affiliate Marketing Guide"}

    response = await client.get("/api/admin/stats", headers=admin)
    assert response.status_code == 200
    stats = response.json()
    assert stats["total_users"] == 2
    assert stats["total_conversions"] == 2
    assert Decimal(stats["total_revenue"]) == Decimal("78.00")
    assert Decimal(stats["total_commissions"]) == Decimal("30.00")

    response = await client.delete(f"/api/products/{fixed_product.id}", headers=admin)
    assert response.status_code == 409
    assert response.json()["details"] == {"conversions": 2}
