"""Integration tests for the ledger endpoints against PostgreSQL.

Pre-condition: a migrated PostgreSQL at DATABASE_URL (alembic upgrade head).
"""

import asyncio
import uuid
from decimal import Decimal

import pytest
from httpx import AsyncClient

pytestmark = [pytest.mark.integration, pytest.mark.asyncio(loop_scope="session")]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _unique_person() -> dict[str, str]:
    uid = uuid.uuid4().hex[:8]
    return {
        "username": f"it_{uid}",
        "email": f"it_{uid}@example.com",
        "password": "TestPass1",
        "full_name": f"Integration {uid}",
    }


async def _register_and_login(client: AsyncClient) -> tuple[dict[str, str], dict[str, str]]:
    """Register a fresh person; return (person payload, login data)."""
    person = _unique_person()
    resp = await client.post("/api/v1/auth/register", json=person)
    assert resp.status_code == 201, resp.text
    resp = await client.post(
        "/api/v1/auth/login",
        json={"identifier": person["username"], "password": person["password"]},
    )
    assert resp.status_code == 200, resp.text
    return person, resp.json()["data"]


async def _headers(client: AsyncClient) -> dict[str, str]:
    _, tokens = await _register_and_login(client)
    return {"Authorization": f"Bearer {tokens['access_token']}"}


async def _record(
    client: AsyncClient, headers: dict[str, str], amount: str, direction: str, **extra: str
) -> dict:
    resp = await client.post(
        "/api/v1/transactions",
        json={"amount": amount, "direction": direction, "description": "it", **extra},
        headers=headers,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


async def _balance(client: AsyncClient, headers: dict[str, str]) -> Decimal:
    resp = await client.get("/api/v1/transactions/balance", headers=headers)
    return Decimal(resp.json()["data"]["balance"])


class TestBalanceFlow:
    async def test_new_person_has_zero_balance(self, client: AsyncClient) -> None:
        headers = await _headers(client)
        assert await _balance(client, headers) == Decimal("0.00")

    async def test_credit_debit_reverse(self, client: AsyncClient) -> None:
        headers = await _headers(client)
        await _record(client, headers, "50.00", "CREDIT")
        debit = await _record(client, headers, "20.00", "DEBIT")
        assert debit["balance"] == "30.00"

        tx_id = debit["transaction"]["id"]
        resp = await client.post(
            f"/api/v1/transactions/{tx_id}/reverse",
            json={"reason": "refunded"},
            headers=headers,
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["balance"] == "50.00"

        again = await client.post(f"/api/v1/transactions/{tx_id}/reverse", headers=headers)
        assert again.status_code == 409
        assert await _balance(client, headers) == Decimal("50.00")

        listed = await client.get("/api/v1/transactions", headers=headers)
        items = listed.json()["data"]["items"]
        assert len(items) == 2
        assert items[0]["reversed"] is True

    async def test_overdraft_is_allowed(self, client: AsyncClient) -> None:
        headers = await _headers(client)
        data = await _record(client, headers, "12.34", "DEBIT")
        assert data["balance"] == "-12.34"

    async def test_concurrent_writes_lose_nothing(self, client: AsyncClient) -> None:
        headers = await _headers(client)
        await asyncio.gather(
            *(_record(client, headers, "1.10", "CREDIT") for _ in range(20)),
            *(_record(client, headers, "0.10", "DEBIT") for _ in range(10)),
        )
        assert await _balance(client, headers) == Decimal("21.00")

        summary = await client.get("/api/v1/transactions/summary", headers=headers)
        data = summary.json()["data"]
        assert Decimal(data["net"]) == Decimal("21.00")
        assert data["count"] == 30


class TestOwnership:
    async def test_cannot_touch_other_persons_transactions(self, client: AsyncClient) -> None:
        alice = await _headers(client)
        bob = await _headers(client)
        tx = (await _record(client, alice, "10.00", "CREDIT"))["transaction"]

        assert (
            await client.get(f"/api/v1/transactions/{tx['id']}", headers=bob)
        ).status_code == 404
        resp = await client.post(f"/api/v1/transactions/{tx['id']}/reverse", headers=bob)
        assert resp.status_code == 404
        assert await _balance(client, alice) == Decimal("10.00")

        bob_list = await client.get("/api/v1/transactions", headers=bob)
        assert bob_list.json()["data"]["items"] == []


class TestReports:
    async def test_categories_and_monthly(self, client: AsyncClient) -> None:
        headers = await _headers(client)
        await _record(
            client, headers, "30.00", "DEBIT",
            category="Food", occurred_at="2026-02-10T12:00:00Z",
        )
        await _record(
            client, headers, "100.00", "CREDIT",
            category="Salary", occurred_at="2026-02-01T00:00:00Z",
        )

        cats = await client.get("/api/v1/transactions/categories", headers=headers)
        assert cats.json()["data"]["categories"] == ["Food", "Salary"]

        breakdown = await client.get(
            "/api/v1/transactions/categories/breakdown?year=2026&month=2", headers=headers
        )
        assert [c["category"] for c in breakdown.json()["data"]] == ["Food"]

        report = await client.get(
            "/api/v1/transactions/reports/monthly?year=2026", headers=headers
        )
        months = report.json()["data"]
        assert len(months) == 12
        assert Decimal(months[1]["net"]) == Decimal("70.00")
        assert Decimal(months[0]["net"]) == Decimal("0")
