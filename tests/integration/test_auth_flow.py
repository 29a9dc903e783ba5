"""Integration tests for registration, login, refresh and logout.

Pre-condition: a migrated PostgreSQL at DATABASE_URL (alembic upgrade head).
Run with: pytest -m integration
"""

import uuid

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


class TestRegister:
    async def test_register_returns_person_without_digest(self, client: AsyncClient) -> None:
        person = _unique_person()
        resp = await client.post("/api/v1/auth/register", json=person)

        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["username"] == person["username"]
        assert data["balance"] == "0.00"
        assert data["role"] == "USER"
        assert "password" not in str(data)

    async def test_duplicate_username(self, client: AsyncClient) -> None:
        person = _unique_person()
        await client.post("/api/v1/auth/register", json=person)
        again = {**person, "email": "other_" + person["email"]}
        resp = await client.post("/api/v1/auth/register", json=again)
        assert resp.status_code == 409
        assert resp.json()["code"] == 1001

    async def test_duplicate_email_is_case_insensitive(self, client: AsyncClient) -> None:
        person = _unique_person()
        await client.post("/api/v1/auth/register", json=person)
        again = {**person, "username": person["username"] + "x", "email": person["email"].upper()}
        resp = await client.post("/api/v1/auth/register", json=again)
        assert resp.status_code == 409
        assert resp.json()["code"] == 1002


class TestLogin:
    async def test_login_by_email(self, client: AsyncClient) -> None:
        person, _ = await _register_and_login(client)
        resp = await client.post(
            "/api/v1/auth/login",
            json={"identifier": person["email"], "password": person["password"]},
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["expires_in"] == 3600

    async def test_wrong_password_and_unknown_user_look_the_same(
        self, client: AsyncClient
    ) -> None:
        person, _ = await _register_and_login(client)
        wrong = await client.post(
            "/api/v1/auth/login",
            json={"identifier": person["username"], "password": "WrongPass1"},
        )
        unknown = await client.post(
            "/api/v1/auth/login",
            json={"identifier": "nobody_at_all", "password": "WrongPass1"},
        )
        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json()["code"] == unknown.json()["code"]
        assert wrong.json()["message"] == unknown.json()["message"]


class TestTokenLifecycle:
    async def test_me_returns_own_profile(self, client: AsyncClient) -> None:
        person, tokens = await _register_and_login(client)
        resp = await client.get(
            "/api/v1/persons/me",
            headers={"Authorization": f"Bearer {tokens['access_token']}"},
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["username"] == person["username"]

    async def test_refresh_rotates(self, client: AsyncClient) -> None:
        _, tokens = await _register_and_login(client)
        old = tokens["refresh_token"]

        resp = await client.post("/api/v1/auth/refresh", json={"refresh_token": old})
        assert resp.status_code == 200
        assert resp.json()["data"]["refresh_token"] != old

        reuse = await client.post("/api/v1/auth/refresh", json={"refresh_token": old})
        assert reuse.status_code == 401
        assert reuse.json()["code"] == 1005

    async def test_logout_revokes_both_tokens(self, client: AsyncClient) -> None:
        _, tokens = await _register_and_login(client)
        headers = {"Authorization": f"Bearer {tokens['access_token']}"}

        resp = await client.post(
            "/api/v1/auth/logout",
            json={"refresh_token": tokens["refresh_token"]},
            headers=headers,
        )
        assert resp.status_code == 200

        assert (await client.get("/api/v1/persons/me", headers=headers)).status_code == 401
        refresh = await client.post(
            "/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]}
        )
        assert refresh.status_code == 401
