"""HTTP-level tests: authentication, authorization and the error envelope.

The database session and ledger service are replaced, so these run without
PostgreSQL.
"""

from collections.abc import AsyncGenerator, Iterator
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient

from src.main import app
from src.mt_common.database import get_db_session
from src.mt_common.enums import Direction, Role, TokenType, TransactionKind
from src.mt_common.errors import TransactionNotFoundError
from src.mt_gateway.auth.jwt_handler import ACCESS_TTL, token_codec
from src.mt_gateway.auth.revocation import InMemoryRevocationRegistry
from src.mt_ledger.domain.models import Transaction


def _bearer(person_id: int = 1, role: Role = Role.USER) -> dict[str, str]:
    token = token_codec.issue(person_id, ACCESS_TTL, TokenType.ACCESS, role)
    return {"Authorization": f"Bearer {token}"}


def _tx(direction: Direction = Direction.CREDIT) -> Transaction:
    return Transaction(
        id=1,
        person_id=1,
        kind=TransactionKind.default_for(direction),
        direction=direction,
        amount=Decimal("50.00"),
        description="Salary",
        occurred_at=datetime(2026, 1, 1, tzinfo=UTC),
    )


@pytest.fixture(autouse=True)
def fake_db() -> Iterator[AsyncMock]:
    session = AsyncMock()

    async def _override() -> AsyncGenerator[AsyncMock, None]:
        yield session

    app.dependency_overrides[get_db_session] = _override
    yield session
    app.dependency_overrides.clear()


@pytest.fixture
def ledger() -> Iterator[AsyncMock]:
    mock = AsyncMock()
    with patch("src.mt_ledger.api.router._service", mock):
        yield mock


async def test_health(client: AsyncClient) -> None:
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.headers["X-Request-ID"].startswith("req_")


class TestAuthentication:
    async def test_missing_token(self, client: AsyncClient) -> None:
        resp = await client.get("/api/v1/transactions/balance")
        assert resp.status_code == 401

    async def test_garbage_token(self, client: AsyncClient) -> None:
        resp = await client.get(
            "/api/v1/transactions/balance", headers={"Authorization": "Bearer nope"}
        )
        assert resp.status_code == 401
        assert resp.headers["WWW-Authenticate"] == "Bearer"

    async def test_refresh_token_is_not_a_bearer_token(self, client: AsyncClient) -> None:
        refresh = token_codec.issue(1, timedelta(hours=24), TokenType.REFRESH)
        resp = await client.get(
            "/api/v1/transactions/balance", headers={"Authorization": f"Bearer {refresh}"}
        )
        assert resp.status_code == 401

    async def test_valid_token_reaches_handler(
        self, client: AsyncClient, ledger: AsyncMock
    ) -> None:
        ledger.get_balance.return_value = Decimal("1500.00")
        resp = await client.get("/api/v1/transactions/balance", headers=_bearer(7))

        assert resp.status_code == 200
        body = resp.json()
        assert body["code"] == 0
        assert body["data"] == {
            "person_id": 7,
            "balance": "1500.00",
            "balance_display": "$1,500.00",
        }
        assert ledger.get_balance.await_args.args[1] == 7

    async def test_logout_revokes_token_immediately(
        self, client: AsyncClient, ledger: AsyncMock, registry: InMemoryRevocationRegistry
    ) -> None:
        ledger.get_balance.return_value = Decimal("0.00")
        headers = _bearer(3)

        assert (await client.get("/api/v1/transactions/balance", headers=headers)).status_code == 200
        resp = await client.post("/api/v1/auth/logout", headers=headers)
        assert resp.status_code == 200
        assert len(registry) == 1
        assert (await client.get("/api/v1/transactions/balance", headers=headers)).status_code == 401


class TestAuthorization:
    async def test_user_cannot_list_persons(self, client: AsyncClient) -> None:
        resp = await client.get("/api/v1/admin/persons", headers=_bearer(role=Role.USER))
        assert resp.status_code == 403
        assert resp.json()["code"] == 1007

    async def test_admin_can_list_persons(self, client: AsyncClient) -> None:
        with patch(
            "src.mt_gateway.api.router._service.list_persons", AsyncMock(return_value=[])
        ):
            resp = await client.get("/api/v1/admin/persons", headers=_bearer(role=Role.ADMIN))
        assert resp.status_code == 200
        assert resp.json()["data"] == []


class TestLedgerEndpoints:
    async def test_create_uses_principal_as_owner(
        self, client: AsyncClient, ledger: AsyncMock
    ) -> None:
        ledger.apply.return_value = (Decimal("50.00"), _tx())
        resp = await client.post(
            "/api/v1/transactions",
            json={"amount": "50.00", "kind": "INCOME", "description": "Salary"},
            headers=_bearer(1),
        )

        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["balance"] == "50.00"
        assert data["transaction"]["signed_amount"] == "50.00"
        args = ledger.apply.await_args.args
        assert args[1] == 1
        assert args[2] == Decimal("50.00")
        assert args[3] is Direction.CREDIT

    async def test_invalid_body_is_422(self, client: AsyncClient, ledger: AsyncMock) -> None:
        resp = await client.post(
            "/api/v1/transactions",
            json={"amount": "0", "direction": "CREDIT", "description": "x"},
            headers=_bearer(),
        )
        assert resp.status_code == 422
        ledger.apply.assert_not_awaited()

    async def test_domain_error_uses_envelope(
        self, client: AsyncClient, ledger: AsyncMock
    ) -> None:
        ledger.reverse.side_effect = TransactionNotFoundError(99)
        resp = await client.post("/api/v1/transactions/99/reverse", headers=_bearer())

        assert resp.status_code == 404
        body = resp.json()
        assert body["code"] == 2002
        assert body["data"] is None
        assert body["request_id"] == resp.headers["X-Request-ID"]

    async def test_summary_rejects_month_without_year(
        self, client: AsyncClient, ledger: AsyncMock
    ) -> None:
        resp = await client.get("/api/v1/transactions/summary?month=3", headers=_bearer())
        assert resp.status_code == 422
        assert resp.json()["code"] == 2005
        ledger.summary.assert_not_awaited()


class TestRegisterValidation:
    async def test_weak_password_is_rejected(self, client: AsyncClient) -> None:
        resp = await client.post(
            "/api/v1/auth/register",
            json={
                "username": "carol",
                "email": "carol@example.com",
                "password": "alllowercase",
                "full_name": "Carol",
            },
        )
        assert resp.status_code == 422

    async def test_password_over_bcrypt_byte_limit_is_rejected(
        self, client: AsyncClient, fake_db: AsyncMock
    ) -> None:
        # 72 characters, but 141 bytes in UTF-8
        resp = await client.post(
            "/api/v1/auth/register",
            json={
                "username": "dave",
                "email": "dave@example.com",
                "password": "Aa1" + "é" * 69,
                "full_name": "Dave",
            },
        )
        assert resp.status_code == 422
        fake_db.add.assert_not_called()
