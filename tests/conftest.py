"""Shared test fixtures."""

import os

# Settings are read at import time; give tests a valid secret and cheap bcrypt.
os.environ.setdefault("JWT_SECRET", "test-secret-key-that-is-long-enough-0123456789")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from src.main import app  # noqa: E402
from src.mt_gateway.auth.revocation import InMemoryRevocationRegistry  # noqa: E402


@pytest.fixture
def registry() -> InMemoryRevocationRegistry:
    """Fresh revocation registry installed on the app for one test."""
    fresh = InMemoryRevocationRegistry()
    app.state.revocation_registry = fresh
    return fresh


@pytest.fixture
async def client(registry: InMemoryRevocationRegistry) -> AsyncClient:
    """Async HTTP client for testing FastAPI endpoints."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
