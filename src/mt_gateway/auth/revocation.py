"""Token revocation (logout) registries.

A verified token is usable until it expires; revoking it lets logout take
effect immediately. Entries only need to live as long as the token itself,
so every backend forgets an entry once its expires_at has passed.
"""

import asyncio
import hashlib
import logging
import threading
from datetime import datetime
from typing import Protocol

import redis.asyncio as aioredis

from config.settings import Settings
from src.mt_common.datetime_utils import utc_now
from src.mt_common.errors import ConfigError

logger = logging.getLogger("mt.auth")


class RevocationRegistry(Protocol):
    async def revoke(self, token: str, expires_at: datetime) -> None: ...

    async def is_revoked(self, token: str) -> bool: ...

    async def sweep(self, now: datetime) -> int: ...

    async def close(self) -> None: ...


class InMemoryRevocationRegistry:
    """Process-local registry: raw token -> expires_at.

    Writers take a lock; is_revoked() is a single dict lookup and never
    waits on it, so the authentication path stays lock-free.
    """

    def __init__(self) -> None:
        self._entries: dict[str, datetime] = {}
        self._lock = threading.Lock()

    async def revoke(self, token: str, expires_at: datetime) -> None:
        with self._lock:
            current = self._entries.get(token)
            if current is None or current < expires_at:
                self._entries[token] = expires_at

    async def is_revoked(self, token: str) -> bool:
        return token in self._entries

    async def sweep(self, now: datetime) -> int:
        with self._lock:
            expired = [token for token, exp in self._entries.items() if exp <= now]
            for token in expired:
                del self._entries[token]
        return len(expired)

    async def close(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class RedisRevocationRegistry:
    """Shared registry backed by redis keys that expire with the token.

    Only a SHA-256 of the token is stored, never the bearer credential itself.
    """

    _KEY_PREFIX = "revoked:"

    def __init__(self, client: aioredis.Redis) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisRevocationRegistry":
        return cls(aioredis.from_url(url, decode_responses=True))

    @classmethod
    def _key(cls, token: str) -> str:
        return cls._KEY_PREFIX + hashlib.sha256(token.encode("utf-8")).hexdigest()

    async def revoke(self, token: str, expires_at: datetime) -> None:
        remaining = int((expires_at - utc_now()).total_seconds()) + 1
        if remaining <= 0:
            return
        await self._client.set(self._key(token), "1", ex=remaining)

    async def is_revoked(self, token: str) -> bool:
        return bool(await self._client.exists(self._key(token)))

    async def sweep(self, now: datetime) -> int:
        # Redis expires keys on its own
        return 0

    async def ping(self) -> None:
        await self._client.ping()

    async def close(self) -> None:
        await self._client.aclose()


async def build_revocation_registry(settings: Settings) -> RevocationRegistry:
    """Registry for REVOCATION_BACKEND; a redis backend must answer PING first."""
    if settings.REVOCATION_BACKEND == "memory":
        return InMemoryRevocationRegistry()
    if settings.REVOCATION_BACKEND == "redis":
        registry = RedisRevocationRegistry.from_url(settings.REDIS_URL)
        await registry.ping()
        return registry
    raise ConfigError(f"Unknown REVOCATION_BACKEND: {settings.REVOCATION_BACKEND}")


async def run_sweeper(registry: RevocationRegistry, interval_seconds: float) -> None:
    """Drop expired revocations forever; cancel the task to stop it."""
    while True:
        await asyncio.sleep(interval_seconds)
        removed = await registry.sweep(utc_now())
        if removed:
            logger.debug("Swept %d expired revocations", removed)
