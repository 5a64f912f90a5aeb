"""
Key-value store shared by the rate limiter and the read-through cache.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Optional, Protocol, TypeVar

import redis.asyncio as redis
from redis.exceptions import RedisError

from shared.errors import CacheStoreError
from shared.logging import get_logger


T = TypeVar("T")


class KeyValueStore(Protocol):
    """Operations the proxy needs from its store. Every call may raise CacheStoreError."""

    async def get(self, key: str) -> Optional[str]:
        ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        ...

    async def set_if_absent(self, key: str, value: str, ttl_seconds: int) -> bool:
        ...

    async def incr(self, key: str, ttl_seconds: int) -> int:
        ...

    async def ping(self) -> bool:
        ...


class RedisKeyValueStore:
    """Redis-backed store with bounded per-call timeouts."""

    def __init__(
        self,
        redis_url: str,
        *,
        timeout: float = 1.0,
        client: Optional[redis.Redis] = None,
    ) -> None:
        self.redis_url = redis_url
        self.timeout = timeout
        self.logger = get_logger("quakes.store")
        self._redis = client or redis.from_url(
            redis_url,
            encoding="utf-8",
            decode_responses=True,
            socket_timeout=timeout,
            socket_connect_timeout=timeout,
        )

    async def close(self) -> None:
        """Close Redis connections."""
        try:
            await self._redis.aclose()
        except Exception as exc:  # pragma: no cover - close is best effort
            self.logger.debug("Redis close failed", error=str(exc))

    async def _call(self, operation: str, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            raise CacheStoreError(operation, f"timed out after {self.timeout}s") from exc
        except (RedisError, OSError) as exc:
            raise CacheStoreError(operation, str(exc)) from exc

    async def get(self, key: str) -> Optional[str]:
        value = await self._call("get", self._redis.get(key))
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        await self._call("set", self._redis.set(key, value, ex=ttl_seconds))

    async def set_if_absent(self, key: str, value: str, ttl_seconds: int) -> bool:
        """Create ``key`` with an expiry; False when it already exists."""
        created = await self._call("set_if_absent", self._redis.set(key, value, ex=ttl_seconds, nx=True))
        return bool(created)

    async def incr(self, key: str, ttl_seconds: int) -> int:
        """Atomically increment ``key``.

        INCR and EXPIRE NX run in one MULTI/EXEC transaction: a counter is
        never left without an expiry, and an existing expiry is never
        extended.
        """
        return await self._call("incr", self._incr_with_expiry(key, ttl_seconds))

    async def _incr_with_expiry(self, key: str, ttl_seconds: int) -> int:
        async with self._redis.pipeline(transaction=True) as pipeline:
            pipeline.incr(key)
            pipeline.expire(key, ttl_seconds, nx=True)
            count, _ = await pipeline.execute()
        return int(count)

    async def ping(self) -> bool:
        return bool(await self._call("ping", self._redis.ping()))
