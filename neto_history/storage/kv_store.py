"""
Redis-backed key-value store shared by the credential vault and digest cache.

Key schema (flat namespace, one partition per store domain):
- {store_domain}#token   -> OAuth access token
- {store_domain}#orders  -> JSON digest blob
- {store_domain}#expiry  -> ISO-8601 UTC digest expiry
- oauth_state#{state}    -> store-agnostic OAuth state marker

Store-scoped keys carry no TTL; they live until overwritten or deleted.
OAuth state keys are short-lived and set with a TTL by their caller.

Unlike the fail-open caches elsewhere, this store is authoritative: every
Redis failure is raised as StorageUnavailableError and must reach the
caller as a server error.
"""

import logging
from typing import Optional, Protocol

import redis
import redis.asyncio as aioredis

from neto_history.platform.errors import StorageUnavailableError

logger = logging.getLogger(__name__)


def token_key(store_domain: str) -> str:
    return f"{store_domain}#token"


def orders_key(store_domain: str) -> str:
    return f"{store_domain}#orders"


def expiry_key(store_domain: str) -> str:
    return f"{store_domain}#expiry"


def oauth_state_key(state: str) -> str:
    return f"oauth_state#{state}"


class KeyValueStore(Protocol):
    """String-keyed get/set store; keys expire only when set with a TTL."""

    async def get(self, key: str) -> Optional[str]: ...

    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None: ...

    async def get_and_delete(self, key: str) -> Optional[str]: ...

    async def delete(self, key: str) -> None: ...

    async def ping(self) -> bool: ...

    async def close(self) -> None: ...


class RedisKeyValueStore:
    """
    KeyValueStore over an injected ``redis.asyncio.Redis`` client.

    The client must be created with ``decode_responses=True``.
    """

    def __init__(self, client: aioredis.Redis):
        self._redis = client

    @classmethod
    def from_url(cls, redis_url: str) -> "RedisKeyValueStore":
        client = aioredis.from_url(
            redis_url,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        return cls(client)

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self._redis.get(key)
        except redis.RedisError as exc:
            raise self._unavailable("get", key, exc) from exc

    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        try:
            await self._redis.set(key, value, ex=ttl_seconds)
        except redis.RedisError as exc:
            raise self._unavailable("set", key, exc) from exc

    async def get_and_delete(self, key: str) -> Optional[str]:
        """Atomically read and remove a key (GETDEL)."""
        try:
            return await self._redis.getdel(key)
        except redis.RedisError as exc:
            raise self._unavailable("getdel", key, exc) from exc

    async def delete(self, key: str) -> None:
        try:
            await self._redis.delete(key)
        except redis.RedisError as exc:
            raise self._unavailable("delete", key, exc) from exc

    async def ping(self) -> bool:
        """Return True when the store answers; never raises."""
        try:
            return bool(await self._redis.ping())
        except redis.RedisError as exc:
            logger.warning(
                "Key-value store ping failed",
                extra={"error": str(exc), "error_type": type(exc).__name__},
            )
            return False

    async def close(self) -> None:
        await self._redis.aclose()

    @staticmethod
    def _unavailable(operation: str, key: str, exc: Exception) -> StorageUnavailableError:
        # Keys carry the store domain only, never secrets
        logger.error(
            "Key-value store operation failed",
            extra={
                "operation": operation,
                "key": key,
                "error": str(exc),
                "error_type": type(exc).__name__,
            },
        )
        return StorageUnavailableError()
