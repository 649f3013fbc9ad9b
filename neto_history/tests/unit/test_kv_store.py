"""
Tests for RedisKeyValueStore key layout and failure mapping.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
import redis

from neto_history.platform.errors import StorageUnavailableError
from neto_history.storage.kv_store import (
    RedisKeyValueStore,
    expiry_key,
    oauth_state_key,
    orders_key,
    token_key,
)


class TestKeyLayout:

    def test_store_scoped_keys(self):
        assert token_key("mystore.neto.com.au") == "mystore.neto.com.au#token"
        assert orders_key("mystore.neto.com.au") == "mystore.neto.com.au#orders"
        assert expiry_key("mystore.neto.com.au") == "mystore.neto.com.au#expiry"

    def test_oauth_state_key(self):
        assert oauth_state_key("abc") == "oauth_state#abc"


class TestRedisKeyValueStore:

    @pytest.mark.asyncio
    async def test_get_set_delete(self, kv_store):
        assert await kv_store.get("k") is None

        await kv_store.set("k", "v")
        assert await kv_store.get("k") == "v"

        await kv_store.delete("k")
        assert await kv_store.get("k") is None

    @pytest.mark.asyncio
    async def test_values_do_not_expire(self, kv_store, fake_redis):
        await kv_store.set("k", "v")

        assert await fake_redis.ttl("k") == -1

    @pytest.mark.asyncio
    async def test_set_with_ttl(self, kv_store, fake_redis):
        await kv_store.set("k", "v", ttl_seconds=600)

        assert 0 < await fake_redis.ttl("k") <= 600

    @pytest.mark.asyncio
    async def test_get_and_delete(self, kv_store):
        await kv_store.set("k", "v")

        assert await kv_store.get_and_delete("k") == "v"
        assert await kv_store.get("k") is None
        assert await kv_store.get_and_delete("k") is None

    @pytest.mark.asyncio
    async def test_ping(self, kv_store):
        assert await kv_store.ping() is True


class TestStorageFailures:

    @pytest.fixture
    def broken_client(self):
        client = MagicMock()
        error = redis.ConnectionError("connection refused")
        client.get = AsyncMock(side_effect=error)
        client.set = AsyncMock(side_effect=error)
        client.delete = AsyncMock(side_effect=redis.TimeoutError("timeout"))
        client.getdel = AsyncMock(side_effect=error)
        client.ping = AsyncMock(side_effect=error)
        return client

    @pytest.mark.asyncio
    async def test_get_raises_storage_unavailable(self, broken_client):
        with pytest.raises(StorageUnavailableError) as exc_info:
            await RedisKeyValueStore(broken_client).get("k")

        assert exc_info.value.status_code == 503
        assert isinstance(exc_info.value.__cause__, redis.ConnectionError)

    @pytest.mark.asyncio
    async def test_set_raises_storage_unavailable(self, broken_client):
        with pytest.raises(StorageUnavailableError):
            await RedisKeyValueStore(broken_client).set("k", "v")

    @pytest.mark.asyncio
    async def test_delete_raises_storage_unavailable(self, broken_client):
        with pytest.raises(StorageUnavailableError):
            await RedisKeyValueStore(broken_client).delete("k")

    @pytest.mark.asyncio
    async def test_ping_reports_false(self, broken_client):
        assert await RedisKeyValueStore(broken_client).ping() is False

    @pytest.mark.asyncio
    async def test_get_and_delete_raises_storage_unavailable(self, broken_client):
        with pytest.raises(StorageUnavailableError):
            await RedisKeyValueStore(broken_client).get_and_delete("k")
