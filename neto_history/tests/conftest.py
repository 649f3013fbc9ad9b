"""
Shared pytest fixtures for order history tests.

The key-value store is a fakeredis double behind the real RedisKeyValueStore,
so key layout and error mapping are exercised exactly as in production.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import fakeredis
import pytest
from fakeredis import aioredis as fakeredis_aioredis

from neto_history.config.settings import Settings
from neto_history.credentials.store import CredentialStore
from neto_history.services.digest_cache import FreshnessGatedCache
from neto_history.services.order_digest import DigestEntry, OrderDigestFetcher
from neto_history.storage.kv_store import RedisKeyValueStore

STORE_DOMAIN = "mystore.neto.com.au"
ACCESS_TOKEN = "test_neto_token_not_real_xxxxx"
NOW = datetime(2024, 1, 10, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def settings():
    return Settings(
        redis_url="redis://unused:6379/0",
        neto_client_id="test-client-id",
        neto_client_secret="test-client-secret",
        app_url="https://history.example.com",
        upstream_timeout_seconds=5.0,
    )


@pytest.fixture
def fake_redis():
    # Own server per test so keys never leak between tests
    return fakeredis_aioredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture
def kv_store(fake_redis):
    return RedisKeyValueStore(fake_redis)


@pytest.fixture
def credentials(kv_store):
    return CredentialStore(kv_store)


@pytest.fixture
def sample_entries():
    return [
        DigestEntry(
            date_placed="2024-01-10 09:30:00",
            sku="A1",
            name="Widget",
            city="Perth",
        ),
        DigestEntry(
            date_placed="2024-01-10 10:15:00",
            sku="B2",
            name="Gadget",
            city="Hobart",
        ),
    ]


@pytest.fixture
def fetcher(sample_entries):
    """Fetcher double returning ``sample_entries``."""
    mock = MagicMock(spec=OrderDigestFetcher)
    mock.fetch_digest = AsyncMock(return_value=sample_entries)
    return mock


@pytest.fixture
def clock():
    """Mutable clock; set ``clock.now`` to move time."""
    class _Clock:
        now = NOW

        def __call__(self):
            return self.now

    return _Clock()


@pytest.fixture
def digest_cache(kv_store, credentials, fetcher, clock):
    return FreshnessGatedCache(
        kv_store,
        credentials,
        fetcher,
        ttl_days=60,
        clock=clock,
    )
