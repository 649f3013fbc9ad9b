"""
ASGI application for the Neto order history service.

Run with:
    uvicorn neto_history.main:app --port 3000

The key-value store and the Neto HTTP client are created on startup,
injected into every component, and closed on shutdown. Components are
exposed on ``app.state`` for the route dependencies.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from neto_history.api.routes import auth, health, history
from neto_history.config.settings import Settings
from neto_history.credentials.store import CredentialStore
from neto_history.integrations.neto.client import NetoOrderClient
from neto_history.platform.errors import ErrorHandlerMiddleware
from neto_history.platform.health import HealthChecker
from neto_history.platform.logging import configure_logging
from neto_history.services.digest_cache import FreshnessGatedCache
from neto_history.services.oauth_service import NetoOAuthService
from neto_history.services.order_digest import OrderDigestFetcher
from neto_history.storage.kv_store import KeyValueStore, RedisKeyValueStore

logger = logging.getLogger(__name__)


def build_components(
    app: FastAPI,
    settings: Settings,
    kv_store: KeyValueStore,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> NetoOrderClient:
    """Wire every component onto ``app.state`` and return the HTTP client to close."""
    credentials = CredentialStore(kv_store)
    order_client = NetoOrderClient(
        client_id=settings.neto_client_id,
        timeout_seconds=settings.upstream_timeout_seconds,
        transport=transport,
    )
    fetcher = OrderDigestFetcher(order_client, lookback_hours=settings.order_lookback_hours)

    app.state.settings = settings
    app.state.kv_store = kv_store
    app.state.credentials = credentials
    app.state.digest_cache = FreshnessGatedCache(
        kv_store,
        credentials,
        fetcher,
        ttl_days=settings.digest_ttl_days,
        serve_stale_on_error=settings.serve_stale_on_error,
    )
    app.state.oauth_service = NetoOAuthService(settings, kv_store, credentials, transport=transport)
    app.state.health_checker = HealthChecker(settings, kv_store)
    return order_client


def create_app(
    settings: Optional[Settings] = None,
    kv_store: Optional[KeyValueStore] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Service settings (read from the environment if omitted)
        kv_store: Store to use instead of connecting to REDIS_URL
        transport: httpx transport for upstream calls (tests only)
    """
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store = kv_store or RedisKeyValueStore.from_url(settings.redis_url)
        order_client = build_components(app, settings, store, transport)
        app.state.health_checker.log_config_status()
        logger.info("Order history service started")
        try:
            yield
        finally:
            await order_client.close()
            await store.close()
            logger.info("Order history service stopped")

    app = FastAPI(title="Neto Order History", lifespan=lifespan)
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(history.router)
    return app


_settings = Settings.from_env()
configure_logging(_settings.log_level)
app = create_app(_settings)
