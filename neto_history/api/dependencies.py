"""
FastAPI dependencies resolving components built in the app lifespan.

Components live on ``app.state`` so tests can swap any of them out.
"""

from typing import Optional

from fastapi import Header, Request

from neto_history.platform.health import HealthChecker
from neto_history.services.digest_cache import FreshnessGatedCache
from neto_history.services.oauth_service import NetoOAuthService
from neto_history.services.tenant import tenant_from_origin


def get_digest_cache(request: Request) -> FreshnessGatedCache:
    return request.app.state.digest_cache


def get_oauth_service(request: Request) -> NetoOAuthService:
    return request.app.state.oauth_service


def get_health_checker(request: Request) -> HealthChecker:
    return request.app.state.health_checker


def get_store_domain(origin: Optional[str] = Header(default=None)) -> str:
    """Store domain from the widget's ``Origin`` header."""
    return tenant_from_origin(origin)
