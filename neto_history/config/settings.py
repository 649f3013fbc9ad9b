"""
Runtime settings for the order history service.

All values come from environment variables. Secret values are never logged;
use ``missing_required()`` to report configuration status.

Configuration (environment variables):
- REDIS_URL:                    Key-value store URL (default: "redis://localhost:6379/0")
- NETO_CLIENT_ID:               OAuth client ID, also sent as X_ACCESS_KEY (required)
- NETO_CLIENT_SECRET:           OAuth client secret (required)
- NETO_AUTHORIZATION_URL:       OAuth authorize endpoint
- NETO_TOKEN_URL:               OAuth token endpoint
- APP_URL:                      Public base URL used for the OAuth callback
- NETO_REQUEST_TIMEOUT_SECONDS: Upstream request timeout (default: "30")
- DIGEST_TTL_DAYS:              Digest validity window (default: "60")
- ORDER_LOOKBACK_HOURS:         Order filter window (default: "24")
- DIGEST_SERVE_STALE_ON_ERROR:  Serve last digest when refresh fails (default: "false")
- CORS_ALLOW_ORIGINS:           Comma separated origins (default: "*")
- LOG_LEVEL:                    Root log level (default: "INFO")
"""

import os
from typing import List

from pydantic import BaseModel

REQUIRED_ENV_VARS = ("NETO_CLIENT_ID", "NETO_CLIENT_SECRET")


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


class Settings(BaseModel):
    """Service configuration."""
    redis_url: str = "redis://localhost:6379/0"
    neto_client_id: str = ""
    neto_client_secret: str = ""
    neto_authorization_url: str = "https://apps.getneto.com/oauth/v2/auth"
    neto_token_url: str = "https://apps.getneto.com/oauth/v2/token"
    app_url: str = "http://localhost:3000"
    upstream_timeout_seconds: float = 30.0
    digest_ttl_days: int = 60
    order_lookback_hours: int = 24
    serve_stale_on_error: bool = False
    cors_allow_origins: List[str] = ["*"]
    log_level: str = "INFO"

    @property
    def callback_url(self) -> str:
        return f"{self.app_url.rstrip('/')}/auth/callback"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the current environment."""
        origins = os.getenv("CORS_ALLOW_ORIGINS", "*")
        return cls(
            redis_url=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
            neto_client_id=os.getenv("NETO_CLIENT_ID", ""),
            neto_client_secret=os.getenv("NETO_CLIENT_SECRET", ""),
            neto_authorization_url=os.getenv(
                "NETO_AUTHORIZATION_URL", "https://apps.getneto.com/oauth/v2/auth"
            ),
            neto_token_url=os.getenv(
                "NETO_TOKEN_URL", "https://apps.getneto.com/oauth/v2/token"
            ),
            app_url=os.getenv("APP_URL", "http://localhost:3000"),
            upstream_timeout_seconds=float(os.getenv("NETO_REQUEST_TIMEOUT_SECONDS", "30")),
            digest_ttl_days=int(os.getenv("DIGEST_TTL_DAYS", "60")),
            order_lookback_hours=int(os.getenv("ORDER_LOOKBACK_HOURS", "24")),
            serve_stale_on_error=_env_bool("DIGEST_SERVE_STALE_ON_ERROR"),
            cors_allow_origins=[o.strip() for o in origins.split(",") if o.strip()],
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )

    def missing_required(self) -> List[str]:
        """Names of required environment variables that are unset."""
        values = {
            "NETO_CLIENT_ID": self.neto_client_id,
            "NETO_CLIENT_SECRET": self.neto_client_secret,
        }
        return [name for name in REQUIRED_ENV_VARS if not values[name]]
