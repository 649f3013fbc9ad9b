"""
Health checks for deployment validation.

Provides:
- Key-value store connectivity
- Environment variable validation
- Service status reporting
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict

from neto_history.config.settings import Settings
from neto_history.storage.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

SERVICE_NAME = "neto-order-history"


class HealthChecker:
    """Health check service backed by the injected store and settings."""

    def __init__(self, settings: Settings, kv_store: KeyValueStore):
        self.settings = settings
        self.kv = kv_store

    async def check_store(self) -> Dict[str, Any]:
        """
        Check key-value store connectivity.

        Returns:
            Dict with 'status' (ok/error) and 'message'
        """
        if await self.kv.ping():
            return {"status": "ok", "message": "Store connection successful"}
        return {"status": "error", "message": "Store connection failed"}

    def check_environment_variables(self) -> Dict[str, Any]:
        """
        Check required environment variables are present.

        Returns:
            Dict with 'status', 'missing' list and 'message'
        """
        missing = self.settings.missing_required()
        return {
            "status": "ok" if not missing else "error",
            "missing": missing,
            "message": f"{len(missing)} required vars missing",
        }

    async def get_health_status(self) -> Dict[str, Any]:
        """
        Get comprehensive health status.

        Overall status is ok only if all checks pass.
        """
        store_check = await self.check_store()
        env_check = self.check_environment_variables()

        overall_status = "ok"
        if store_check["status"] != "ok" or env_check["status"] != "ok":
            overall_status = "degraded"

        return {
            "status": overall_status,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": SERVICE_NAME,
            "checks": {
                "store": store_check,
                "environment": env_check,
            },
        }

    def log_config_status(self) -> None:
        """Log configuration status on startup (NO secrets)."""
        missing = self.settings.missing_required()
        logger.info("Configuration status", extra={
            "required_vars_missing": missing,
            "digest_ttl_days": self.settings.digest_ttl_days,
            "order_lookback_hours": self.settings.order_lookback_hours,
            "serve_stale_on_error": self.settings.serve_stale_on_error,
        })

        if missing:
            logger.warning("Missing required environment variables", extra={
                "missing_vars": missing,
            })
