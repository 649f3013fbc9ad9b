"""
Neto OAuth installation flow.

Handles:
- Building the authorization URL with a single-use state value
- Completing the authorization-code exchange at the token endpoint
- Handing the resulting access token to the CredentialStore, once per
  successful authorization

The token response carries the authorizing store's domain in
``store_domain``; that domain becomes the credential's partition key.

SECURITY: tokens and the client secret are never logged. The OAuth state
guards the callback against CSRF, expires after ten minutes, and is
deleted on first use.
"""

import logging
import secrets
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx

from neto_history.config.settings import Settings
from neto_history.credentials.redaction import redact_credential_data
from neto_history.credentials.store import CredentialStore
from neto_history.platform.errors import OAuthError
from neto_history.services.tenant import tenant_from_origin
from neto_history.storage.kv_store import KeyValueStore, oauth_state_key

logger = logging.getLogger(__name__)

# Seconds an unused install state stays valid
OAUTH_STATE_TTL_SECONDS = 600


class InvalidStateError(OAuthError):
    """OAuth state is missing, unknown, or already used."""

    def __init__(self):
        super().__init__("Invalid or expired OAuth state")


class TokenExchangeError(OAuthError):
    """Token endpoint rejected the code or returned an unusable body."""
    pass


class NetoOAuthService:
    """Drives the authorization-code handshake for a single store."""

    def __init__(
        self,
        settings: Settings,
        kv_store: KeyValueStore,
        credentials: CredentialStore,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        self.kv = kv_store
        self.credentials = credentials
        self._transport = transport

    async def create_authorization_url(self) -> str:
        """Create and persist a state value, and return the Neto authorize URL."""
        state = secrets.token_urlsafe(32)
        await self.kv.set(oauth_state_key(state), "pending", ttl_seconds=OAUTH_STATE_TTL_SECONDS)

        query = urlencode({
            "response_type": "code",
            "client_id": self.settings.neto_client_id,
            "redirect_uri": self.settings.callback_url,
            "state": state,
        })
        return f"{self.settings.neto_authorization_url}?{query}"

    async def complete_authorization(self, code: str, state: Optional[str]) -> str:
        """
        Complete the handshake and store the credential.

        Args:
            code: Authorization code from the callback
            state: State value from the callback

        Returns:
            Store domain the credential was stored for

        Raises:
            InvalidStateError: If the state is unknown or reused
            TokenExchangeError: If the code exchange fails
        """
        await self._consume_state(state)

        token_data = await self._exchange_code(code)
        access_token = token_data.get("access_token")
        raw_domain = token_data.get("store_domain")
        if not access_token or not raw_domain:
            logger.error(
                "Token response missing fields",
                extra={"fields": sorted(redact_credential_data(token_data).keys())},
            )
            raise TokenExchangeError("Token response missing access_token or store_domain")

        store_domain = tenant_from_origin(raw_domain)
        await self.credentials.store_credential(store_domain, access_token)

        logger.info("Neto authorization completed", extra={"store_domain": store_domain})
        return store_domain

    async def _consume_state(self, state: Optional[str]) -> None:
        if not state:
            raise InvalidStateError()
        # GETDEL: a replayed state cannot pass twice, even concurrently
        if await self.kv.get_and_delete(oauth_state_key(state)) is None:
            logger.warning("Unknown, expired or reused OAuth state on callback")
            raise InvalidStateError()

    async def _exchange_code(self, code: str) -> Dict[str, Any]:
        form = {
            "grant_type": "authorization_code",
            "code": code,
            "client_id": self.settings.neto_client_id,
            "client_secret": self.settings.neto_client_secret,
            "redirect_uri": self.settings.callback_url,
        }
        try:
            async with httpx.AsyncClient(
                timeout=self.settings.upstream_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(self.settings.neto_token_url, data=form)
        except httpx.RequestError as e:
            logger.error("Token exchange request failed", extra={"error_type": type(e).__name__})
            raise TokenExchangeError("Token exchange request failed") from e

        if response.status_code != 200:
            logger.error(
                "Token exchange rejected",
                extra={"status_code": response.status_code},
            )
            raise TokenExchangeError(
                f"Token exchange failed: {response.status_code}",
                details={"upstream_status": response.status_code},
            )

        try:
            data = response.json()
        except ValueError as e:
            raise TokenExchangeError("Token response is not JSON") from e
        if not isinstance(data, dict):
            raise TokenExchangeError("Token response is not an object")
        return data
