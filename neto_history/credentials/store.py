"""
Credential storage for per-store Neto OAuth access tokens.

SECURITY REQUIREMENTS:
- Tokens never appear in logs or API responses
- Store-scoped access only: one key per store domain
- Tokens are not expired here; Neto enforces expiry upstream

Usage:
    store = CredentialStore(kv_store)

    # After OAuth exchange
    await store.store_credential("mystore.neto.com.au", access_token)

    # Before calling the order API
    token = await store.require_credential("mystore.neto.com.au")
"""

import logging
from typing import Optional

from neto_history.credentials.redaction import AuditEventType, CredentialAuditLogger
from neto_history.platform.errors import UnauthorizedTenantError
from neto_history.storage.kv_store import KeyValueStore, token_key

logger = logging.getLogger(__name__)


def _require_store_domain(store_domain: str) -> str:
    if not store_domain or not store_domain.strip():
        raise ValueError("store_domain is required")
    return store_domain


class CredentialStore:
    """
    Owns reads and writes of the OAuth access token per store.

    StorageUnavailableError from the key-value store propagates unchanged.
    """

    def __init__(self, kv_store: KeyValueStore):
        self.kv = kv_store

    async def store_credential(self, store_domain: str, access_token: str) -> None:
        """
        Store (or overwrite) the access token for a store.

        No validation of the token contents is performed.

        Args:
            store_domain: Store domain the token was issued for
            access_token: OAuth access token (never logged)
        """
        _require_store_domain(store_domain)
        await self.kv.set(token_key(store_domain), access_token)

        CredentialAuditLogger(store_domain).log(AuditEventType.CREDENTIAL_STORED)
        logger.info("Credential stored", extra={"store_domain": store_domain})

    async def load_credential(self, store_domain: str) -> Optional[str]:
        """Return the stored token, or None if the store never authorized."""
        _require_store_domain(store_domain)
        return await self.kv.get(token_key(store_domain))

    async def require_credential(self, store_domain: str) -> str:
        """
        Return the stored token for use in an upstream call.

        Raises:
            UnauthorizedTenantError: If no token is on file
        """
        access_token = await self.load_credential(store_domain)
        audit = CredentialAuditLogger(store_domain)
        if not access_token:
            audit.log(AuditEventType.CREDENTIAL_MISSING)
            raise UnauthorizedTenantError(store_domain)

        audit.log(AuditEventType.CREDENTIAL_ACCESSED)
        return access_token
