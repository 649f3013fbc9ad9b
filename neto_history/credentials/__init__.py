"""
Credentials module for per-store OAuth token management.

This module provides:
- Key-value storage of the Neto access token per store domain
- Audit logging with automatic redaction

SECURITY:
- Tokens NEVER appear in logs or API responses
- Allowed in logs: store_domain

Usage:
    from neto_history.credentials import CredentialStore

    store = CredentialStore(kv_store)
    await store.store_credential("mystore.neto.com.au", access_token)
"""

from neto_history.credentials.store import CredentialStore
from neto_history.credentials.redaction import (
    AuditEventType,
    CredentialAuditLogger,
    CredentialLoggingFilter,
    redact_credential_data,
)

__all__ = [
    # Store
    "CredentialStore",
    # Redaction & Audit
    "AuditEventType",
    "CredentialAuditLogger",
    "CredentialLoggingFilter",
    "redact_credential_data",
]
