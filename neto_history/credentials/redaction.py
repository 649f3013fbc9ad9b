"""
Credential redaction and audit logging utilities.

SECURITY REQUIREMENTS:
- Access tokens NEVER appear in logs
- ALLOWED in logs: store_domain
- All credential operations logged for audit trail

Audit Events:
- credential.stored
- credential.accessed
- credential.missing

Usage:
    from neto_history.credentials.redaction import CredentialAuditLogger, AuditEventType

    audit = CredentialAuditLogger("mystore.neto.com.au")
    audit.log(AuditEventType.CREDENTIAL_STORED)
"""

import logging
import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

REDACTED_VALUE = "[REDACTED]"


class AuditEventType(str, Enum):
    """Credential audit event types."""
    CREDENTIAL_STORED = "credential.stored"
    CREDENTIAL_ACCESSED = "credential.accessed"
    CREDENTIAL_MISSING = "credential.missing"


# Header and field shapes that carry the token in flight
CREDENTIAL_SECRET_PATTERNS = [
    re.compile(r"(X_SECRET_KEY[\"']?\s*[:=]\s*[\"']?)[^\"'\s,}]+", re.IGNORECASE),
    re.compile(r"(access_token[\"']?\s*[:=]\s*[\"']?)[^\"'\s,}&]+", re.IGNORECASE),
    re.compile(r"(client_secret[\"']?\s*[:=]\s*[\"']?)[^\"'\s,}&]+", re.IGNORECASE),
    re.compile(r"(Bearer\s+)[A-Za-z0-9._~+/=-]+"),
]

_ALLOWED_KEYS = ("store_domain", "token_present")


def is_credential_secret_key(key: str) -> bool:
    """
    Check if a key name indicates a credential secret.

    Args:
        key: The key name to check

    Returns:
        True if the key likely contains a secret
    """
    if key in _ALLOWED_KEYS:
        return False
    key_lower = key.lower()
    credential_patterns = [
        "token", "secret", "credential", "bearer",
        "oauth", "api_key", "apikey", "password", "authorization",
    ]
    return any(pattern in key_lower for pattern in credential_patterns)


def redact_credential_value(value: Any) -> Any:
    """Redact secret patterns from a string value; other types pass through."""
    if not isinstance(value, str):
        return value

    result = value
    for pattern in CREDENTIAL_SECRET_PATTERNS:
        result = pattern.sub(lambda m: m.group(1) + REDACTED_VALUE, result)
    return result


def redact_credential_data(data: Any, _depth: int = 0) -> Any:
    """
    Recursively redact credential secrets from a data structure.

    Usage:
        safe_data = redact_credential_data({"access_token": "abc", "store_domain": "x"})
        logger.info("Token response", extra=safe_data)
    """
    if _depth > 10:
        return data

    if isinstance(data, dict):
        result = {}
        for key, value in data.items():
            if is_credential_secret_key(str(key)):
                result[key] = REDACTED_VALUE
            else:
                result[key] = redact_credential_data(value, _depth + 1)
        return result

    if isinstance(data, list):
        return [redact_credential_data(item, _depth + 1) for item in data]

    if isinstance(data, str):
        return redact_credential_value(data)

    return data


class CredentialAuditLogger:
    """
    Structured audit logger for credential operations.

    SECURITY: tokens are NEVER passed to or logged by this class.
    """

    def __init__(self, store_domain: str):
        self.store_domain = store_domain
        self.logger = logging.getLogger("credentials.audit")

    def log(
        self,
        event_type: AuditEventType,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Log an audit event.

        Args:
            event_type: Type of audit event
            metadata: Additional context (will be redacted)
        """
        safe_metadata = redact_credential_data(metadata) if metadata else {}

        audit_record = {
            "event_type": event_type.value,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "store_domain": self.store_domain,
            **safe_metadata,
        }

        self.logger.info(
            f"Credential audit: {event_type.value}",
            extra=audit_record,
        )


class CredentialLoggingFilter(logging.Filter):
    """
    Logging filter that redacts credential secrets from log records.

    Usage:
        handler.addFilter(CredentialLoggingFilter())
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = redact_credential_value(record.msg)

        if record.args:
            if isinstance(record.args, dict):
                record.args = redact_credential_data(record.args)
            elif isinstance(record.args, tuple):
                record.args = tuple(
                    redact_credential_value(arg) if isinstance(arg, str) else arg
                    for arg in record.args
                )

        # Extra fields land on the record itself
        for key in list(record.__dict__.keys()):
            if key in _STANDARD_RECORD_ATTRS:
                continue
            if is_credential_secret_key(key):
                setattr(record, key, REDACTED_VALUE)
            elif isinstance(getattr(record, key), str):
                setattr(record, key, redact_credential_value(getattr(record, key)))

        return True


_STANDARD_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime"}
