"""
Process-wide logging setup.

Installs CredentialLoggingFilter on every root handler so OAuth tokens can
never reach log output, whichever module emits the record.
"""

import logging

from neto_history.credentials.redaction import CredentialLoggingFilter

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging with credential redaction."""
    logging.basicConfig(level=level, format=LOG_FORMAT)

    redaction_filter = CredentialLoggingFilter()
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, CredentialLoggingFilter) for f in handler.filters):
            handler.addFilter(redaction_filter)

    logging.getLogger(__name__).info(
        "Logging configured with credential redaction",
        extra={"log_level": level},
    )
