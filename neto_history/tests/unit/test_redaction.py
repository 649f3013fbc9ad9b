"""
Credential redaction tests.

CRITICAL: tokens must never survive into formatted log output.
"""

import logging
from io import StringIO

import pytest

from neto_history.credentials.redaction import (
    REDACTED_VALUE,
    CredentialLoggingFilter,
    is_credential_secret_key,
    redact_credential_data,
    redact_credential_value,
)

ACCESS_TOKEN = "test_neto_token_not_real_xxxxx"


@pytest.fixture
def log_capture():
    """Capture formatted log output through the redaction filter."""
    log_stream = StringIO()
    handler = logging.StreamHandler(log_stream)
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s %(message)s %(access_token)s"))
    handler.addFilter(CredentialLoggingFilter())

    logger = logging.getLogger("test_redaction")
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)

    yield logger, log_stream

    logger.removeHandler(handler)


class TestSecretKeyDetection:

    @pytest.mark.parametrize("key", ["access_token", "X_SECRET_KEY", "client_secret", "Authorization"])
    def test_secret_keys(self, key):
        assert is_credential_secret_key(key) is True

    @pytest.mark.parametrize("key", ["store_domain", "order_count", "status_code"])
    def test_safe_keys(self, key):
        assert is_credential_secret_key(key) is False


class TestRedaction:

    def test_redacts_query_style_token(self):
        assert redact_credential_value(f"access_token={ACCESS_TOKEN}&x=1") == (
            f"access_token={REDACTED_VALUE}&x=1"
        )

    def test_redacts_header_dump(self):
        value = f"{{'X_SECRET_KEY': '{ACCESS_TOKEN}'}}"

        assert ACCESS_TOKEN not in redact_credential_value(value)

    def test_redacts_nested_dict(self):
        data = {
            "store_domain": "mystore.neto.com.au",
            "response": {"access_token": ACCESS_TOKEN, "expires_in": 3600},
        }

        result = redact_credential_data(data)

        assert result["store_domain"] == "mystore.neto.com.au"
        assert result["response"]["access_token"] == REDACTED_VALUE
        assert result["response"]["expires_in"] == 3600

    def test_non_strings_pass_through(self):
        assert redact_credential_value(42) == 42


class TestLoggingFilter:

    def test_extra_token_field_redacted(self, log_capture):
        logger, stream = log_capture

        logger.info("Token response", extra={"access_token": ACCESS_TOKEN})

        output = stream.getvalue()
        assert ACCESS_TOKEN not in output
        assert REDACTED_VALUE in output

    def test_message_args_redacted(self, log_capture):
        logger, stream = log_capture

        logger.info("Exchange body %s", f"access_token={ACCESS_TOKEN}", extra={"access_token": None})

        assert ACCESS_TOKEN not in stream.getvalue()
