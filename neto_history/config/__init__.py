"""Configuration module for the order history service."""

from neto_history.config.settings import REQUIRED_ENV_VARS, Settings

__all__ = [
    "REQUIRED_ENV_VARS",
    "Settings",
]
