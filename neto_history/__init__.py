"""Recent-order history service for Neto storefront widgets."""

__version__ = "0.1.0"
