"""Store domain resolution from the widget's request origin."""

from typing import Optional

from neto_history.platform.errors import InvalidTenantError


def tenant_from_origin(origin: Optional[str]) -> str:
    """
    Derive the store domain from an ``Origin`` header value.

    Strips the scheme, any path or trailing slash, and lower-cases the host:
    ``https://MyStore.neto.com.au/`` -> ``mystore.neto.com.au``.

    Raises:
        InvalidTenantError: If the origin is missing or has no host
    """
    if not origin or origin.strip().lower() == "null":
        raise InvalidTenantError()

    domain = origin.strip()
    for scheme in ("https://", "http://"):
        if domain.lower().startswith(scheme):
            domain = domain[len(scheme):]
            break

    domain = domain.split("/", 1)[0].strip().lower()
    if not domain:
        raise InvalidTenantError("Request origin has no host")
    return domain
