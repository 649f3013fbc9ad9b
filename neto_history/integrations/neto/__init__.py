from neto_history.integrations.neto.client import (
    NetoApiError,
    NetoOrderClient,
    ORDER_OUTPUT_SELECTOR,
)

__all__ = ["NetoApiError", "NetoOrderClient", "ORDER_OUTPUT_SELECTOR"]
