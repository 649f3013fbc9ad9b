"""
Neto API client for reading recent orders.

Uses the Neto JSON web service (POST /do/WS/NetoAPI) with OAuth app
credentials:
- X_ACCESS_KEY:   the app's OAuth client ID
- X_SECRET_KEY:   the store's OAuth access token
- NETOAPI_ACTION: "GetOrder"

One request per call, no retries. Every call is bounded by the configured
timeout so a hung store cannot stall a request indefinitely.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx

from neto_history.platform.errors import UpstreamError

logger = logging.getLogger(__name__)

ORDER_OUTPUT_SELECTOR = [
    "OrderLine",
    "OrderLine.ProductName",
    "BillAddress",
    "DatePlaced",
]


class NetoApiError(UpstreamError):
    """Error from the Neto API."""

    def __init__(self, message: str, store_domain: str, status_code: Optional[int] = None):
        details: Dict[str, Any] = {"store_domain": store_domain}
        if status_code is not None:
            details["upstream_status"] = status_code
        super().__init__(message, details=details)
        self.store_domain = store_domain
        self.upstream_status = status_code


class NetoOrderClient:
    """
    Client for the Neto GetOrder action.

    Shared across stores; per-store credentials travel in request headers.
    """

    API_PATH = "/do/WS/NetoAPI"

    def __init__(
        self,
        client_id: str,
        timeout_seconds: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize Neto order client.

        Args:
            client_id: Neto app OAuth client ID (sent as X_ACCESS_KEY)
            timeout_seconds: Upper bound for each upstream call
            transport: Optional httpx transport (tests inject MockTransport)
        """
        self.client_id = client_id
        self._client = httpx.AsyncClient(
            headers={
                "Accept": "application/json",
                "Content-Type": "application/json",
            },
            timeout=timeout_seconds,
            transport=transport,
        )

    async def close(self):
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def api_url(self, store_domain: str) -> str:
        return f"https://{store_domain}{self.API_PATH}"

    def build_request_body(self, placed_from: datetime) -> Dict[str, Any]:
        """Filter body selecting orders placed since ``placed_from``."""
        return {
            "Filter": {
                "DatePlacedFrom": placed_from.isoformat().replace("+00:00", "Z"),
                "OutputSelector": list(ORDER_OUTPUT_SELECTOR),
            }
        }

    async def get_orders(
        self,
        store_domain: str,
        access_token: str,
        placed_from: datetime,
    ) -> List[Dict[str, Any]]:
        """
        Fetch raw order records placed since ``placed_from``.

        Args:
            store_domain: Store to query
            access_token: Store's OAuth access token (never logged)
            placed_from: Lower bound for DatePlaced

        Returns:
            List of raw order dicts (empty when the store has none)

        Raises:
            NetoApiError: On transport failure, timeout, non-2xx status,
                or a body that is not a usable order response
        """
        try:
            response = await self._client.post(
                self.api_url(store_domain),
                headers={
                    "X_ACCESS_KEY": self.client_id,
                    "X_SECRET_KEY": access_token,
                    "NETOAPI_ACTION": "GetOrder",
                },
                json=self.build_request_body(placed_from),
            )
            response.raise_for_status()
            data = response.json()

        except httpx.HTTPStatusError as e:
            logger.error("Neto API HTTP error", extra={
                "store_domain": store_domain,
                "status_code": e.response.status_code,
                "response": e.response.text[:500],
            })
            raise NetoApiError(
                f"Neto API error: {e.response.status_code}",
                store_domain=store_domain,
                status_code=e.response.status_code,
            ) from e
        except httpx.TimeoutException as e:
            logger.error("Neto API request timed out", extra={
                "store_domain": store_domain,
                "error_type": type(e).__name__,
            })
            raise NetoApiError("Neto API request timed out", store_domain=store_domain) from e
        except httpx.RequestError as e:
            logger.error("Neto API request error", extra={
                "store_domain": store_domain,
                "error": str(e),
            })
            raise NetoApiError(f"Request failed: {str(e)}", store_domain=store_domain) from e
        except ValueError as e:
            logger.error("Neto API returned non-JSON body", extra={
                "store_domain": store_domain,
            })
            raise NetoApiError("Malformed Neto API response", store_domain=store_domain) from e

        return self._extract_orders(data, store_domain)

    @staticmethod
    def _extract_orders(data: Any, store_domain: str) -> List[Dict[str, Any]]:
        if not isinstance(data, dict):
            raise NetoApiError("Malformed Neto API response", store_domain=store_domain)

        if data.get("Ack") == "Error":
            messages = data.get("Messages")
            logger.error("Neto API returned error ack", extra={
                "store_domain": store_domain,
                "messages": messages,
            })
            raise NetoApiError("Neto API rejected the request", store_domain=store_domain)

        orders = data.get("Order")
        if orders is None:
            return []
        # Neto collapses single-element arrays to an object in some responses
        if isinstance(orders, dict):
            orders = [orders]
        if not isinstance(orders, list):
            raise NetoApiError("Malformed Neto API response", store_domain=store_domain)
        return orders
