"""
Order digest fetching and normalization.

A digest is the list of simplified recent orders served to the storefront
widget. Each entry is built from the FIRST order line only; multi-line
orders are summarized by that line's SKU and product name.

Normalization policy: an order with no usable first line, or with a field
that is neither text nor a number, fails the whole batch with
UpstreamError. Numeric fields (a numeric SKU, say) are kept as their
string form. Records are never silently dropped, so a digest is either
complete for the fetch window or not produced at all.
"""

import json
import logging
from dataclasses import dataclass, asdict
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from neto_history.integrations.neto.client import NetoOrderClient
from neto_history.platform.errors import CacheCorruptionError, UpstreamError

logger = logging.getLogger(__name__)

DEFAULT_LOOKBACK_HOURS = 24


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


DIGEST_FIELDS = ("date_placed", "sku", "name", "city")


@dataclass(frozen=True)
class DigestEntry:
    """Simplified order summary as served to the widget."""
    date_placed: Optional[str]
    sku: Optional[str]
    name: Optional[str]
    city: Optional[str]

    def to_dict(self) -> Dict[str, Optional[str]]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DigestEntry":
        """
        Rebuild an entry from its stored form.

        Raises:
            TypeError: If ``data`` is not a dict or a field is not str or None
            KeyError: If a field is missing
        """
        if not isinstance(data, dict):
            raise TypeError("digest entry is not an object")
        values = {name: data[name] for name in DIGEST_FIELDS}
        for name, value in values.items():
            if value is not None and not isinstance(value, str):
                raise TypeError(f"digest field {name} is {type(value).__name__}")
        return cls(**values)


class OrderNormalizationError(UpstreamError):
    """A raw order record could not be turned into a digest entry."""

    def __init__(self, message: str, order_id: Optional[str] = None):
        super().__init__(message, details={"order_id": order_id} if order_id else None)


def _bill_city(raw_order: Dict[str, Any]) -> Optional[str]:
    city = raw_order.get("BillCity")
    if city is None:
        bill_address = raw_order.get("BillAddress")
        if isinstance(bill_address, dict):
            city = bill_address.get("BillCity")
    return city


def normalize_order(raw_order: Dict[str, Any]) -> DigestEntry:
    """
    Normalize one raw Neto order into a DigestEntry.

    Raises:
        OrderNormalizationError: If the order has no line items or a field
            is neither text nor a number
    """
    if not isinstance(raw_order, dict):
        raise OrderNormalizationError("Order record is not an object")

    order_lines = raw_order.get("OrderLine")
    # Neto collapses single-element arrays to an object in some responses
    if isinstance(order_lines, dict):
        order_lines = [order_lines]
    if not order_lines or not isinstance(order_lines, list) or not isinstance(order_lines[0], dict):
        raise OrderNormalizationError(
            "Order has no line items",
            order_id=raw_order.get("OrderID"),
        )

    first_line = order_lines[0]
    order_id = raw_order.get("OrderID")
    return DigestEntry(
        date_placed=_text_field(raw_order.get("DatePlaced"), "DatePlaced", order_id),
        sku=_text_field(first_line.get("SKU"), "SKU", order_id),
        name=_text_field(first_line.get("ProductName"), "ProductName", order_id),
        city=_text_field(_bill_city(raw_order), "BillCity", order_id),
    )


def _text_field(value: Any, field: str, order_id: Any) -> Optional[str]:
    """Strings and None pass through; numbers become strings; anything else fails."""
    if value is None or isinstance(value, str):
        return value
    # bool is an int subclass but never a valid SKU, name or date
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    raise OrderNormalizationError(
        f"Order field {field} has unsupported type {type(value).__name__}",
        order_id=order_id,
    )


def normalize_orders(raw_orders: List[Dict[str, Any]]) -> List[DigestEntry]:
    """Normalize a batch, preserving upstream order. Fails on the first bad record."""
    return [normalize_order(raw) for raw in raw_orders]


def serialize_digest(entries: List[DigestEntry]) -> str:
    return json.dumps([entry.to_dict() for entry in entries])


def deserialize_digest(blob: Optional[str]) -> List[DigestEntry]:
    """
    Parse a stored digest blob.

    Raises:
        CacheCorruptionError: If the blob is missing or unparseable
    """
    if blob is None:
        raise CacheCorruptionError("Digest blob is missing")
    try:
        data = json.loads(blob)
        if not isinstance(data, list):
            raise TypeError("digest blob is not a list")
        return [DigestEntry.from_dict(item) for item in data]
    except (ValueError, TypeError, KeyError) as e:
        raise CacheCorruptionError(f"Digest blob is corrupt: {type(e).__name__}") from e


class OrderDigestFetcher:
    """
    Calls the order API for a store and normalizes the response.

    Single upstream call per invocation; failures surface as UpstreamError.
    """

    def __init__(
        self,
        client: NetoOrderClient,
        lookback_hours: int = DEFAULT_LOOKBACK_HOURS,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.client = client
        self.lookback = timedelta(hours=lookback_hours)
        self.clock = clock

    async def fetch_digest(self, store_domain: str, access_token: str) -> List[DigestEntry]:
        """
        Fetch orders placed within the lookback window and normalize them.

        Raises:
            UpstreamError: On any upstream or normalization failure
        """
        placed_from = self.clock() - self.lookback
        raw_orders = await self.client.get_orders(store_domain, access_token, placed_from)

        try:
            entries = normalize_orders(raw_orders)
        except OrderNormalizationError as e:
            logger.error(
                "Order normalization failed",
                extra={"store_domain": store_domain, "error": e.message, **e.details},
            )
            raise

        logger.info(
            "Fetched order digest",
            extra={"store_domain": store_domain, "order_count": len(entries)},
        )
        return entries
