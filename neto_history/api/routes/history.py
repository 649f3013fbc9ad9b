"""
Recent order history route for the storefront widget.

GET /history
- Store is derived from the request's Origin header (scheme stripped)
- Returns a JSON array of {date_placed, sku, name, city}
- No pagination, no query parameters

Errors are raised as AppError subclasses and shaped by ErrorHandlerMiddleware.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from neto_history.api.dependencies import get_digest_cache, get_store_domain
from neto_history.services.digest_cache import FreshnessGatedCache

logger = logging.getLogger(__name__)

router = APIRouter(tags=["history"])


class OrderSummary(BaseModel):
    """Digest entry as returned to the widget."""
    date_placed: Optional[str] = None
    sku: Optional[str] = None
    name: Optional[str] = None
    city: Optional[str] = None


@router.get("/history", response_model=List[OrderSummary])
async def get_history(
    store_domain: str = Depends(get_store_domain),
    digest_cache: FreshnessGatedCache = Depends(get_digest_cache),
):
    """Return the recent-order digest for the calling store."""
    entries = await digest_cache.get_digest(store_domain)
    return [entry.to_dict() for entry in entries]
