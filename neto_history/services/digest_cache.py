"""
Freshness-gated order digest cache.

Decides, per store, whether the cached digest is still valid and refreshes
it when it is not.

Freshness rules:
- Stale when now > expiry, or when expiry is absent or unparseable
- now == expiry is fresh
- A fresh expiry with a missing or corrupt digest blob is treated as stale

Refresh (stale path):
1. Load the store's credential (UnauthorizedTenantError if absent)
2. Fetch and normalize orders (UpstreamError propagates)
3. Write digest, then expiry = now + ttl
4. Return the fresh digest

The two writes are not atomic. Digest is written first, so a crash between
them leaves the old expiry in place and the next read refreshes again.

Single-flight: at most one refresh per store at a time. The first stale
caller starts a refresh task; stale callers arriving while it runs await
that same task and receive its result or its exception, so N concurrent
stale reads make one upstream call whether it succeeds or fails. Callers
arriving after the task finishes start a new one. Refresh tasks and forced
refreshes serialize on a per-store asyncio.Lock and re-check freshness once
they hold it. The fresh path never takes the lock. All of this is
process-local; a single logical cache instance is assumed.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import AsyncIterator, Callable, Dict, List, Optional

from neto_history.credentials.store import CredentialStore
from neto_history.platform.errors import CacheCorruptionError, UpstreamError
from neto_history.services.order_digest import (
    DigestEntry,
    OrderDigestFetcher,
    deserialize_digest,
    serialize_digest,
    utc_now,
)
from neto_history.storage.kv_store import KeyValueStore, expiry_key, orders_key

logger = logging.getLogger(__name__)

DEFAULT_DIGEST_TTL_DAYS = 60


def parse_expiry(raw: Optional[str]) -> Optional[datetime]:
    """Parse a stored expiry; None when absent or unparseable."""
    if not raw:
        return None
    try:
        value = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        logger.warning("Unparseable digest expiry", extra={"raw_expiry": raw[:64]})
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def format_expiry(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat()


@dataclass
class _LockEntry:
    lock: asyncio.Lock
    holders: int = 0


class FreshnessGatedCache:
    """
    Per-store digest cache with lazy, single-flight refresh.

    All authoritative state lives in the key-value store; the only
    process-local state is the lock registry and the in-flight refresh tasks.
    """

    def __init__(
        self,
        kv_store: KeyValueStore,
        credentials: CredentialStore,
        fetcher: OrderDigestFetcher,
        ttl_days: int = DEFAULT_DIGEST_TTL_DAYS,
        clock: Callable[[], datetime] = utc_now,
        serve_stale_on_error: bool = False,
    ):
        """
        Initialize the digest cache.

        Args:
            kv_store: Shared key-value store
            credentials: Credential manager used on refresh
            fetcher: Order digest fetcher used on refresh
            ttl_days: Digest validity window after a refresh
            clock: Returns the current UTC time
            serve_stale_on_error: Opt-in deviation. When True, a refresh that
                fails with UpstreamError returns the last stored digest
                instead of raising. Off by default: refresh failures are
                reported, not masked.
        """
        self.kv = kv_store
        self.credentials = credentials
        self.fetcher = fetcher
        self.ttl = timedelta(days=ttl_days)
        self.clock = clock
        self.serve_stale_on_error = serve_stale_on_error
        self._locks: Dict[str, _LockEntry] = {}
        self._inflight: Dict[str, "asyncio.Future[List[DigestEntry]]"] = {}

    async def get_digest(self, store_domain: str) -> List[DigestEntry]:
        """
        Return the store's digest, refreshing it first if stale.

        Raises:
            UnauthorizedTenantError: No credential on file
            UpstreamError: Refresh failed
            StorageUnavailableError: Key-value store unreachable
        """
        cached = await self._read_fresh(store_domain)
        if cached is not None:
            return cached

        # No await between lookup and registration, so one task per store
        task = self._inflight.get(store_domain)
        if task is None or task.done():
            task = asyncio.ensure_future(self._refresh_locked(store_domain))
            self._inflight[store_domain] = task
            task.add_done_callback(
                lambda done, key=store_domain: self._forget_inflight(key, done)
            )
        else:
            logger.debug(
                "Joining in-flight digest refresh",
                extra={"store_domain": store_domain},
            )

        # Shielded: a cancelled caller must not cancel the shared refresh
        return await asyncio.shield(task)

    async def refresh(self, store_domain: str) -> List[DigestEntry]:
        """Force a refresh regardless of expiry."""
        async with self._tenant_lock(store_domain):
            return await self._refresh(store_domain)

    async def invalidate(self, store_domain: str) -> None:
        """Drop the expiry so the next read refreshes."""
        await self.kv.delete(expiry_key(store_domain))
        logger.info("Digest invalidated", extra={"store_domain": store_domain})

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _forget_inflight(self, store_domain: str, task: "asyncio.Future") -> None:
        if self._inflight.get(store_domain) is task:
            del self._inflight[store_domain]
        if not task.cancelled():
            # Mark the outcome retrieved even if every caller was cancelled
            task.exception()

    async def _refresh_locked(self, store_domain: str) -> List[DigestEntry]:
        async with self._tenant_lock(store_domain):
            # A forced refresh may have completed while we waited
            cached = await self._read_fresh(store_domain)
            if cached is not None:
                return cached
            return await self._refresh_or_fallback(store_domain)

    @asynccontextmanager
    async def _tenant_lock(self, store_domain: str) -> AsyncIterator[None]:
        # No await between lookup and increment, so the registry is race-free
        entry = self._locks.get(store_domain)
        if entry is None:
            entry = self._locks[store_domain] = _LockEntry(lock=asyncio.Lock())
        entry.holders += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.holders -= 1
            if entry.holders == 0:
                del self._locks[store_domain]

    async def _read_fresh(self, store_domain: str) -> Optional[List[DigestEntry]]:
        """Return the stored digest if fresh and readable, else None."""
        expiry = parse_expiry(await self.kv.get(expiry_key(store_domain)))
        now = self.clock()
        if expiry is None or now > expiry:
            return None

        blob = await self.kv.get(orders_key(store_domain))
        try:
            return deserialize_digest(blob)
        except CacheCorruptionError as e:
            logger.warning(
                "Stored digest unreadable, forcing refresh",
                extra={"store_domain": store_domain, "error": str(e)},
            )
            return None

    async def _refresh_or_fallback(self, store_domain: str) -> List[DigestEntry]:
        try:
            return await self._refresh(store_domain)
        except UpstreamError:
            if not self.serve_stale_on_error:
                raise
            stale = await self._read_stale(store_domain)
            if stale is None:
                raise
            logger.warning(
                "Digest refresh failed, serving stale digest",
                extra={"store_domain": store_domain, "order_count": len(stale)},
            )
            return stale

    async def _read_stale(self, store_domain: str) -> Optional[List[DigestEntry]]:
        try:
            return deserialize_digest(await self.kv.get(orders_key(store_domain)))
        except CacheCorruptionError:
            return None

    async def _refresh(self, store_domain: str) -> List[DigestEntry]:
        access_token = await self.credentials.require_credential(store_domain)
        entries = await self.fetcher.fetch_digest(store_domain, access_token)

        new_expiry = self.clock() + self.ttl
        await self.kv.set(orders_key(store_domain), serialize_digest(entries))
        await self.kv.set(expiry_key(store_domain), format_expiry(new_expiry))

        logger.info(
            "Digest refreshed",
            extra={
                "store_domain": store_domain,
                "order_count": len(entries),
                "expires_at": format_expiry(new_expiry),
            },
        )
        return entries
