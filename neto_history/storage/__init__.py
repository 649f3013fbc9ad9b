"""Key-value storage for credentials and order digests."""

from neto_history.storage.kv_store import (
    KeyValueStore,
    RedisKeyValueStore,
    expiry_key,
    oauth_state_key,
    orders_key,
    token_key,
)

__all__ = [
    "KeyValueStore",
    "RedisKeyValueStore",
    "expiry_key",
    "oauth_state_key",
    "orders_key",
    "token_key",
]
