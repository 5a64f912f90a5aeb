"""
Caching package for the Quake Proxy.

Holds the key-value store adapter shared with the rate limiter and the
canonical key derivation for cached earthquake payloads. Entries are never
invalidated explicitly; they expire.
"""

from .keys import event_cache_key, query_cache_key, rate_limit_key
from .store import KeyValueStore, RedisKeyValueStore

__all__ = [
    "KeyValueStore",
    "RedisKeyValueStore",
    "event_cache_key",
    "query_cache_key",
    "rate_limit_key",
]
