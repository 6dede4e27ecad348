"""
Offline cache shim.

Generation-based read-through cache with stale-while-revalidate fetch
handling, testable without a live network stack.
"""

from .models import CachedResponse, FetchRequest, NetworkError, RequestMode
from .shim import DEFAULT_EXCLUDED_PREFIXES, Network, OfflineCacheShim, ShimState
from .storage import CacheStorage, InMemoryCacheStorage

__all__ = [
    "CachedResponse",
    "FetchRequest",
    "NetworkError",
    "RequestMode",
    "DEFAULT_EXCLUDED_PREFIXES",
    "Network",
    "OfflineCacheShim",
    "ShimState",
    "CacheStorage",
    "InMemoryCacheStorage",
]
