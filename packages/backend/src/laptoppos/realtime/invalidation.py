"""Resource → cache-key invalidation.

Learn: The frontend caches every GET under its URL path. When the server
says "products changed", we don't patch cached data, we drop the keys
whose responses could contain products and let the views refetch.

The dashboard stats aggregate over everything, so any change except one
to the dashboard itself also drops /api/dashboard/stats.
"""

import threading
from typing import Any, Protocol

import structlog

logger = structlog.get_logger()

DASHBOARD_RESOURCE = "dashboard"
DASHBOARD_STATS_KEY = "/api/dashboard/stats"

RESOURCE_CACHE_KEYS: dict[str, tuple[str, ...]] = {
    "users": ("/api/users",),
    "customers": ("/api/customers",),
    "products": ("/api/products", "/api/products/low-stock"),
    "categories": ("/api/categories",),
    "service-tickets": ("/api/service-tickets",),
    "suppliers": ("/api/suppliers",),
    "transactions": ("/api/transactions",),
    "warranty-claims": ("/api/warranty-claims",),
    "roles": ("/api/roles",),
    "dashboard": (DASHBOARD_STATS_KEY,),
    "whatsapp": ("/api/whatsapp/status",),
    "inventory": ("/api/products", "/api/categories", "/api/reports/stock-movements"),
    "purchase-orders": ("/api/purchase-orders", "/api/purchase-orders/outstanding-items"),
    "stock-movements": ("/api/reports/stock-movements", "/api/products"),
}


class CacheController(Protocol):
    """Anything that can drop cached results stored under a key."""

    def invalidate(self, key: str) -> None: ...


def cache_keys_for(resource: str) -> list[str]:
    """Ordered keys to invalidate for a change to `resource`."""
    keys = list(RESOURCE_CACHE_KEYS.get(resource, ()))
    if resource != DASHBOARD_RESOURCE:
        keys.append(DASHBOARD_STATS_KEY)
    return keys


def invalidate_for_resource(resource: str, cache: CacheController) -> list[str]:
    """Invalidate every key mapped to `resource` and return them in order."""
    keys = cache_keys_for(resource)
    if resource not in RESOURCE_CACHE_KEYS:
        logger.debug("realtime.unmapped_resource", resource=resource)

    for key in keys:
        cache.invalidate(key)

    logger.debug("realtime.cache_invalidated", resource=resource, keys=keys)
    return keys


class QueryCache:
    """Minimal in-memory CacheController.

    Stores fetched results by key and counts invalidations so callers
    (the CLI, tests) can see which keys a push actually touched.
    """

    def __init__(self):
        self._data: dict[str, Any] = {}
        self._lock = threading.Lock()
        self.invalidations: list[str] = []

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = value

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)
            self.invalidations.append(key)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._data
