"""Response cache for upstream API calls, keyed by endpoint + parameters."""

import logging
import time
from collections.abc import Mapping

from mr_hygiene.clients.cache import CacheMetrics, Clock, TTLCache
from mr_hygiene.models.cache import CachedResponse, CacheStats

logger = logging.getLogger(__name__)

Scalar = str | int | float | bool | None

# Fields that make up the key for each endpoint the core caches.
ENDPOINT_KEY_FIELDS: dict[str, frozenset[str]] = {
    "usersByGroup": frozenset({"group"}),
    "searchUsers": frozenset({"search"}),
    "user": frozenset({"id"}),
    "getTicket": frozenset({"key"}),
    "searchTickets": frozenset({"jql", "max_results"}),
    "merge_requests": frozenset({"state", "page", "per_page", "include_subgroups"}),
    "merge_requests-all": frozenset({"state", "per_page", "include_subgroups"}),
}


def _schema_name(endpoint: str) -> str:
    # "groups/42/merge_requests-all" is checked against "merge_requests-all"
    return endpoint.rsplit("/", 1)[-1]


def _render(value: Scalar) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def generate_key(endpoint: str, params: Mapping[str, Scalar] | None = None) -> str:
    """Build a deterministic cache key for an endpoint call.

    Parameters are sorted by name so insertion order never matters, and
    ``None`` values are left out so an omitted and an explicit-``None``
    parameter share a key.

    Args:
        endpoint: Logical endpoint name or path, e.g. ``"usersByGroup"``.
        params: Scalar request parameters.

    Returns:
        A key of the form ``"endpoint?a=1&b=2"``.
    """
    params = params or {}
    allowed = ENDPOINT_KEY_FIELDS.get(_schema_name(endpoint))
    if allowed is not None:
        unexpected = set(params) - allowed
        if unexpected:
            logger.warning(
                "Unexpected cache key fields for %s: %s", endpoint, sorted(unexpected)
            )

    rendered = "&".join(
        f"{name}={_render(params[name])}"
        for name in sorted(params)
        if params[name] is not None
    )
    return f"{endpoint}?{rendered}"


class ApiCache:
    """TTL cache that stores upstream payloads together with their headers.

    Args:
        name: Cache name, used in logs and stats (``"gitlab"``, ``"jira"``).
        default_ttl_seconds: TTL used when ``set`` is called without one.
        clock: Monotonic time source; injectable for tests.
    """

    def __init__(
        self,
        name: str,
        default_ttl_seconds: float = 900,
        *,
        clock: Clock = time.monotonic,
    ) -> None:
        self.name = name
        self._cache = TTLCache(name, default_ttl_seconds, clock=clock)
        logger.debug("Created %s API cache (ttl=%ss)", name, default_ttl_seconds)

    @staticmethod
    def generate_key(endpoint: str, params: Mapping[str, Scalar] | None = None) -> str:
        return generate_key(endpoint, params)

    @property
    def metrics(self) -> CacheMetrics:
        return self._cache.metrics

    def set(
        self,
        key: str,
        data: object,
        headers: Mapping[str, object] | None = None,
        ttl_seconds: float | None = None,
    ) -> None:
        """Store an API response under *key*."""
        normalized = {str(k).lower(): str(v) for k, v in (headers or {}).items()}
        self._cache.set(key, data, ttl_seconds=ttl_seconds, headers=normalized)
        logger.debug("Cached %s API response: %s", self.name, key)

    def get(self, key: str) -> CachedResponse | None:
        """Return the cached response for *key*, or None on miss/expiry."""
        entry = self._cache.get_entry(key)
        if entry is None:
            logger.debug("%s API cache miss: %s", self.name, key)
            return None
        logger.debug("%s API cache hit: %s", self.name, key)
        return CachedResponse(
            data=entry.value, headers=entry.headers or {}, cached_at=entry.created_at
        )

    def delete(self, key: str) -> bool:
        removed = self._cache.remove(key)
        if removed:
            logger.debug("Deleted %s API cache entry: %s", self.name, key)
        return removed

    def clear(self) -> None:
        self._cache.clear()
        logger.debug("%s API cache cleared", self.name)

    def get_stats(self) -> CacheStats:
        return self._cache.stats()
