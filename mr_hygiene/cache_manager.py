"""Cache registry and the admin interface used to inspect and clear it."""

import logging
import time

from mr_hygiene.clients.api_cache import ApiCache
from mr_hygiene.clients.cache import Clock, TTLCache
from mr_hygiene.config import Settings
from mr_hygiene.models.cache import CacheActionResult, CacheStats
from mr_hygiene.models.enums import CacheAction, HygieneCategory

logger = logging.getLogger(__name__)


def get_mr_cache_key(
    category: HygieneCategory | str, page: int, per_page: int, threshold: int
) -> str:
    """Key for a formatted hygiene response in the client cache."""
    return f"mrs-{category}-page-{page}-per-{per_page}-threshold-{threshold}"


class CacheRegistry:
    """Every cache instance the process uses, created once at start-up.

    Instances are shared by reference.  Access happens on a single event
    loop, so no locking is applied.
    """

    def __init__(
        self,
        gitlab_api: ApiCache,
        jira_api: ApiCache,
        categories: dict[HygieneCategory, TTLCache],
        client: TTLCache,
    ) -> None:
        self.gitlab_api = gitlab_api
        self.jira_api = jira_api
        self.categories = categories
        self.client = client

    @classmethod
    def from_settings(
        cls, settings: Settings, clock: Clock = time.monotonic
    ) -> "CacheRegistry":
        categories = {
            category: TTLCache(str(category), settings.hygiene_cache_ttl_seconds, clock=clock)
            for category in HygieneCategory
        }
        return cls(
            gitlab_api=ApiCache("gitlab", settings.gitlab_api_ttl_seconds, clock=clock),
            jira_api=ApiCache("jira", settings.jira_api_ttl_seconds, clock=clock),
            categories=categories,
            client=TTLCache("client", settings.client_cache_ttl_seconds, clock=clock),
        )


class CacheManager:
    """Clears and reports on the caches in a registry."""

    def __init__(self, registry: CacheRegistry) -> None:
        self.registry = registry

    def clear_all(self) -> None:
        self.clear_api_response_caches()
        self.registry.gitlab_api.clear()
        self.registry.jira_api.clear()
        self.registry.client.clear()
        logger.info("All caches cleared")

    def clear_gitlab_cache(self) -> None:
        self.registry.gitlab_api.clear()
        logger.info("GitLab API cache cleared")

    def clear_jira_cache(self) -> None:
        self.registry.jira_api.clear()
        logger.info("Jira API cache cleared")

    def clear_api_response_caches(self) -> None:
        for cache in self.registry.categories.values():
            cache.clear()
        logger.info("API response caches cleared")

    def clear_client_cache(self) -> None:
        self.registry.client.clear()
        logger.info("Client cache cleared")

    def get_stats(self) -> dict[str, CacheStats]:
        """Live size, keys and hit/miss counts for every cache."""
        all_stats = [cache.stats() for cache in self.registry.categories.values()]
        all_stats += [
            self.registry.gitlab_api.get_stats(),
            self.registry.jira_api.get_stats(),
            self.registry.client.stats(),
        ]
        return {stats.name: stats for stats in all_stats}

    def dispatch(self, action: str) -> CacheActionResult:
        """Run an admin action by name.

        Returns:
            ``success=False`` with "Invalid action" for unknown names.
        """
        try:
            parsed = CacheAction(action)
        except ValueError:
            logger.warning("Invalid cache action: %s", action)
            return CacheActionResult(success=False, message="Invalid action")

        if parsed == CacheAction.GET_STATS:
            return CacheActionResult(success=True, stats=self.get_stats())

        handlers = {
            CacheAction.CLEAR_ALL: (self.clear_all, "All caches cleared"),
            CacheAction.CLEAR_GITLAB_API: (self.clear_gitlab_cache, "GitLab API cache cleared"),
            CacheAction.CLEAR_JIRA_API: (self.clear_jira_cache, "Jira API cache cleared"),
            CacheAction.CLEAR_API_RESPONSES: (
                self.clear_api_response_caches,
                "API response caches cleared",
            ),
            CacheAction.CLEAR_CLIENT_CACHE: (self.clear_client_cache, "Client cache cleared"),
        }
        handler, message = handlers[parsed]
        handler()
        return CacheActionResult(success=True, message=message)
