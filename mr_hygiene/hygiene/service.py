"""Hygiene category pipeline: fetch, classify, annotate, cache."""

import logging
from datetime import UTC, datetime

from mr_hygiene.clients.cache import TTLCache
from mr_hygiene.hygiene.classifier import ThresholdSettings, classify
from mr_hygiene.merge_requests.fetcher import (
    DEFAULT_PAGE,
    MRFetcher,
    parse_positive_int,
)
from mr_hygiene.models.enums import HygieneCategory, MRState
from mr_hygiene.models.hygiene import HygieneMetadata, HygieneResult
from mr_hygiene.team.resolver import TeamResolver

logger = logging.getLogger(__name__)


def category_cache_key(
    category: HygieneCategory,
    group_id: str | None,
    page: int,
    per_page: int,
    threshold: int,
) -> str:
    return f"{category}-{group_id}-{page}-{per_page}-{threshold}"


class HygieneService:
    """Serves one hygiene category page at a time.

    Each category has its own TTL cache.  ``skip_cache`` skips the lookup but
    the fresh result still replaces the cached one.

    Args:
        fetcher: MR fetcher used on cache miss.
        team_resolver: Resolves the team for filtering and pending-review.
        caches: One TTL cache per category.
        thresholds: Current default threshold per category.
        default_per_page: Page size when the request gives none.
        default_group_id: Group used when a request names none.
    """

    def __init__(
        self,
        fetcher: MRFetcher,
        team_resolver: TeamResolver,
        caches: dict[HygieneCategory, TTLCache],
        thresholds: ThresholdSettings,
        default_per_page: int = 25,
        default_group_id: str | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.team_resolver = team_resolver
        self.caches = caches
        self.thresholds = thresholds
        self.default_per_page = default_per_page
        self.default_group_id = default_group_id

    async def get_category(
        self,
        category: HygieneCategory,
        page: object = DEFAULT_PAGE,
        per_page: object = None,
        threshold: object = None,
        skip_cache: bool = False,
        group_id: str | None = None,
    ) -> HygieneResult:
        """Return the MRs in *category* for one page.

        Args:
            category: Hygiene category.
            page: 1-based page number.
            per_page: Page size.
            threshold: Days override; the current setting is used if absent
                or invalid.
            skip_cache: Force a fresh fetch.
            group_id: GitLab group; defaults to ``GITLAB_GROUP_ID``.
        """
        page = parse_positive_int(page, DEFAULT_PAGE)
        per_page = parse_positive_int(per_page, self.default_per_page)
        threshold_days = parse_positive_int(threshold, self.thresholds.get(category))
        group = str(group_id) if group_id else self.default_group_id

        cache = self.caches[category]
        cache_key = category_cache_key(category, group, page, per_page, threshold_days)
        if not skip_cache:
            cached = cache.get(cache_key)
            if cached is not None:
                logger.debug("Serving %s from cache: %s", category, cache_key)
                return cached

        logger.info(
            "Fetching %s MRs (page=%d, per_page=%d, threshold=%d)",
            category, page, per_page, threshold_days,
        )
        team = await self.team_resolver.resolve_team()
        mr_page = await self.fetcher.fetch_team_mrs(
            group_id=group,
            page=page,
            per_page=per_page,
            state=MRState.OPENED,
            team_users=team,
            skip_cache=skip_cache,
        )
        items = classify(category, mr_page.items, threshold_days, team)

        result = HygieneResult(
            items=items,
            metadata=HygieneMetadata(
                **mr_page.metadata.model_dump(),
                threshold=threshold_days,
                last_refreshed=datetime.now(tz=UTC).isoformat(),
            ),
        )
        cache.set(cache_key, result)
        return result
