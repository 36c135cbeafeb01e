"""Paginated, retrying merge-request fetcher with team-relevance filtering."""

import logging

from pydantic import ValidationError

from mr_hygiene.clients.api_cache import ApiCache, generate_key
from mr_hygiene.clients.gitlab import GitLabClient
from mr_hygiene.clients.resilience import (
    ConfigurationError,
    FetchFailedError,
    SchemaChangeError,
    TransientAPIError,
    retrying,
)
from mr_hygiene.config import Settings, get_settings
from mr_hygiene.models.enums import MRState
from mr_hygiene.models.gitlab import (
    MergeRequest,
    MRPage,
    PageMetadata,
    TeamMRCollection,
    TeamUser,
)
from mr_hygiene.team.resolver import TeamResolver, is_team_relevant_mr

logger = logging.getLogger(__name__)

DEFAULT_PAGE = 1
DEFAULT_PER_PAGE = 25
FULL_SCAN_PER_PAGE = 100


def parse_positive_int(value: object, default: int) -> int:
    """Coerce *value* to a positive int, falling back to *default*.

    Accepts ints and numeric strings; anything missing, non-numeric or
    below 1 yields *default* instead of raising.
    """
    if value is None or isinstance(value, bool):
        return default
    try:
        number = int(str(value).strip())
    except ValueError:
        return default
    return number if number > 0 else default


def _parse_mrs(raw_items: list) -> list[MergeRequest]:
    try:
        return [MergeRequest.model_validate(raw) for raw in raw_items]
    except ValidationError as exc:
        raise SchemaChangeError(f"Unexpected merge request shape: {exc}") from exc


class MRFetcher:
    """Lists merge requests for a GitLab group on behalf of the team.

    Raw pages are cached in the shared GitLab API cache together with their
    pagination headers.  Team filtering happens after the cache, so a change
    of team never serves another team's MRs.

    Args:
        gitlab: GitLab API client.
        api_cache: Shared GitLab response cache.
        team_resolver: Resolves the team when a call does not supply one.
        settings: Application settings (group id, retry policy).
    """

    def __init__(
        self,
        gitlab: GitLabClient,
        api_cache: ApiCache,
        team_resolver: TeamResolver,
        settings: Settings | None = None,
    ) -> None:
        self.gitlab = gitlab
        self.api_cache = api_cache
        self.team_resolver = team_resolver
        self.settings = settings or get_settings()

    def _resolve_group_id(self, group_id: str | int | None) -> str:
        resolved = group_id or self.settings.gitlab_group_id
        if not resolved:
            raise ConfigurationError(
                "No group id given and GITLAB_GROUP_ID is not set"
            )
        return str(resolved)

    async def _team(self, team_users: list[TeamUser] | None) -> list[TeamUser]:
        if team_users is not None:
            return team_users
        return await self.team_resolver.resolve_team()

    async def _fetch_page(
        self,
        group_id: str,
        page: int,
        per_page: int,
        state: str | None,
        max_retries: int,
        skip_cache: bool,
    ) -> tuple[list, PageMetadata]:
        """Return one raw page, from cache or from GitLab with retries."""
        endpoint = f"groups/{group_id}/merge_requests"
        cache_key = generate_key(
            endpoint,
            {"state": state, "page": page, "per_page": per_page, "include_subgroups": True},
        )
        if not skip_cache:
            cached = self.api_cache.get(cache_key)
            if cached is not None:
                logger.debug("Using cached MR page %d for group %s", page, group_id)
                return cached.data, PageMetadata.from_headers(cached.headers, page, per_page)

        logger.info(
            "Fetching MRs for group %s (page=%d, per_page=%d, state=%s)",
            group_id, page, per_page, state,
        )
        try:
            async for attempt in retrying(
                max_retries,
                self.settings.retry_backoff_seconds,
                self.settings.retry_max_backoff_seconds,
            ):
                with attempt:
                    items, metadata, headers = await self.gitlab.list_group_merge_requests(
                        group_id, page, per_page, state
                    )
        except TransientAPIError as exc:
            logger.error(
                "Giving up on MR page %d for group %s after %d retries",
                page, group_id, max_retries,
            )
            raise FetchFailedError(
                f"Failed to fetch GitLab MRs after {max_retries} retries: {exc}",
                exc.status_code,
            ) from exc

        self.api_cache.set(cache_key, items, headers)
        return items, metadata

    async def fetch_team_mrs(
        self,
        group_id: str | int | None = None,
        page: object = DEFAULT_PAGE,
        per_page: object = DEFAULT_PER_PAGE,
        state: str | None = MRState.OPENED,
        max_retries: int | None = None,
        team_users: list[TeamUser] | None = None,
        skip_cache: bool = False,
    ) -> MRPage:
        """Fetch one page of MRs and keep those relevant to the team.

        Server errors are retried up to *max_retries* times; client errors
        propagate on the first attempt.  Pagination metadata is passed
        through from GitLab unchanged.

        Args:
            group_id: GitLab group id; defaults to ``GITLAB_GROUP_ID``.
            page: 1-based page number.
            per_page: Page size.
            state: MR state filter (``None`` for all).
            max_retries: Retry budget; defaults to ``MAX_RETRIES``.
            team_users: Team to filter by; resolved if omitted.
            skip_cache: Bypass the page cache on read.

        Returns:
            The filtered page and its metadata.
        """
        group = self._resolve_group_id(group_id)
        page = parse_positive_int(page, DEFAULT_PAGE)
        per_page = parse_positive_int(per_page, self.settings.default_per_page)
        retries = self.settings.max_retries if max_retries is None else max_retries

        team = await self._team(team_users)
        if not team:
            logger.warning("No team members resolved; returning no MRs")
            return MRPage(
                items=[],
                metadata=PageMetadata(current_page=page, per_page=per_page, total_items=0),
            )

        raw_items, metadata = await self._fetch_page(
            group, page, per_page, state, retries, skip_cache
        )
        items = [mr for mr in _parse_mrs(raw_items) if is_team_relevant_mr(mr, team)]
        logger.info(
            "Page %d: %d of %d MRs relevant to the team", page, len(items), len(raw_items)
        )
        return MRPage(items=items, metadata=metadata)

    async def fetch_all_team_mrs(
        self,
        group_id: str | int | None = None,
        team_users: list[TeamUser] | None = None,
        state: str | None = MRState.OPENED,
        max_retries: int | None = None,
        skip_cache: bool = False,
    ) -> TeamMRCollection:
        """Walk every page of MRs for a group and keep the team-relevant ones.

        ``total_items`` is the number of MRs left after filtering, not the
        upstream total.
        """
        group = self._resolve_group_id(group_id)
        retries = self.settings.max_retries if max_retries is None else max_retries

        team = await self._team(team_users)
        if not team:
            logger.warning("No team members resolved; returning no MRs")
            return TeamMRCollection(items=[], total_items=0)

        full_key = generate_key(
            f"groups/{group}/merge_requests-all",
            {"state": state, "per_page": FULL_SCAN_PER_PAGE, "include_subgroups": True},
        )
        cached = None if skip_cache else self.api_cache.get(full_key)
        if cached is not None:
            logger.info("Using cached full MR dataset for group %s", group)
            raw_items = cached.data
        else:
            raw_items = []
            page: int | None = 1
            while page is not None:
                items, metadata = await self._fetch_page(
                    group, page, FULL_SCAN_PER_PAGE, state, retries, skip_cache
                )
                raw_items.extend(items)
                next_page = metadata.next_page
                page = next_page if next_page and next_page > page else None
            logger.info("Fetched %d MRs for group %s", len(raw_items), group)
            self.api_cache.set(full_key, raw_items, {"x-total": len(raw_items)})

        team_mrs = [mr for mr in _parse_mrs(raw_items) if is_team_relevant_mr(mr, team)]
        logger.info("Filtered MRs for team relevance: %d", len(team_mrs))
        return TeamMRCollection(items=team_mrs, total_items=len(team_mrs))
