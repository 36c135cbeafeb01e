import logging

from fastmcp import FastMCP

from mr_hygiene.cache_manager import get_mr_cache_key
from mr_hygiene.hygiene.classifier import classify
from mr_hygiene.merge_requests.fetcher import DEFAULT_PAGE, parse_positive_int
from mr_hygiene.models.enums import HygieneCategory
from mr_hygiene.server import get_services
from mr_hygiene.tools.error_messages import safe_tool_wrapper
from mr_hygiene.tools.formatting import CATEGORY_TITLES, format_hygiene_result

logger = logging.getLogger(__name__)


async def _category_report(
    category: HygieneCategory,
    page: int | str | None,
    per_page: int | str | None,
    threshold: int | str | None,
    skip_cache: bool,
) -> str:
    services = get_services()
    page_no = parse_positive_int(page, DEFAULT_PAGE)
    size = parse_positive_int(per_page, services.hygiene.default_per_page)
    days = parse_positive_int(threshold, services.thresholds.get(category))

    client_cache = services.caches.client
    key = get_mr_cache_key(category, page_no, size, days)
    if not skip_cache:
        cached = client_cache.get(key)
        if cached is not None:
            return cached

    result = await services.hygiene.get_category(
        category, page=page_no, per_page=size, threshold=days, skip_cache=skip_cache
    )
    text = format_hygiene_result(category, result)
    client_cache.set(key, text)
    return text


def register_hygiene_tools(mcp: FastMCP) -> None:
    """Register hygiene category tools on the MCP server."""

    @mcp.tool
    async def list_too_old_mrs(
        page: int | str | None = None,
        per_page: int | str | None = None,
        threshold: int | str | None = None,
        skip_cache: bool = False,
    ) -> str:
        """List the team's open merge requests created too long ago.

        Args:
            page: Page number, starting at 1.
            per_page: Merge requests fetched per page.
            threshold: Age in days; defaults to the current setting (28).
            skip_cache: Fetch fresh data from GitLab.

        Returns:
            Formatted list of matching merge requests.
        """
        return await safe_tool_wrapper(
            _category_report, HygieneCategory.TOO_OLD, page, per_page, threshold, skip_cache
        )

    @mcp.tool
    async def list_not_updated_mrs(
        page: int | str | None = None,
        per_page: int | str | None = None,
        threshold: int | str | None = None,
        skip_cache: bool = False,
    ) -> str:
        """List the team's open merge requests with no recent activity.

        Args:
            page: Page number, starting at 1.
            per_page: Merge requests fetched per page.
            threshold: Days without an update; defaults to the current setting (14).
            skip_cache: Fetch fresh data from GitLab.

        Returns:
            Formatted list of matching merge requests.
        """
        return await safe_tool_wrapper(
            _category_report,
            HygieneCategory.NOT_UPDATED,
            page,
            per_page,
            threshold,
            skip_cache,
        )

    @mcp.tool
    async def list_pending_review_mrs(
        page: int | str | None = None,
        per_page: int | str | None = None,
        threshold: int | str | None = None,
        skip_cache: bool = False,
    ) -> str:
        """List open merge requests waiting on a team reviewer.

        Args:
            page: Page number, starting at 1.
            per_page: Merge requests fetched per page.
            threshold: Days without an update; defaults to the current setting (7).
            skip_cache: Fetch fresh data from GitLab.

        Returns:
            Formatted list of matching merge requests.
        """
        return await safe_tool_wrapper(
            _category_report,
            HygieneCategory.PENDING_REVIEW,
            page,
            per_page,
            threshold,
            skip_cache,
        )

    @mcp.tool
    async def get_hygiene_summary(skip_cache: bool = False) -> str:
        """Count the team's open merge requests in every hygiene category.

        Walks all pages of open MRs once and applies the current thresholds.

        Args:
            skip_cache: Fetch fresh data from GitLab.

        Returns:
            One line per category with its threshold and count.
        """

        async def _summary() -> str:
            services = get_services()
            team = await services.team_resolver.resolve_team(skip_cache=skip_cache)
            collection = await services.fetcher.fetch_all_team_mrs(
                team_users=team, skip_cache=skip_cache
            )
            lines = [f"Open team MRs: {collection.total_items}"]
            for category in HygieneCategory:
                days = services.thresholds.get(category)
                count = len(classify(category, collection.items, days, team))
                lines.append(f"- {CATEGORY_TITLES[category]} (> {days} days): {count}")
            return "\n".join(lines)

        return await safe_tool_wrapper(_summary)
