import logging

from fastmcp import FastMCP

from mr_hygiene.clients.jira import SEARCH_MAX_RESULTS
from mr_hygiene.merge_requests.tickets import (
    extract_ticket_key,
    group_by_ticket,
    reviewer_queue,
)
from mr_hygiene.server import get_services
from mr_hygiene.tools.error_messages import safe_tool_wrapper
from mr_hygiene.tools.formatting import format_mr, format_ticket_group
from mr_hygiene.tools.jira import NOT_CONFIGURED

logger = logging.getLogger(__name__)


def register_view_tools(mcp: FastMCP) -> None:
    """Register the product-owner and developer views on the MCP server."""

    @mcp.tool
    async def ticket_overview(skip_cache: bool = False) -> str:
        """Group the team's open merge requests by the Jira ticket they reference.

        A ticket key is taken from the MR title, or its description when the
        title has none.

        Args:
            skip_cache: Fetch fresh data from GitLab and Jira.

        Returns:
            One entry per ticket with open, overdue and stalled MR counts.
        """

        async def _overview() -> str:
            services = get_services()
            if services.jira is None:
                return NOT_CONFIGURED

            collection = await services.fetcher.fetch_all_team_mrs(skip_cache=skip_cache)
            keys = sorted({k for mr in collection.items if (k := extract_ticket_key(mr))})
            if not keys:
                return "None of the team's open merge requests reference a Jira ticket."

            tickets = []
            for start in range(0, len(keys), SEARCH_MAX_RESULTS):
                chunk = keys[start : start + SEARCH_MAX_RESULTS]
                jql = f"key in ({', '.join(chunk)})"
                tickets.extend(
                    await services.jira.search_tickets(jql, skip_cache=skip_cache)
                )

            groups = group_by_ticket(collection.items, tickets)
            if not groups:
                return "No referenced tickets could be found in Jira."
            logger.info("Grouped %d MRs under %d tickets", collection.total_items, len(groups))
            return "\n".join(format_ticket_group(g) for g in groups)

        return await safe_tool_wrapper(_overview)

    @mcp.tool
    async def review_queue(user_id: int, skip_cache: bool = False) -> str:
        """List the team's open merge requests where a user is a reviewer.

        Args:
            user_id: GitLab user id of the reviewer.
            skip_cache: Fetch fresh data from GitLab.

        Returns:
            The reviewer's queue, oldest first as returned by GitLab.
        """

        async def _queue() -> str:
            services = get_services()
            collection = await services.fetcher.fetch_all_team_mrs(skip_cache=skip_cache)
            queue = reviewer_queue(collection.items, user_id)
            if not queue:
                return f"No open merge requests are waiting on user {user_id}."
            lines = [f"{len(queue)} merge request(s) waiting on user {user_id}:"]
            lines.extend(format_mr(mr) for mr in queue)
            return "\n".join(lines)

        return await safe_tool_wrapper(_queue)
