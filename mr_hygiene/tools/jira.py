from fastmcp import FastMCP

from mr_hygiene.server import get_services
from mr_hygiene.tools.error_messages import safe_tool_wrapper
from mr_hygiene.tools.formatting import format_ticket

JIRA_CONTEXT = {"service": "Jira"}
NOT_CONFIGURED = "Jira is not configured. Set JIRA_HOST, JIRA_EMAIL and JIRA_API_TOKEN."


def register_jira_tools(mcp: FastMCP) -> None:
    """Register Jira ticket tools on the MCP server."""

    @mcp.tool
    async def get_jira_ticket(key: str, skip_cache: bool = False) -> str:
        """Look up a Jira ticket by key, e.g. "ABC-123".

        Args:
            key: Ticket key.
            skip_cache: Fetch fresh data from Jira.

        Returns:
            Ticket summary with status, assignee, epic and sprint.
        """

        async def _get() -> str:
            jira = get_services().jira
            if jira is None:
                return NOT_CONFIGURED
            ticket = await jira.get_ticket(key.strip().upper(), skip_cache=skip_cache)
            if ticket is None:
                return f"Ticket {key} not found."
            return format_ticket(ticket)

        return await safe_tool_wrapper(_get, context=JIRA_CONTEXT)

    @mcp.tool
    async def search_jira_tickets(jql: str, skip_cache: bool = False) -> str:
        """Search Jira with a JQL query.

        Args:
            jql: JQL query, e.g. 'project = ABC AND status = "In Progress"'.
            skip_cache: Fetch fresh data from Jira.

        Returns:
            Matching tickets, separated by blank lines.
        """

        async def _search() -> str:
            jira = get_services().jira
            if jira is None:
                return NOT_CONFIGURED
            tickets = await jira.search_tickets(jql, skip_cache=skip_cache)
            if not tickets:
                return "No tickets match the query."
            return "\n\n".join(format_ticket(t) for t in tickets)

        return await safe_tool_wrapper(_search, context=JIRA_CONTEXT)
