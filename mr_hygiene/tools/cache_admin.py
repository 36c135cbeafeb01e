from fastmcp import FastMCP

from mr_hygiene.server import get_services
from mr_hygiene.tools.error_messages import safe_tool_wrapper


def register_cache_tools(mcp: FastMCP) -> None:
    """Register the cache administration tool on the MCP server."""

    @mcp.tool
    async def manage_cache(action: str) -> str:
        """Clear caches or report their statistics.

        Args:
            action: One of "clear_all", "clear_gitlab_api", "clear_jira_api",
                "clear_api_responses", "clear_client_cache" or "get_stats".

        Returns:
            JSON with ``success`` and either ``message`` or ``stats``.
        """

        async def _manage() -> str:
            result = get_services().cache_manager.dispatch(action)
            return result.model_dump_json(exclude_none=True)

        return await safe_tool_wrapper(_manage)
