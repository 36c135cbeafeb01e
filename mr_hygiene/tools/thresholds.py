from fastmcp import FastMCP

from mr_hygiene.models.enums import HygieneCategory
from mr_hygiene.server import get_services
from mr_hygiene.tools.error_messages import safe_tool_wrapper


def _describe(values: dict[str, int]) -> str:
    return ", ".join(f"{name}={days}d" for name, days in values.items())


def register_threshold_tools(mcp: FastMCP) -> None:
    """Register hygiene threshold tools on the MCP server."""

    @mcp.tool
    async def set_threshold(category: str, days: int) -> str:
        """Change the default threshold for a hygiene category.

        Args:
            category: "too-old", "not-updated" or "pending-review".
            days: Positive number of days.

        Returns:
            The updated thresholds, or why the change was refused.
        """

        async def _set() -> str:
            try:
                parsed = HygieneCategory(category)
            except ValueError:
                valid = ", ".join(c.value for c in HygieneCategory)
                return f"Unknown category '{category}'. Use one of: {valid}."

            services = get_services()
            if not services.thresholds.update(parsed, days):
                return f"Threshold must be a positive whole number of days, got {days!r}."
            services.cache_manager.clear_client_cache()
            return f"Thresholds: {_describe(services.thresholds.as_dict())}"

        return await safe_tool_wrapper(_set)

    @mcp.tool
    async def reset_thresholds() -> str:
        """Restore every hygiene threshold to its configured default.

        Returns:
            The restored thresholds.
        """

        async def _reset() -> str:
            services = get_services()
            services.thresholds.reset()
            services.cache_manager.clear_client_cache()
            return f"Thresholds reset: {_describe(services.thresholds.as_dict())}"

        return await safe_tool_wrapper(_reset)
