import logging

from fastmcp import FastMCP

from mr_hygiene.server import Services, get_services
from mr_hygiene.tools.error_messages import safe_tool_wrapper
from mr_hygiene.tools.formatting import format_user

logger = logging.getLogger(__name__)


def _forget_team_results(services: Services) -> None:
    # Category and client caches are not keyed by team
    services.cache_manager.clear_api_response_caches()
    services.cache_manager.clear_client_cache()


def register_user_tools(mcp: FastMCP) -> None:
    """Register team and user lookup tools on the MCP server."""

    @mcp.tool
    async def list_team_users(group: str | None = None, refresh: bool = False) -> str:
        """List the members of the team, or of a named GitLab subgroup.

        Args:
            group: Subgroup name under the parent namespace. When omitted, the
                current team (or the configured default team) is listed.
            refresh: Bypass cached user data.

        Returns:
            One line per active user.
        """

        async def _list() -> str:
            services = get_services()
            if group:
                users = await services.team_resolver.fetch_users_by_group_name(
                    group, skip_cache=refresh
                )
                label = f"group '{group}'"
            else:
                users = await services.team_resolver.resolve_team(skip_cache=refresh)
                label = "the team"
            if not users:
                return f"No active users found for {label}."
            lines = [f"{len(users)} active user(s) in {label}:"]
            lines.extend(f"- {format_user(u)}" for u in users)
            return "\n".join(lines)

        return await safe_tool_wrapper(_list)

    @mcp.tool
    async def search_users(term: str) -> str:
        """Search active GitLab users by name or username.

        Args:
            term: Text to search for.

        Returns:
            Matching users, one per line.
        """

        async def _search() -> str:
            users = await get_services().team_resolver.search_users_by_name_or_username(term)
            if not users:
                return f"No active users match '{term}'."
            return "\n".join(f"- {format_user(u)}" for u in users)

        return await safe_tool_wrapper(_search)

    @mcp.tool
    async def manage_team(action: str, user_id: int | None = None) -> str:
        """Edit the current team selection.

        Args:
            action: "add" or "remove" a user, or "reset" back to the
                configured default team.
            user_id: GitLab user id, required for add and remove.

        Returns:
            Confirmation of the action taken.
        """

        async def _manage() -> str:
            services = get_services()
            resolver = services.team_resolver
            team = resolver.current_team

            if action == "reset":
                team.clear()
                _forget_team_results(services)
                return "Team reset to the configured default."

            if action not in ("add", "remove"):
                return f"Unknown action '{action}'. Use 'add', 'remove' or 'reset'."
            if user_id is None:
                return f"A user_id is required to {action} a team member."

            if not team.is_configured:
                team.replace(await resolver.get_default_team_users())

            if action == "remove":
                if not team.remove(user_id):
                    return f"User {user_id} is not on the team."
                _forget_team_results(services)
                return f"Removed user {user_id} from the team."

            users = await resolver.fetch_users_by_ids([user_id])
            if not users:
                return f"User {user_id} was not found or is not active."
            if not team.add(users[0]):
                return f"{format_user(users[0])} is already on the team."
            _forget_team_results(services)
            logger.info("Added user %d to the team", user_id)
            return f"Added {format_user(users[0])} to the team."

        return await safe_tool_wrapper(_manage)
