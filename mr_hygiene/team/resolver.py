"""Team membership: who "the team" is, and which MRs concern it."""

import asyncio
import logging
from collections.abc import Iterable

from pydantic import ValidationError

from mr_hygiene.clients.api_cache import ApiCache, generate_key
from mr_hygiene.clients.gitlab import GitLabClient
from mr_hygiene.clients.resilience import APIError
from mr_hygiene.config import Settings, get_settings
from mr_hygiene.models.gitlab import MergeRequest, TeamUser

logger = logging.getLogger(__name__)


def parse_team_user_ids(raw: str | None) -> list[int]:
    """Parse a colon-delimited id list such as ``"12:34:56"``.

    Invalid tokens are dropped and duplicates collapse to their first
    occurrence.  Empty or missing input yields an empty list.
    """
    if not raw:
        return []

    ids: list[int] = []
    invalid = 0
    for token in raw.split(":"):
        token = token.strip()
        try:
            user_id = int(token)
        except ValueError:
            invalid += 1
            continue
        if user_id not in ids:
            ids.append(user_id)

    if invalid:
        logger.warning("Ignored %d invalid team user id(s)", invalid)
    return ids


def get_team_user_ids(settings: Settings | None = None) -> list[int]:
    """Return the configured team user ids (``GITLAB_USER_IDS``)."""
    settings = settings or get_settings()
    ids = parse_team_user_ids(settings.gitlab_user_ids)
    if not ids:
        logger.warning("No team user ids configured")
    return ids


def is_team_member(
    user: TeamUser | None, team_users: Iterable[TeamUser] | None
) -> bool:
    """Return True if *user* is in *team_users*, compared by id."""
    if user is None or not team_users:
        return False
    return any(member.id == user.id for member in team_users)


def is_team_relevant_mr(
    mr: MergeRequest | None, team_users: Iterable[TeamUser] | None
) -> bool:
    """Return True if the author, an assignee, or a reviewer is on the team."""
    if mr is None or not team_users:
        return False
    team_ids = {member.id for member in team_users}

    people = [mr.author, mr.assignee, *mr.assignees, *mr.reviewers]
    return any(person is not None and person.id in team_ids for person in people)


def _active_users(raw_users: Iterable[dict]) -> list[TeamUser]:
    users = [TeamUser.model_validate(raw) for raw in raw_users]
    return [user for user in users if user.is_active]


class CurrentTeam:
    """The editable team selection.

    Starts empty; when empty, ``TeamResolver.resolve_team`` falls back to the
    configured default team.
    """

    def __init__(self) -> None:
        self._users: dict[int, TeamUser] = {}

    @property
    def users(self) -> list[TeamUser]:
        return list(self._users.values())

    @property
    def ids(self) -> list[int]:
        return list(self._users)

    @property
    def is_configured(self) -> bool:
        return bool(self._users)

    def add(self, user: TeamUser) -> bool:
        """Add an active user. Returns False for blocked users or duplicates."""
        if not user.is_active or user.id in self._users:
            return False
        self._users[user.id] = user
        return True

    def remove(self, user_id: int) -> bool:
        return self._users.pop(user_id, None) is not None

    def replace(self, users: Iterable[TeamUser]) -> None:
        self._users = {user.id: user for user in users if user.is_active}

    def clear(self) -> None:
        self._users.clear()


class TeamResolver:
    """Fetches team members from GitLab, caching every lookup.

    Args:
        gitlab: GitLab API client.
        api_cache: Shared GitLab response cache.
        settings: Application settings (team ids, parent group, TTLs).
        current_team: Editable team selection; a fresh one if omitted.
    """

    def __init__(
        self,
        gitlab: GitLabClient,
        api_cache: ApiCache,
        settings: Settings | None = None,
        current_team: CurrentTeam | None = None,
    ) -> None:
        self.gitlab = gitlab
        self.api_cache = api_cache
        self.settings = settings or get_settings()
        self.current_team = current_team or CurrentTeam()

    def _cached_users(self, key: str) -> list[TeamUser] | None:
        cached = self.api_cache.get(key)
        if cached is None:
            return None
        return list(cached.data)

    def _store_users(self, key: str, users: list[TeamUser]) -> None:
        self.api_cache.set(key, users, ttl_seconds=self.settings.users_cache_ttl_seconds)

    async def fetch_users_by_group_name(
        self, group_name: str, skip_cache: bool = False
    ) -> list[TeamUser]:
        """Return the active members of the subgroup called *group_name*.

        The group is looked up among the subgroups of the configured parent
        namespace by case-insensitive exact name.  An unknown group gives an
        empty list.  ``skip_cache`` forces a fetch but still refreshes the
        cache.
        """
        cache_key = generate_key("usersByGroup", {"group": group_name})
        if not skip_cache:
            cached = self._cached_users(cache_key)
            if cached is not None:
                logger.info("Returned cached users for group %s", group_name)
                return cached

        parent = self.settings.gitlab_parent_group_path
        logger.info("Fetching users for group %s under %s", group_name, parent)
        groups = await self.gitlab.search_subgroups(parent, group_name)
        matches = [
            g for g in groups if str(g.get("name", "")).lower() == group_name.lower()
        ]
        if not matches:
            logger.warning("No group named %s found under %s", group_name, parent)
            return []

        members = await self.gitlab.list_group_members(matches[0]["id"])
        users = _active_users(members)
        self._store_users(cache_key, users)
        logger.info("Fetched %d active users for group %s", len(users), group_name)
        return users

    async def search_users_by_name_or_username(
        self, term: str, skip_cache: bool = False
    ) -> list[TeamUser]:
        """Free-text user search, restricted to active users."""
        term = term.strip()
        if not term:
            return []

        cache_key = generate_key("searchUsers", {"search": term})
        if not skip_cache:
            cached = self._cached_users(cache_key)
            if cached is not None:
                return cached

        users = _active_users(await self.gitlab.search_users(term))
        self._store_users(cache_key, users)
        return users

    async def _fetch_user(self, user_id: int, skip_cache: bool) -> TeamUser | None:
        cache_key = generate_key("user", {"id": user_id})
        if not skip_cache:
            cached = self.api_cache.get(cache_key)
            if cached is not None:
                return cached.data

        try:
            user = TeamUser.model_validate(await self.gitlab.get_user(user_id))
        except (APIError, ValidationError) as exc:
            logger.warning("Dropping user %d: lookup failed (%s)", user_id, exc)
            return None

        self.api_cache.set(
            cache_key, user, ttl_seconds=self.settings.users_cache_ttl_seconds
        )
        return user

    async def fetch_users_by_ids(
        self, user_ids: Iterable[int], skip_cache: bool = False
    ) -> list[TeamUser]:
        """Look up each id individually and keep the active ones.

        Lookups that fail are dropped rather than failing the batch, so the
        result may be shorter than *user_ids*.
        """
        ids = list(user_ids)
        if not ids:
            return []
        results = await asyncio.gather(*(self._fetch_user(i, skip_cache) for i in ids))

        users: list[TeamUser] = []
        for user_id, user in zip(ids, results, strict=True):
            if user is None:
                continue
            if not user.is_active:
                logger.info("Dropping user %d: state is %s", user_id, user.state)
                continue
            users.append(user)
        return users

    async def get_default_team_users(self, skip_cache: bool = False) -> list[TeamUser]:
        """Resolve the configured ``GITLAB_USER_IDS`` to active users."""
        ids = get_team_user_ids(self.settings)
        if not ids:
            return []
        return await self.fetch_users_by_ids(ids, skip_cache=skip_cache)

    async def resolve_team(self, skip_cache: bool = False) -> list[TeamUser]:
        """Return the current team selection, or the default team if none."""
        if self.current_team.is_configured:
            return self.current_team.users
        return await self.get_default_team_users(skip_cache=skip_cache)
