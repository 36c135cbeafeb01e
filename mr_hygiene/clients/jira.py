"""Jira Cloud REST v3 client with response caching and request throttling."""

import json
import logging
from dataclasses import dataclass

import httpx

from mr_hygiene.clients.api_cache import ApiCache, generate_key
from mr_hygiene.clients.limiter import RequestLimiter
from mr_hygiene.clients.resilience import (
    PermanentAPIError,
    SchemaChangeError,
    TransientAPIError,
    classify_response,
)
from mr_hygiene.models.jira import JiraPerson, JiraTicket

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
SEARCH_MAX_RESULTS = 100


@dataclass(frozen=True)
class JiraFieldMap:
    """Custom field ids, which differ per Jira instance."""

    epic_link: str = "customfield_10014"
    epic_name: str = "customfield_10015"
    story_points: str = "customfield_10016"
    sprint: str = "customfield_10017"


def _parse_person(raw: dict | None) -> JiraPerson | None:
    if not raw:
        return None
    return JiraPerson(
        id=raw.get("accountId", ""),
        name=raw.get("displayName", ""),
        email=raw.get("emailAddress"),
        avatar_url=(raw.get("avatarUrls") or {}).get("48x48"),
    )


def parse_issue(issue: dict, host: str, fields_map: JiraFieldMap | None = None) -> JiraTicket:
    """Parse a raw Jira issue into a JiraTicket.

    Rich-text (ADF) descriptions are kept as their JSON text.

    Args:
        issue: Raw issue dict from the API.
        host: Jira host, used to build the browse URL.
        fields_map: Custom field ids for epic/story points/sprint.
    """
    fields_map = fields_map or JiraFieldMap()
    fields = issue.get("fields") or {}

    description = fields.get("description")
    if description is not None and not isinstance(description, str):
        description = json.dumps(description)

    sprints = fields.get(fields_map.sprint)
    sprint_name = None
    if isinstance(sprints, list) and sprints and isinstance(sprints[0], dict):
        sprint_name = sprints[0].get("name")

    return JiraTicket(
        id=str(issue.get("id", "")),
        key=issue.get("key", ""),
        title=fields.get("summary", ""),
        description=description,
        url=f"https://{host}/browse/{issue.get('key', '')}",
        status=(fields.get("status") or {}).get("name", "Unknown"),
        priority=(fields.get("priority") or {}).get("name"),
        type=(fields.get("issuetype") or {}).get("name"),
        created=fields.get("created"),
        updated=fields.get("updated"),
        due_date=fields.get("duedate"),
        assignee=_parse_person(fields.get("assignee")),
        reporter=_parse_person(fields.get("reporter")),
        labels=fields.get("labels") or [],
        epic_key=fields.get(fields_map.epic_link),
        epic_name=fields.get(fields_map.epic_name),
        story_points=fields.get(fields_map.story_points),
        sprint_name=sprint_name,
    )


class JiraClient:
    """Async Jira client.

    Ticket lookups and JQL searches are cached in *api_cache* under
    ``getTicket``/``searchTickets`` keys and throttled through *limiter*.

    Args:
        host: Bare Jira domain, e.g. ``example.atlassian.net``.
        email: Account email for basic auth.
        api_token: API token for basic auth.
        api_cache: Cache for raw issue payloads.
        limiter: Request limiter shared by all calls.
        fields_map: Custom field ids.
    """

    def __init__(
        self,
        host: str,
        email: str,
        api_token: str,
        api_cache: ApiCache,
        limiter: RequestLimiter | None = None,
        fields_map: JiraFieldMap | None = None,
    ) -> None:
        if "/" in host:
            raise ValueError(
                f"Jira host must be a bare domain (e.g. example.atlassian.net), got {host!r}"
            )
        self.host = host
        self.base_url = f"https://{host}/rest/api/3"
        self._auth = (email, api_token)
        self.api_cache = api_cache
        self.limiter = limiter or RequestLimiter()
        self.fields_map = fields_map or JiraFieldMap()

    async def _get(self, path: str, params: dict | None = None) -> object:
        try:
            async with self.limiter.slot():
                async with httpx.AsyncClient(
                    timeout=DEFAULT_TIMEOUT, auth=self._auth
                ) as client:
                    response = await client.get(
                        f"{self.base_url}/{path}",
                        params=params,
                        headers={"Accept": "application/json"},
                    )
        except httpx.TransportError as exc:
            raise TransientAPIError(f"Jira unreachable: {exc}") from exc

        if response.status_code >= 400:
            logger.warning(
                "Jira GET %s failed (HTTP %d): %s",
                path, response.status_code, response.text,
            )
        classify_response(response)
        try:
            return response.json()
        except ValueError as exc:
            raise SchemaChangeError(f"Jira returned a non-JSON body for {path}") from exc

    async def get_ticket(self, key: str, skip_cache: bool = False) -> JiraTicket | None:
        """Fetch a single ticket by key.

        Returns:
            The ticket, or None if Jira reports it does not exist.
        """
        cache_key = generate_key("getTicket", {"key": key})
        if not skip_cache:
            cached = self.api_cache.get(cache_key)
            if cached is not None:
                logger.info("Using cached Jira ticket %s", key)
                return parse_issue(cached.data, self.host, self.fields_map)

        logger.info("Fetching Jira ticket %s", key)
        try:
            issue = await self._get(f"issue/{key}")
        except PermanentAPIError as exc:
            if exc.status_code == 404:
                logger.warning("Jira ticket %s not found", key)
                return None
            raise

        if not isinstance(issue, dict):
            raise SchemaChangeError(f"Expected object for Jira issue {key}")
        self.api_cache.set(cache_key, issue)
        return parse_issue(issue, self.host, self.fields_map)

    async def search_tickets(
        self, jql: str, skip_cache: bool = False, max_results: int = SEARCH_MAX_RESULTS
    ) -> list[JiraTicket]:
        """Run a JQL search and return matching tickets."""
        cache_key = generate_key("searchTickets", {"jql": jql, "max_results": max_results})
        if not skip_cache:
            cached = self.api_cache.get(cache_key)
            if cached is not None:
                logger.info("Using cached Jira search results for %.50s", jql)
                return [parse_issue(i, self.host, self.fields_map) for i in cached.data]

        logger.info("Searching Jira tickets: %.50s", jql)
        data = await self._get("search", {"jql": jql, "maxResults": max_results})
        if not isinstance(data, dict):
            raise SchemaChangeError("Expected object for Jira search response")
        issues = data.get("issues") or []
        self.api_cache.set(cache_key, issues)
        return [parse_issue(i, self.host, self.fields_map) for i in issues]
