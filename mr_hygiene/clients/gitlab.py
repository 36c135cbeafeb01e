"""GitLab REST v4 client for the endpoints the dashboard reads."""

import logging
from urllib.parse import quote

import httpx

from mr_hygiene.clients.resilience import (
    SchemaChangeError,
    TransientAPIError,
    classify_response,
    expect_list,
)
from mr_hygiene.models.gitlab import PageMetadata

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class GitLabClient:
    """Async client for the GitLab REST API.

    Each call opens its own ``httpx.AsyncClient``.  Responses are classified
    by status code; transport failures surface as ``TransientAPIError`` so
    callers can retry them like a 5xx.

    Args:
        api_url: Base API URL, e.g. ``https://gitlab.com/api/v4``.
        token: Private token sent as ``PRIVATE-TOKEN``.
    """

    def __init__(self, api_url: str, token: str) -> None:
        self.api_url = api_url.rstrip("/")
        self.token = token

    def _headers(self) -> dict[str, str]:
        return {"PRIVATE-TOKEN": self.token, "Accept": "application/json"}

    async def _get(
        self, path: str, params: dict | None = None
    ) -> tuple[object, dict[str, str]]:
        """GET *path* and return the decoded body with lower-cased headers."""
        url = f"{self.api_url}/{path}"
        try:
            async with httpx.AsyncClient(timeout=DEFAULT_TIMEOUT) as client:
                response = await client.get(url, headers=self._headers(), params=params)
        except httpx.TransportError as exc:
            logger.warning("GitLab request to %s failed: %s", path, exc)
            raise TransientAPIError(f"GitLab unreachable: {exc}") from exc

        if response.status_code >= 400:
            logger.warning(
                "GitLab GET %s failed (HTTP %d): %s",
                path, response.status_code, response.text,
            )
        classify_response(response)
        try:
            data = response.json()
        except ValueError as exc:
            raise SchemaChangeError(f"GitLab returned a non-JSON body for {path}") from exc
        headers = {k.lower(): v for k, v in response.headers.items()}
        return data, headers

    async def list_group_merge_requests(
        self,
        group_id: str | int,
        page: int,
        per_page: int,
        state: str | None = "opened",
        include_subgroups: bool = True,
    ) -> tuple[list[dict], PageMetadata, dict[str, str]]:
        """List one page of merge requests for a group.

        Returns:
            Raw MR dicts, the parsed pagination metadata, and the pagination
            headers (for caching alongside the page).
        """
        params: dict = {
            "page": page,
            "per_page": per_page,
            "scope": "all",
            "include_subgroups": "true" if include_subgroups else "false",
        }
        if state:
            params["state"] = state

        data, headers = await self._get(f"groups/{group_id}/merge_requests", params)
        items = expect_list(data, "merge request list")
        pagination = {k: v for k, v in headers.items() if k.startswith("x-")}
        return items, PageMetadata.from_headers(pagination, page, per_page), pagination

    async def search_subgroups(self, parent_path: str, search: str) -> list[dict]:
        """Search the direct subgroups of *parent_path* by name."""
        encoded = quote(parent_path, safe="")
        data, _ = await self._get(f"groups/{encoded}/subgroups", {"search": search})
        return expect_list(data, "subgroup search")

    async def list_group_members(self, group_id: int | str) -> list[dict]:
        data, _ = await self._get(f"groups/{group_id}/members", {"per_page": 100})
        return expect_list(data, "group members")

    async def get_user(self, user_id: int) -> dict:
        data, _ = await self._get(f"users/{user_id}")
        if not isinstance(data, dict):
            raise SchemaChangeError(f"Expected object for user {user_id}")
        return data

    async def search_users(self, term: str) -> list[dict]:
        data, _ = await self._get("users", {"search": term, "per_page": 100})
        return expect_list(data, "user search")
