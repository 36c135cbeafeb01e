from collections.abc import Mapping
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, field_validator

from mr_hygiene.models.enums import UserState


def _header_int(headers: Mapping[str, object], name: str) -> int | None:
    """Parse an integer pagination header; blank or malformed values are ``None``."""
    raw = headers.get(name)
    if raw is None:
        return None
    try:
        return int(str(raw).strip())
    except ValueError:
        return None


class TeamUser(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="ignore")

    id: int
    name: str = ""
    username: str = ""
    avatar_url: str | None = None
    web_url: str | None = None
    state: str | None = None

    @property
    def is_active(self) -> bool:
        return self.state == UserState.ACTIVE


class MergeRequest(BaseModel):
    """A GitLab merge request.

    Only the fields the dashboard reads are declared; anything else the API
    returns is kept as an extra attribute so it survives caching untouched.
    """

    model_config = ConfigDict(extra="allow")

    id: int
    iid: int | None = None
    project_id: int | None = None
    title: str = ""
    description: str | None = None
    state: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    author: TeamUser | None = None
    assignees: list[TeamUser] = []
    assignee: TeamUser | None = None
    reviewers: list[TeamUser] = []
    web_url: str | None = None
    labels: list[str] = []
    draft: bool = False

    @field_validator("created_at", "updated_at")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @field_validator("assignees", "reviewers", mode="before")
    @classmethod
    def _none_is_empty(cls, value: object) -> object:
        return [] if value is None else value


class PageMetadata(BaseModel):
    total_items: int | None = None
    total_pages: int | None = None
    current_page: int
    per_page: int
    next_page: int | None = None
    prev_page: int | None = None

    @classmethod
    def from_headers(
        cls, headers: Mapping[str, object], page: int, per_page: int
    ) -> "PageMetadata":
        """Build metadata from GitLab's ``x-*`` pagination headers.

        Header names are expected lower-cased.  ``x-page``/``x-per-page``
        win over the requested values when GitLab echoes them back.
        """
        return cls(
            total_items=_header_int(headers, "x-total"),
            total_pages=_header_int(headers, "x-total-pages"),
            current_page=_header_int(headers, "x-page") or page,
            per_page=_header_int(headers, "x-per-page") or per_page,
            next_page=_header_int(headers, "x-next-page"),
            prev_page=_header_int(headers, "x-prev-page"),
        )


class MRPage(BaseModel):
    items: list[MergeRequest]
    metadata: PageMetadata


class TeamMRCollection(BaseModel):
    items: list[MergeRequest]
    total_items: int
