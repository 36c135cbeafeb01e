from pydantic import BaseModel

from mr_hygiene.models.gitlab import MergeRequest


class JiraPerson(BaseModel):
    id: str
    name: str
    email: str | None = None
    avatar_url: str | None = None


class JiraTicket(BaseModel):
    id: str
    key: str
    title: str
    description: str | None = None
    url: str
    status: str
    priority: str | None = None
    type: str | None = None
    created: str | None = None
    updated: str | None = None
    due_date: str | None = None
    assignee: JiraPerson | None = None
    reporter: JiraPerson | None = None
    labels: list[str] = []
    epic_key: str | None = None
    epic_name: str | None = None
    story_points: float | None = None
    sprint_name: str | None = None


class TicketGroup(BaseModel):
    ticket: JiraTicket
    mrs: list[MergeRequest]
    total_mrs: int
    open_mrs: int
    overdue_mrs: int
    stalled_mrs: int
