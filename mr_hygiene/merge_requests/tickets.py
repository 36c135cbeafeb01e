"""Linking merge requests to Jira tickets for the product-owner and developer views."""

import re
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta

from mr_hygiene.models.enums import MRState
from mr_hygiene.models.gitlab import MergeRequest
from mr_hygiene.models.jira import JiraTicket, TicketGroup

TICKET_KEY_PATTERN = re.compile(r"[A-Z][A-Z0-9_]+-[0-9]+")

OVERDUE_DAYS = 28
STALLED_DAYS = 14


def extract_ticket_key(mr: MergeRequest) -> str | None:
    """Return the first ticket key in the MR title, else in its description."""
    for text in (mr.title, mr.description):
        if text:
            match = TICKET_KEY_PATTERN.search(text)
            if match:
                return match.group(0)
    return None


def _older_than(moment: datetime | None, days: int, now: datetime) -> bool:
    return moment is not None and moment < now - timedelta(days=days)


def group_by_ticket(
    mrs: Iterable[MergeRequest],
    tickets: Iterable[JiraTicket],
    now: datetime | None = None,
) -> list[TicketGroup]:
    """Group MRs under the ticket they reference.

    MRs without a key, or whose key is not among *tickets*, are left out.
    Groups keep the order in which their first MR appears.
    """
    now = now or datetime.now(tz=UTC)
    by_key = {ticket.key: ticket for ticket in tickets}

    grouped: dict[str, list[MergeRequest]] = {}
    for mr in mrs:
        key = extract_ticket_key(mr)
        if key and key in by_key:
            grouped.setdefault(key, []).append(mr)

    return [
        TicketGroup(
            ticket=by_key[key],
            mrs=group,
            total_mrs=len(group),
            open_mrs=sum(1 for mr in group if mr.state == MRState.OPENED),
            overdue_mrs=sum(1 for mr in group if _older_than(mr.created_at, OVERDUE_DAYS, now)),
            stalled_mrs=sum(1 for mr in group if _older_than(mr.updated_at, STALLED_DAYS, now)),
        )
        for key, group in grouped.items()
    ]


def reviewer_queue(mrs: Iterable[MergeRequest], user_id: int) -> list[MergeRequest]:
    """MRs where *user_id* is one of the reviewers."""
    return [mr for mr in mrs if any(r.id == user_id for r in mr.reviewers)]
