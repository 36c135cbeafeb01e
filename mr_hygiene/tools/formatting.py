"""Plain-text rendering of merge requests, users and tickets for tool output."""

from datetime import UTC, datetime

from mr_hygiene.models.enums import HygieneCategory
from mr_hygiene.models.gitlab import MergeRequest, TeamUser
from mr_hygiene.models.hygiene import HygieneResult
from mr_hygiene.models.jira import JiraTicket, TicketGroup

CATEGORY_TITLES = {
    HygieneCategory.TOO_OLD: "Too old",
    HygieneCategory.NOT_UPDATED: "Not updated",
    HygieneCategory.PENDING_REVIEW: "Pending review",
}


def age_in_days(moment: datetime | None, now: datetime | None = None) -> int | None:
    if moment is None:
        return None
    return ((now or datetime.now(tz=UTC)) - moment).days


def format_user(user: TeamUser) -> str:
    return f"{user.name} (@{user.username}, id {user.id})"


def format_mr(mr: MergeRequest, now: datetime | None = None) -> str:
    """One line per MR: title, author, age and link."""
    author = f"@{mr.author.username}" if mr.author else "unknown author"
    parts = [f"- {mr.title} by {author}"]

    created = age_in_days(mr.created_at, now)
    updated = age_in_days(mr.updated_at, now)
    if created is not None:
        parts.append(f"opened {created}d ago")
    if updated is not None:
        parts.append(f"updated {updated}d ago")
    if mr.reviewers:
        parts.append("reviewers: " + ", ".join(f"@{r.username}" for r in mr.reviewers))
    if mr.draft:
        parts.append("draft")

    line = " | ".join(parts)
    if mr.web_url:
        line += f"\n  {mr.web_url}"
    return line


def format_hygiene_result(category: HygieneCategory, result: HygieneResult) -> str:
    meta = result.metadata
    header = (
        f"{CATEGORY_TITLES[category]} MRs (threshold {meta.threshold} days, "
        f"page {meta.current_page}"
    )
    if meta.total_pages:
        header += f" of {meta.total_pages}"
    header += f", {len(result.items)} shown)"

    if not result.items:
        return f"{header}\nNo merge requests in this category."

    lines = [header]
    lines.extend(format_mr(mr) for mr in result.items)
    if meta.next_page:
        lines.append(f"More results on page {meta.next_page}.")
    lines.append(f"Last refreshed: {meta.last_refreshed}")
    return "\n".join(lines)


def format_ticket(ticket: JiraTicket) -> str:
    lines = [f"{ticket.key}: {ticket.title}", f"Status: {ticket.status}"]
    if ticket.priority:
        lines.append(f"Priority: {ticket.priority}")
    if ticket.assignee:
        lines.append(f"Assignee: {ticket.assignee.name}")
    if ticket.epic_key:
        epic = ticket.epic_key
        if ticket.epic_name:
            epic += f" ({ticket.epic_name})"
        lines.append(f"Epic: {epic}")
    if ticket.sprint_name:
        lines.append(f"Sprint: {ticket.sprint_name}")
    if ticket.story_points is not None:
        lines.append(f"Story points: {ticket.story_points:g}")
    if ticket.due_date:
        lines.append(f"Due: {ticket.due_date}")
    lines.append(ticket.url)
    return "\n".join(lines)


def format_ticket_group(group: TicketGroup) -> str:
    ticket = group.ticket
    return (
        f"{ticket.key} [{ticket.status}] {ticket.title}\n"
        f"  MRs: {group.total_mrs} total, {group.open_mrs} open, "
        f"{group.overdue_mrs} overdue, {group.stalled_mrs} stalled"
    )
