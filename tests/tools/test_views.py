from unittest.mock import AsyncMock, patch

from fastmcp import Client, FastMCP

from mr_hygiene.clients.jira import JiraClient
from mr_hygiene.models.gitlab import TeamMRCollection
from mr_hygiene.models.jira import JiraTicket
from mr_hygiene.tools.views import register_view_tools
from tests.factories import make_mr, make_user


def _ticket(key):
    return JiraTicket(
        id=key,
        key=key,
        title=f"Ticket {key}",
        url=f"https://example.atlassian.net/browse/{key}",
        status="To Do",
    )


def _mcp():
    test_mcp = FastMCP("test")
    register_view_tools(test_mcp)
    return test_mcp


async def _call(services, tool, args):
    with patch("mr_hygiene.tools.views.get_services", return_value=services):
        async with Client(_mcp()) as client:
            return str(await client.call_tool(tool, args))


def _collection(mrs):
    return TeamMRCollection(items=mrs, total_items=len(mrs))


class TestTicketOverview:
    async def test_requires_jira(self, services):
        text = await _call(services, "ticket_overview", {})
        assert "Jira is not configured" in text

    async def test_groups_mrs_by_ticket(self, services):
        services.jira = AsyncMock(spec=JiraClient)
        services.jira.search_tickets.return_value = [_ticket("ABC-1"), _ticket("DEF-2")]
        services.fetcher.fetch_all_team_mrs = AsyncMock(
            return_value=_collection(
                [
                    make_mr(title="ABC-1 first"),
                    make_mr(title="DEF-2 second"),
                    make_mr(title="ABC-1 follow-up"),
                    make_mr(title="no ticket"),
                ]
            )
        )

        text = await _call(services, "ticket_overview", {})

        assert "ABC-1 [To Do] Ticket ABC-1" in text
        assert "MRs: 2 total, 2 open" in text
        jql = services.jira.search_tickets.call_args[0][0]
        assert jql == "key in (ABC-1, DEF-2)"

    async def test_no_ticket_keys(self, services):
        services.jira = AsyncMock(spec=JiraClient)
        services.fetcher.fetch_all_team_mrs = AsyncMock(
            return_value=_collection([make_mr(title="tidy")])
        )
        text = await _call(services, "ticket_overview", {})
        assert "reference a Jira ticket" in text
        services.jira.search_tickets.assert_not_awaited()


class TestReviewQueue:
    async def test_lists_reviewer_mrs(self, services):
        reviewer = make_user(id=5)
        services.fetcher.fetch_all_team_mrs = AsyncMock(
            return_value=_collection(
                [
                    make_mr(title="Needs eyes", reviewers=[reviewer]),
                    make_mr(title="Someone else", reviewers=[make_user(id=6)]),
                ]
            )
        )
        text = await _call(services, "review_queue", {"user_id": 5})
        assert "1 merge request(s) waiting on user 5" in text
        assert "Needs eyes" in text
        assert "Someone else" not in text

    async def test_empty_queue(self, services):
        services.fetcher.fetch_all_team_mrs = AsyncMock(return_value=_collection([]))
        text = await _call(services, "review_queue", {"user_id": 5})
        assert "No open merge requests are waiting on user 5" in text
