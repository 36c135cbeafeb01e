"""Tests for mr_hygiene.merge_requests.tickets."""

from mr_hygiene.merge_requests.tickets import (
    extract_ticket_key,
    group_by_ticket,
    reviewer_queue,
)
from mr_hygiene.models.jira import JiraTicket
from tests.factories import NOW, days_ago, make_mr, make_user


def _ticket(key, **overrides):
    defaults = {
        "id": key,
        "key": key,
        "title": f"Ticket {key}",
        "url": f"https://example.atlassian.net/browse/{key}",
        "status": "In Progress",
    }
    defaults.update(overrides)
    return JiraTicket(**defaults)


class TestExtractTicketKey:
    def test_key_in_title(self):
        assert extract_ticket_key(make_mr(title="ABC-123: fix build")) == "ABC-123"

    def test_first_key_wins(self):
        assert extract_ticket_key(make_mr(title="ABC-1 and ABC-2")) == "ABC-1"

    def test_falls_back_to_description(self):
        mr = make_mr(title="Fix build", description="Closes XY_Z-9")
        assert extract_ticket_key(mr) == "XY_Z-9"

    def test_title_preferred_over_description(self):
        mr = make_mr(title="Part of ABC-1", description="See DEF-2")
        assert extract_ticket_key(mr) == "ABC-1"

    def test_no_key(self):
        assert extract_ticket_key(make_mr(title="tidy up", description=None)) is None

    def test_lowercase_not_matched(self):
        assert extract_ticket_key(make_mr(title="abc-123")) is None


class TestGroupByTicket:
    def test_groups_in_first_appearance_order(self):
        mrs = [
            make_mr(id=1, title="DEF-2 second"),
            make_mr(id=2, title="ABC-1 first"),
            make_mr(id=3, title="DEF-2 again"),
        ]
        groups = group_by_ticket(mrs, [_ticket("ABC-1"), _ticket("DEF-2")], now=NOW)
        assert [g.ticket.key for g in groups] == ["DEF-2", "ABC-1"]
        assert [mr.id for mr in groups[0].mrs] == [1, 3]
        assert groups[0].total_mrs == 2

    def test_unknown_or_missing_keys_left_out(self):
        mrs = [make_mr(title="ZZZ-9"), make_mr(title="no key")]
        assert group_by_ticket(mrs, [_ticket("ABC-1")], now=NOW) == []

    def test_counts(self):
        mrs = [
            make_mr(title="ABC-1", created_at=days_ago(30), updated_at=days_ago(20)),
            make_mr(title="ABC-1", created_at=days_ago(28), updated_at=days_ago(14)),
            make_mr(title="ABC-1", state="merged", created_at=days_ago(2), updated_at=days_ago(1)),
        ]
        (group,) = group_by_ticket(mrs, [_ticket("ABC-1")], now=NOW)
        assert group.total_mrs == 3
        assert group.open_mrs == 2
        assert group.overdue_mrs == 1
        assert group.stalled_mrs == 1


class TestReviewerQueue:
    def test_filters_by_reviewer(self):
        ada = make_user(id=1)
        bob = make_user(id=2)
        mrs = [
            make_mr(id=10, reviewers=[ada]),
            make_mr(id=11, reviewers=[bob]),
            make_mr(id=12, reviewers=[bob, ada]),
            make_mr(id=13, reviewers=[]),
        ]
        assert [mr.id for mr in reviewer_queue(mrs, 1)] == [10, 12]
