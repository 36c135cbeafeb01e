"""Threshold-based hygiene classification of merge requests.

Every function here is pure: it takes the already team-filtered MR list,
keeps input order, and compares timestamps strictly, so an MR exactly on the
threshold boundary is not included.
"""

from collections.abc import Iterable
from datetime import UTC, datetime, timedelta

from mr_hygiene.models.enums import HygieneCategory
from mr_hygiene.models.gitlab import MergeRequest, TeamUser

DEFAULT_THRESHOLDS: dict[HygieneCategory, int] = {
    HygieneCategory.TOO_OLD: 28,
    HygieneCategory.NOT_UPDATED: 14,
    HygieneCategory.PENDING_REVIEW: 7,
}


def _cutoff(threshold_days: int, now: datetime | None) -> datetime:
    return (now or datetime.now(tz=UTC)) - timedelta(days=threshold_days)


def filter_too_old(
    mrs: Iterable[MergeRequest], threshold_days: int, now: datetime | None = None
) -> list[MergeRequest]:
    """MRs created more than *threshold_days* ago."""
    cutoff = _cutoff(threshold_days, now)
    return [mr for mr in mrs if mr.created_at is not None and mr.created_at < cutoff]


def filter_not_updated(
    mrs: Iterable[MergeRequest], threshold_days: int, now: datetime | None = None
) -> list[MergeRequest]:
    """MRs with no update in the last *threshold_days*."""
    cutoff = _cutoff(threshold_days, now)
    return [mr for mr in mrs if mr.updated_at is not None and mr.updated_at < cutoff]


def filter_pending_review(
    mrs: Iterable[MergeRequest],
    threshold_days: int,
    team_users: Iterable[TeamUser],
    now: datetime | None = None,
) -> list[MergeRequest]:
    """MRs waiting on a team reviewer with no update in *threshold_days*."""
    cutoff = _cutoff(threshold_days, now)
    team_ids = {user.id for user in team_users}
    return [
        mr
        for mr in mrs
        if any(reviewer.id in team_ids for reviewer in mr.reviewers)
        and mr.updated_at is not None
        and mr.updated_at < cutoff
    ]


def classify(
    category: HygieneCategory,
    mrs: Iterable[MergeRequest],
    threshold_days: int,
    team_users: Iterable[TeamUser] = (),
    now: datetime | None = None,
) -> list[MergeRequest]:
    """Dispatch to the filter for *category*."""
    if category == HygieneCategory.TOO_OLD:
        return filter_too_old(mrs, threshold_days, now)
    if category == HygieneCategory.NOT_UPDATED:
        return filter_not_updated(mrs, threshold_days, now)
    if category == HygieneCategory.PENDING_REVIEW:
        return filter_pending_review(mrs, threshold_days, team_users, now)
    raise ValueError(f"Unknown hygiene category: {category}")


class ThresholdSettings:
    """Runtime-adjustable thresholds, seeded from configuration.

    Args:
        defaults: Starting value per category; falls back to
            ``DEFAULT_THRESHOLDS`` for any category not given.
    """

    def __init__(self, defaults: dict[HygieneCategory, int] | None = None) -> None:
        self._defaults = {**DEFAULT_THRESHOLDS, **(defaults or {})}
        self._values = dict(self._defaults)

    def get(self, category: HygieneCategory) -> int:
        return self._values[category]

    def update(self, category: HygieneCategory, days: object) -> bool:
        """Set a threshold. Only positive integers are accepted."""
        if isinstance(days, bool) or not isinstance(days, int) or days <= 0:
            return False
        self._values[category] = days
        return True

    def reset(self) -> None:
        self._values = dict(self._defaults)

    def as_dict(self) -> dict[str, int]:
        return {str(category): days for category, days in self._values.items()}
