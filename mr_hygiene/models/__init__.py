from mr_hygiene.models.cache import CacheActionResult, CachedResponse, CacheStats
from mr_hygiene.models.enums import CacheAction, HygieneCategory, MRState, UserState
from mr_hygiene.models.gitlab import (
    MergeRequest,
    MRPage,
    PageMetadata,
    TeamMRCollection,
    TeamUser,
)
from mr_hygiene.models.hygiene import HygieneMetadata, HygieneResult
from mr_hygiene.models.jira import JiraPerson, JiraTicket, TicketGroup

__all__ = [
    "CacheAction",
    "CacheActionResult",
    "CacheStats",
    "CachedResponse",
    "HygieneCategory",
    "HygieneMetadata",
    "HygieneResult",
    "JiraPerson",
    "JiraTicket",
    "MRPage",
    "MRState",
    "MergeRequest",
    "PageMetadata",
    "TeamMRCollection",
    "TeamUser",
    "TicketGroup",
    "UserState",
]
