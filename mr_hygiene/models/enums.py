from enum import StrEnum


class HygieneCategory(StrEnum):
    TOO_OLD = "too-old"
    NOT_UPDATED = "not-updated"
    PENDING_REVIEW = "pending-review"


class MRState(StrEnum):
    OPENED = "opened"
    CLOSED = "closed"
    LOCKED = "locked"
    MERGED = "merged"
    ALL = "all"


class UserState(StrEnum):
    ACTIVE = "active"
    BLOCKED = "blocked"
    DEACTIVATED = "deactivated"


class CacheAction(StrEnum):
    CLEAR_ALL = "clear_all"
    CLEAR_GITLAB_API = "clear_gitlab_api"
    CLEAR_JIRA_API = "clear_jira_api"
    CLEAR_API_RESPONSES = "clear_api_responses"
    CLEAR_CLIENT_CACHE = "clear_client_cache"
    GET_STATS = "get_stats"
