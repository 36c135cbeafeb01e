from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables and .env file.

    Everything the dashboard core needs is read here: GitLab and Jira
    credentials, the team definition, per-cache TTLs, hygiene thresholds
    and the retry policy for upstream calls.  Missing team ids are not an
    error; the team simply resolves to nobody.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # GitLab
    gitlab_api_url: str = "https://gitlab.com/api/v4"
    gitlab_api_token: str = ""
    gitlab_group_id: str | None = None
    # Colon-delimited numeric user ids, e.g. "123:456:789"
    gitlab_user_ids: str = ""
    gitlab_parent_group_path: str = "ska-telescope/ska-dev"

    # Jira; host is the bare domain, e.g. "example.atlassian.net"
    jira_host: str | None = None
    jira_email: str | None = None
    jira_api_token: str | None = None
    jira_epic_link_field: str = "customfield_10014"
    jira_epic_name_field: str = "customfield_10015"
    jira_story_points_field: str = "customfield_10016"
    jira_sprint_field: str = "customfield_10017"
    jira_max_concurrent: int = 5
    jira_min_interval_seconds: float = 0.1

    # Cache TTLs (seconds)
    gitlab_api_ttl_seconds: float = 900
    jira_api_ttl_seconds: float = 900
    hygiene_cache_ttl_seconds: float = 60
    users_cache_ttl_seconds: float = 300
    client_cache_ttl_seconds: float = 3600

    # Hygiene thresholds (days)
    too_old_threshold_days: int = 28
    not_updated_threshold_days: int = 14
    pending_review_threshold_days: int = 7

    # Upstream retry policy
    max_retries: int = 3
    retry_backoff_seconds: float = 2.0
    retry_max_backoff_seconds: float = 30.0

    default_per_page: int = 25

    # Remote hosting: transport, bind address and auth
    mcp_transport: str = "stdio"
    mcp_host: str = "0.0.0.0"
    mcp_port: int = 8000
    mcp_auth_token: str | None = None

    data_dir: Path = Path(__file__).resolve().parent.parent / "data"
    log_level: str = "INFO"

    @property
    def jira_configured(self) -> bool:
        """Return True when all three Jira credentials are present."""
        return bool(self.jira_host and self.jira_email and self.jira_api_token)


_settings: Settings | None = None


def get_settings() -> Settings:
    """Return the cached Settings singleton. Created on first call."""
    global _settings  # noqa: PLW0603
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Clear the cached settings. Used in tests."""
    global _settings  # noqa: PLW0603
    _settings = None
