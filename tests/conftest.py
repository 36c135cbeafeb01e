import pytest

from mr_hygiene.config import Settings, reset_settings
from tests.factories import FakeClock

_CLEARED_ENV = (
    "GITLAB_USER_IDS",
    "JIRA_HOST",
    "JIRA_EMAIL",
    "JIRA_API_TOKEN",
    "MCP_AUTH_TOKEN",
    "MCP_TRANSPORT",
)


@pytest.fixture(autouse=True)
def _set_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Ensure a predictable environment for all tests."""
    monkeypatch.setenv("GITLAB_API_URL", "https://gitlab.example.com/api/v4")
    monkeypatch.setenv("GITLAB_API_TOKEN", "test-gitlab-token")
    monkeypatch.setenv("GITLAB_GROUP_ID", "42")
    for name in _CLEARED_ENV:
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def settings() -> Settings:
    """Settings with retries that do not sleep."""
    return Settings(_env_file=None, retry_backoff_seconds=0, retry_max_backoff_seconds=0)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def tmp_data_dir(tmp_path):
    """Provide a temporary data directory for tests that touch the filesystem."""
    return tmp_path / "data"
