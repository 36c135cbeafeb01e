import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest
from fastmcp import Client

from mr_hygiene.auth import ApiKeyVerifier
from mr_hygiene.config import Settings, reset_settings
from mr_hygiene.server import (
    _reset_services,
    app_lifespan,
    build_services,
    get_services,
    health_check,
    initialize,
    mcp,
    setup_logging,
)


def _clear_root_handlers():
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()


class TestSetupLogging:
    """Test setup_logging configuration."""

    def setup_method(self):
        _clear_root_handlers()

    def teardown_method(self):
        _clear_root_handlers()

    def test_sets_root_logger_level(self, tmp_path):
        setup_logging("DEBUG", tmp_path)
        assert logging.getLogger().level == logging.DEBUG

    def test_creates_console_handler(self, tmp_path):
        setup_logging("INFO", tmp_path)
        root = logging.getLogger()
        stream_handlers = [h for h in root.handlers if type(h) is logging.StreamHandler]
        assert len(stream_handlers) == 1

    def test_log_file_path(self, tmp_path):
        setup_logging("INFO", tmp_path)
        root = logging.getLogger()
        file_handler = next(h for h in root.handlers if isinstance(h, RotatingFileHandler))
        assert Path(file_handler.baseFilename) == tmp_path / "logs" / "server.log"

    def test_no_duplicate_handlers_on_second_call(self, tmp_path):
        setup_logging("INFO", tmp_path)
        setup_logging("INFO", tmp_path)
        root = logging.getLogger()
        stream_handlers = [h for h in root.handlers if type(h) is logging.StreamHandler]
        file_handlers = [h for h in root.handlers if isinstance(h, RotatingFileHandler)]
        assert len(stream_handlers) == 1
        assert len(file_handlers) == 1

    def test_invalid_log_level_falls_back_to_info(self, tmp_path):
        setup_logging("INVALID_LEVEL", tmp_path)
        assert logging.getLogger().level == logging.INFO


class TestInitialize:
    """Test the initialize function."""

    def setup_method(self):
        _clear_root_handlers()
        mcp.auth = None

    def teardown_method(self):
        _clear_root_handlers()
        mcp.auth = None

    def test_returns_mcp_instance(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DATA_DIR", str(tmp_path))
        assert initialize() is mcp

    def test_creates_logs_subdir(self, tmp_path, monkeypatch):
        data_dir = tmp_path / "new_data"
        monkeypatch.setenv("DATA_DIR", str(data_dir))
        initialize()
        assert (data_dir / "logs").exists()

    async def test_registers_tools(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DATA_DIR", str(tmp_path))
        initialize()
        async with Client(mcp) as client:
            names = {tool.name for tool in await client.list_tools()}
        assert {
            "list_too_old_mrs",
            "list_not_updated_mrs",
            "list_pending_review_mrs",
            "get_hygiene_summary",
            "list_team_users",
            "search_users",
            "manage_team",
            "get_jira_ticket",
            "search_jira_tickets",
            "ticket_overview",
            "review_queue",
            "set_threshold",
            "reset_thresholds",
            "manage_cache",
        } <= names

    def test_sets_auth_for_http_transport(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DATA_DIR", str(tmp_path))
        monkeypatch.setenv("MCP_TRANSPORT", "streamable-http")
        monkeypatch.setenv("MCP_AUTH_TOKEN", "a" * 48)
        assert isinstance(initialize().auth, ApiKeyVerifier)

    def test_no_auth_for_stdio(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DATA_DIR", str(tmp_path))
        monkeypatch.setenv("MCP_AUTH_TOKEN", "a" * 48)
        assert initialize().auth is None

    def test_no_auth_for_http_without_token(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DATA_DIR", str(tmp_path))
        monkeypatch.setenv("MCP_TRANSPORT", "streamable-http")
        assert initialize().auth is None


class TestHealthCheck:
    async def test_health_returns_ok(self):
        response = await health_check(None)
        assert response.status_code == 200
        assert response.body == b'{"status":"ok"}'


class TestBuildServices:
    def test_wires_shared_caches(self):
        services = build_services(Settings(_env_file=None))
        assert services.team_resolver.api_cache is services.caches.gitlab_api
        assert services.fetcher.api_cache is services.caches.gitlab_api
        assert services.hygiene.caches is services.caches.categories
        assert services.hygiene.default_group_id == "42"
        assert services.cache_manager.registry is services.caches
        assert services.jira is None

    def test_thresholds_from_settings(self):
        services = build_services(Settings(_env_file=None, too_old_threshold_days=45))
        assert services.thresholds.get("too-old") == 45

    def test_jira_client_when_configured(self):
        services = build_services(
            Settings(
                _env_file=None,
                jira_host="example.atlassian.net",
                jira_email="bot@example.com",
                jira_api_token="token",
            )
        )
        assert services.jira is not None
        assert services.jira.api_cache is services.caches.jira_api


class TestLifespan:
    def setup_method(self):
        reset_settings()
        _reset_services()

    def teardown_method(self):
        _reset_services()

    def test_get_services_raises_when_not_initialized(self):
        with pytest.raises(RuntimeError, match="Services not initialized"):
            get_services()

    async def test_lifespan_sets_and_clears_services(self):
        async with app_lifespan(mcp) as state:
            assert state["services"] is get_services()
        with pytest.raises(RuntimeError):
            get_services()
