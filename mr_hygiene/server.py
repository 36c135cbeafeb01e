import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path

from fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse

from mr_hygiene.cache_manager import CacheManager, CacheRegistry
from mr_hygiene.clients.gitlab import GitLabClient
from mr_hygiene.clients.jira import JiraClient, JiraFieldMap
from mr_hygiene.clients.limiter import RequestLimiter
from mr_hygiene.config import Settings
from mr_hygiene.hygiene.classifier import ThresholdSettings
from mr_hygiene.hygiene.service import HygieneService
from mr_hygiene.merge_requests.fetcher import MRFetcher
from mr_hygiene.models.enums import HygieneCategory
from mr_hygiene.team.resolver import TeamResolver

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Process-wide service graph shared by every tool."""

    settings: Settings
    caches: CacheRegistry
    cache_manager: CacheManager
    gitlab: GitLabClient
    team_resolver: TeamResolver
    fetcher: MRFetcher
    thresholds: ThresholdSettings
    hygiene: HygieneService
    jira: JiraClient | None = None


_services: Services | None = None


def get_services() -> Services:
    """Get the current Services instance. Raises if not initialized."""
    if _services is None:
        raise RuntimeError("Services not initialized. Server lifespan has not started.")
    return _services


def _reset_services() -> None:
    """Clear the module-level services reference. Used in tests."""
    global _services  # noqa: PLW0603
    _services = None


def build_services(settings: Settings) -> Services:
    """Wire clients, caches and services from *settings*.

    Every cache is created here once and handed to its consumers by
    reference.
    """
    caches = CacheRegistry.from_settings(settings)
    gitlab = GitLabClient(settings.gitlab_api_url, settings.gitlab_api_token)
    team_resolver = TeamResolver(gitlab, caches.gitlab_api, settings)
    fetcher = MRFetcher(gitlab, caches.gitlab_api, team_resolver, settings)
    thresholds = ThresholdSettings(
        {
            HygieneCategory.TOO_OLD: settings.too_old_threshold_days,
            HygieneCategory.NOT_UPDATED: settings.not_updated_threshold_days,
            HygieneCategory.PENDING_REVIEW: settings.pending_review_threshold_days,
        }
    )
    hygiene = HygieneService(
        fetcher,
        team_resolver,
        caches.categories,
        thresholds,
        default_per_page=settings.default_per_page,
        default_group_id=settings.gitlab_group_id,
    )

    jira = None
    if settings.jira_configured:
        jira = JiraClient(
            settings.jira_host,  # type: ignore[arg-type]
            settings.jira_email,  # type: ignore[arg-type]
            settings.jira_api_token,  # type: ignore[arg-type]
            caches.jira_api,
            limiter=RequestLimiter(
                settings.jira_max_concurrent, settings.jira_min_interval_seconds
            ),
            fields_map=JiraFieldMap(
                epic_link=settings.jira_epic_link_field,
                epic_name=settings.jira_epic_name_field,
                story_points=settings.jira_story_points_field,
                sprint=settings.jira_sprint_field,
            ),
        )
    else:
        logger.warning("Jira credentials not set; ticket tools are disabled")

    if not settings.gitlab_group_id:
        logger.warning("GITLAB_GROUP_ID is not set; MR tools will fail until it is")

    return Services(
        settings=settings,
        caches=caches,
        cache_manager=CacheManager(caches),
        gitlab=gitlab,
        team_resolver=team_resolver,
        fetcher=fetcher,
        thresholds=thresholds,
        hygiene=hygiene,
        jira=jira,
    )


@asynccontextmanager
async def app_lifespan(server: FastMCP) -> AsyncIterator[dict]:
    """Build the service graph for the server lifecycle."""
    global _services  # noqa: PLW0603
    from mr_hygiene.config import get_settings

    _services = build_services(get_settings())
    logger.info("Services initialized")
    try:
        yield {"services": _services}
    finally:
        _services.cache_manager.clear_all()
        _services = None
        logger.info("Services shut down")


mcp = FastMCP("mr-hygiene", lifespan=app_lifespan)


@mcp.custom_route("/health", methods=["GET"])
async def health_check(request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok"})


def setup_logging(log_level: str, data_dir: Path) -> None:
    """Configure logging with file rotation and console output.

    Args:
        log_level: Logging level string (DEBUG, INFO, WARNING, ERROR).
        data_dir: Base data directory; logs go to data_dir/logs/server.log.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Exact type check so file handlers are not mistaken for the console one
    if not any(type(h) is logging.StreamHandler for h in root_logger.handlers):
        console = logging.StreamHandler()
        console.setLevel(level)
        console.setFormatter(formatter)
        root_logger.addHandler(console)

    log_dir = data_dir / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)

    if not any(isinstance(h, RotatingFileHandler) for h in root_logger.handlers):
        file_handler = RotatingFileHandler(
            log_dir / "server.log",
            maxBytes=5 * 1024 * 1024,  # 5 MB
            backupCount=3,
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


def initialize() -> FastMCP:
    """Set up directories, logging, and register tools. Returns the MCP server."""
    from mr_hygiene.config import get_settings

    settings = get_settings()
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    setup_logging(settings.log_level, settings.data_dir)

    if settings.mcp_transport == "streamable-http" and settings.mcp_auth_token:
        from mr_hygiene.auth import ApiKeyVerifier

        mcp.auth = ApiKeyVerifier(settings.mcp_auth_token)
        logger.info("API key authentication enabled")

    from mr_hygiene.tools.cache_admin import register_cache_tools
    from mr_hygiene.tools.hygiene import register_hygiene_tools
    from mr_hygiene.tools.jira import register_jira_tools
    from mr_hygiene.tools.thresholds import register_threshold_tools
    from mr_hygiene.tools.users import register_user_tools
    from mr_hygiene.tools.views import register_view_tools

    register_hygiene_tools(mcp)
    register_user_tools(mcp)
    register_jira_tools(mcp)
    register_view_tools(mcp)
    register_threshold_tools(mcp)
    register_cache_tools(mcp)

    logger.info("MR hygiene MCP server initialized")
    return mcp
