from unittest.mock import patch

from fastmcp import Client, FastMCP

from mr_hygiene.models.enums import HygieneCategory
from mr_hygiene.tools.thresholds import register_threshold_tools


def _mcp():
    test_mcp = FastMCP("test")
    register_threshold_tools(test_mcp)
    return test_mcp


async def _call(services, tool, args):
    with patch("mr_hygiene.tools.thresholds.get_services", return_value=services):
        async with Client(_mcp()) as client:
            return str(await client.call_tool(tool, args))


class TestSetThreshold:
    async def test_updates_threshold(self, services):
        services.caches.client.set("mrs-too-old-page-1-per-25-threshold-28", "text")
        text = await _call(services, "set_threshold", {"category": "too-old", "days": 60})
        assert "too-old=60d" in text
        assert services.thresholds.get(HygieneCategory.TOO_OLD) == 60
        assert services.caches.client.size == 0

    async def test_unknown_category(self, services):
        text = await _call(services, "set_threshold", {"category": "stale", "days": 3})
        assert "Unknown category" in text

    async def test_rejects_non_positive(self, services):
        text = await _call(services, "set_threshold", {"category": "not-updated", "days": 0})
        assert "positive whole number" in text
        assert services.thresholds.get(HygieneCategory.NOT_UPDATED) == 14


class TestResetThresholds:
    async def test_restores_defaults(self, services):
        services.thresholds.update(HygieneCategory.PENDING_REVIEW, 2)
        text = await _call(services, "reset_thresholds", {})
        assert "pending-review=7d" in text
        assert services.thresholds.get(HygieneCategory.PENDING_REVIEW) == 7
