import pytest

from mr_hygiene.server import build_services


@pytest.fixture
def services(settings):
    """Real service graph; tests stub the network-facing methods they need."""
    return build_services(settings)
