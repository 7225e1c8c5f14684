import json
import os
from collections.abc import AsyncGenerator, Callable, Generator
from datetime import date
from pathlib import Path
from typing import Any

import httpx
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

# Disable API key authentication and point at a fake OCS for tests
os.environ["REQUIRE_API_KEY"] = "false"
os.environ["OCS_BASE_URL"] = "https://ocs.example.com/api"
os.environ["OCS_TOKEN"] = "test-token"
os.environ["OCS_ACCOUNT_ID"] = "3771"

from ocs_report.core.http import OCSClient
from ocs_report.core.utils import KeyedCache
from ocs_report.main import app
from ocs_report.models.package import TemplateCost
from ocs_report.services.aggregator import AccountAggregator
from ocs_report.services.packages import PackageResolver
from ocs_report.services.registry import clear_service_cache
from ocs_report.services.templates import TemplateCostResolver
from ocs_report.services.usage import UsageAggregator

# 2025-06-01 .. 2025-06-14 is exactly two usage windows
USAGE_TODAY = date(2025, 6, 14)


@pytest.fixture(autouse=True)
def reset_services() -> Generator[None, None, None]:
    """Drop the shared aggregator and template cache around each test."""
    clear_service_cache()
    yield
    clear_service_cache()
    app.dependency_overrides.clear()


@pytest.fixture
def client() -> TestClient:
    """Create test client."""
    return TestClient(app)


@pytest.fixture
def mocks_dir() -> Path:
    """Get mocks directory path."""
    return Path(__file__).parent / "mocks"


def load_mock(mocks_dir: Path, filename: str) -> dict[str, Any]:
    """Load a mock OCS response file."""
    with open(mocks_dir / "ocs" / filename) as f:
        return json.load(f)


@pytest.fixture
def subscribers_response(mocks_dir: Path) -> dict[str, Any]:
    return load_mock(mocks_dir, "list_subscriber.json")


@pytest.fixture
def packages_response(mocks_dir: Path) -> dict[str, Any]:
    return load_mock(mocks_dir, "subscriber_packages.json")


@pytest.fixture
def template_list_response(mocks_dir: Path) -> dict[str, Any]:
    return load_mock(mocks_dir, "template_list.json")


@pytest.fixture
def template_get_response(mocks_dir: Path) -> dict[str, Any]:
    return load_mock(mocks_dir, "template_get.json")


@pytest.fixture
def usage_response(mocks_dir: Path) -> dict[str, Any]:
    return load_mock(mocks_dir, "usage_window.json")


# ─────────────────────────────────────────────────────────────────────────────
# Stubbed OCS upstream
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def ocs_routes() -> dict[str, Any]:
    """Responses per OCS operation.

    A value may be a JSON body, an ``httpx.Response``, or a callable taking
    the operation arguments and returning either of those.
    """
    return {}


@pytest.fixture
def ocs_calls() -> list[dict[str, Any]]:
    """Every request body sent to the stubbed OCS, in order."""
    return []


@pytest.fixture
def ocs_transport(
    ocs_routes: dict[str, Any],
    ocs_calls: list[dict[str, Any]],
) -> httpx.MockTransport:
    """In-process transport serving ``ocs_routes`` and recording ``ocs_calls``."""

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        operation = next(iter(body))
        ocs_calls.append(body)

        route = ocs_routes.get(operation)
        if callable(route):
            route = route(body[operation])
        if route is None:
            return httpx.Response(404, text=f"no stub for {operation}")
        if isinstance(route, httpx.Response):
            # Fresh copy so one stubbed error can answer many requests
            return httpx.Response(route.status_code, content=route.content)
        return httpx.Response(200, json=route)

    return httpx.MockTransport(handler)


@pytest_asyncio.fixture
async def ocs_client(ocs_transport: httpx.MockTransport) -> AsyncGenerator[OCSClient, None]:
    """OCS client wired to the stubbed upstream."""
    ocs = OCSClient(
        base_url="https://ocs.example.com/api",
        token="test-token",
        transport=ocs_transport,
    )
    yield ocs
    await ocs.close()


@pytest.fixture
def template_cache() -> KeyedCache[TemplateCost]:
    return KeyedCache()


@pytest.fixture
def aggregator_factory(
    template_cache: KeyedCache[TemplateCost],
) -> Callable[[OCSClient], AccountAggregator]:
    """Build aggregators with a fixed usage end date and a per-test cache."""

    def build(ocs: OCSClient) -> AccountAggregator:
        return AccountAggregator(
            client=ocs,
            templates=TemplateCostResolver(ocs, template_cache),
            packages=PackageResolver(ocs),
            usage=UsageAggregator(ocs, today=lambda: USAGE_TODAY),
        )

    return build


@pytest.fixture
def aggregator(
    ocs_client: OCSClient,
    aggregator_factory: Callable[[OCSClient], AccountAggregator],
) -> AccountAggregator:
    """Aggregator over the stubbed OCS."""
    return aggregator_factory(ocs_client)
