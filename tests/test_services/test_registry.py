"""Tests for process-wide service wiring."""

from collections.abc import Callable
from typing import Any

import pytest

from ocs_report.core.http import OCSClient
from ocs_report.models.package import TemplateCost
from ocs_report.services import registry
from ocs_report.services.aggregator import AccountAggregator


class TestAggregatorSingleton:
    """Test the shared aggregator lifecycle."""

    def test_same_instance_until_cleared(self) -> None:
        first = registry.get_account_aggregator()

        assert registry.get_account_aggregator() is first
        assert first.client.config.ocs_base_url == "https://ocs.example.com/api"
        assert first.client.config.ocs_token == "test-token"

        registry.clear_service_cache()

        assert registry.get_account_aggregator() is not first

    def test_clear_drops_template_costs(self) -> None:
        registry.template_cost_cache.set(78, TemplateCost(cost=12))

        registry.clear_service_cache()

        assert len(registry.template_cost_cache) == 0

    def test_build_uses_shared_cache_by_default(self) -> None:
        ocs = OCSClient(base_url="https://ocs.example.com/api", token="test-token")

        aggregator = registry.build_aggregator(ocs)

        assert aggregator.templates.cache is registry.template_cost_cache
        assert aggregator.packages.client is ocs
        assert aggregator.usage.client is ocs

    @pytest.mark.asyncio
    async def test_close_services_without_aggregator(self) -> None:
        await registry.close_services()


class TestFetchAllData:
    """Test the module-level entry point."""

    @pytest.mark.asyncio
    async def test_uses_shared_aggregator(
        self,
        ocs_client: OCSClient,
        aggregator_factory: Callable[[OCSClient], AccountAggregator],
        ocs_routes: dict[str, Any],
        ocs_calls: list[dict[str, Any]],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setattr(registry, "_aggregator", aggregator_factory(ocs_client))
        ocs_routes["listSubscriber"] = {
            "listSubscriber": {"subscriberList": [{"sim": {"iccid": "8997201000000000009"}}]}
        }

        rows = await registry.fetch_all_data()

        assert [row.iccid for row in rows] == ["8997201000000000009"]
        assert ocs_calls == [{"listSubscriber": {"accountId": 3771}}]
