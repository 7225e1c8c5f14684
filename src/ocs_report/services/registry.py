"""Service registry - wires the OCS client and resolvers once per process."""

from ocs_report.config import settings
from ocs_report.core.http import OCSClient
from ocs_report.core.utils import KeyedCache
from ocs_report.models.package import TemplateCost
from ocs_report.models.report import AggregatedRow
from ocs_report.services.aggregator import AccountAggregator
from ocs_report.services.packages import PackageResolver
from ocs_report.services.templates import TemplateCostResolver
from ocs_report.services.usage import UsageAggregator

# Template costs are reference data; kept until restart or clear_service_cache()
template_cost_cache: KeyedCache[TemplateCost] = KeyedCache()

_aggregator: AccountAggregator | None = None


def build_aggregator(
    client: OCSClient,
    cache: KeyedCache[TemplateCost] | None = None,
) -> AccountAggregator:
    """Assemble an aggregator around a client; the cache defaults to the shared one."""
    return AccountAggregator(
        client=client,
        templates=TemplateCostResolver(
            client, cache if cache is not None else template_cost_cache
        ),
        packages=PackageResolver(client),
        usage=UsageAggregator(client),
    )


def get_account_aggregator() -> AccountAggregator:
    """Get or create the process-wide aggregator."""
    global _aggregator

    if _aggregator is None:
        client = OCSClient()
        _aggregator = build_aggregator(client)
    return _aggregator


async def close_services() -> None:
    """Close the shared HTTP client."""
    if _aggregator is not None:
        await _aggregator.client.close()


def clear_service_cache() -> None:
    """Drop the shared aggregator and every cached template cost."""
    global _aggregator

    _aggregator = None
    template_cost_cache.clear()


async def fetch_all_data(account_id: int | str | None = None) -> list[AggregatedRow]:
    """Report rows for an account (or OCS_ACCOUNT_ID when none is given)."""
    return await get_account_aggregator().aggregate_account(account_id)
