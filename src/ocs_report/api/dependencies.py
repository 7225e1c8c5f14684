from ocs_report.services.aggregator import AccountAggregator
from ocs_report.services.registry import get_account_aggregator


async def get_aggregator() -> AccountAggregator:
    """Provide the shared account aggregator (overridable in tests)."""
    return get_account_aggregator()
