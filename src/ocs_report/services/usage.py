"""Cumulative data usage and reseller cost over weekly windows."""

from collections.abc import Callable, Iterator
from datetime import date, datetime, timedelta, timezone

from ocs_report.config import settings
from ocs_report.core.concurrency import bounded_map
from ocs_report.core.exceptions import UpstreamException
from ocs_report.core.http import OCSClient
from ocs_report.core.logging import get_logger
from ocs_report.core.utils import dig, finite_number
from ocs_report.models.usage import DATA_USAGE_TYPE, UsageTotals, UsageWindow, WindowUsage

logger = get_logger(__name__)


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def week_windows(start: date, end: date, days: int = 7) -> Iterator[UsageWindow]:
    """Split ``[start, end]`` into consecutive inclusive windows of ``days`` days.

    The last window is clipped to ``end``; nothing is yielded when
    ``start > end``.
    """
    if days < 1:
        raise ValueError(f"days must be >= 1, got {days}")

    current = start
    while current <= end:
        window_end = min(current + timedelta(days=days - 1), end)
        yield UsageWindow(start=current, end=window_end)
        current = window_end + timedelta(days=1)


class UsageAggregator:
    """Sums ``subscriberUsageOverPeriod`` totals from the range start to today."""

    def __init__(
        self,
        client: OCSClient,
        start_date: date | None = None,
        concurrency: int | None = None,
        window_days: int | None = None,
        today: Callable[[], date] = utc_today,
    ):
        self.client = client
        self.start_date = start_date or settings.usage_range_start
        self.concurrency = concurrency or settings.usage_window_concurrency
        self.window_days = window_days or settings.usage_window_days
        self.today = today

    def windows(self) -> list[UsageWindow]:
        return list(week_windows(self.start_date, self.today(), self.window_days))

    async def fetch_window(self, subscriber_id: int | str, window: UsageWindow) -> WindowUsage:
        """Data bytes (type 33) and reseller cost for one window."""
        response = await self.client.call(
            {
                "subscriberUsageOverPeriod": {
                    "subscriber": {"subscriberId": subscriber_id},
                    "period": {
                        "start": window.start.isoformat(),
                        "end": window.end.isoformat(),
                    },
                }
            }
        )
        total = dig(response, "subscriberUsageOverPeriod", "total")
        return WindowUsage(
            data_bytes=finite_number(dig(total, "quantityPerType", DATA_USAGE_TYPE)),
            reseller_cost=finite_number(dig(total, "resellerCost")),
        )

    async def aggregate_usage(self, subscriber_id: int | str) -> UsageTotals:
        """Sum usage over every window; failed windows contribute nothing."""
        windows = self.windows()

        async def fetch(window: UsageWindow) -> WindowUsage | None:
            try:
                return await self.fetch_window(subscriber_id, window)
            except UpstreamException as e:
                logger.warning(
                    "usage_window_failed",
                    subscriber_id=subscriber_id,
                    start=window.start.isoformat(),
                    end=window.end.isoformat(),
                    error=e.message,
                )
                return None

        results = await bounded_map(windows, fetch, self.concurrency)

        totals = UsageTotals(windows=len(windows))
        for usage in results:
            if usage is None:
                totals.failed_windows += 1
                continue
            if usage.data_bytes is not None:
                totals.sum_bytes += usage.data_bytes
            if usage.reseller_cost is not None:
                totals.sum_reseller_cost += usage.reseller_cost
        return totals
