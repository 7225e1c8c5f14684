"""Usage window models for ``subscriberUsageOverPeriod`` aggregation."""

from datetime import date

from pydantic import BaseModel

# OCS quantityPerType key for data traffic (bytes)
DATA_USAGE_TYPE = "33"


class UsageWindow(BaseModel):
    """Inclusive UTC calendar-date range queried in one usage call."""

    start: date
    end: date

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1


class WindowUsage(BaseModel):
    """Totals reported for a single window; None when absent upstream."""

    data_bytes: int | float | None = None
    reseller_cost: float | None = None


class UsageTotals(BaseModel):
    """Sums across every window since the range start."""

    sum_bytes: int | float = 0
    sum_reseller_cost: float = 0.0
    windows: int = 0
    failed_windows: int = 0
