"""Report output models: the nine-column row, totals and API envelopes."""

from pydantic import BaseModel, ConfigDict, Field

# Column order is a compatibility contract for CSV/Excel consumers
OUTPUT_COLUMNS: tuple[str, ...] = (
    "ICCID",
    "lastUsageDate",
    "prepaidpackagetemplatename",
    "cost",
    "pckdatabyte",
    "useddatabyte",
    "tsactivationutc",
    "tsexpirationutc",
    "resellerCost",
)

# ─────────────────────────────────────────────────────────────────────────────
# ROWS
# ─────────────────────────────────────────────────────────────────────────────


class AggregatedRow(BaseModel):
    """Minimal projection of a subscriber, serialized under OUTPUT_COLUMNS."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    iccid: str | None = Field(default=None, alias="ICCID")
    last_usage_date: str | None = Field(default=None, alias="lastUsageDate")
    prepaidpackagetemplatename: str | None = None
    cost: float | None = None
    pckdatabyte: int | float | None = None
    useddatabyte: int | float | None = None
    tsactivationutc: str | None = None
    tsexpirationutc: str | None = None
    reseller_cost: float | None = Field(default=None, alias="resellerCost")

    def as_dict(self) -> dict[str, object]:
        """Serialize with the external column names, nulls included."""
        return self.model_dump(by_alias=True)


class ReportTotals(BaseModel):
    """Column totals shown alongside the table."""

    total_cost: float = 0.0
    total_reseller_cost: float = 0.0
    pnl: float = 0.0


# ─────────────────────────────────────────────────────────────────────────────
# API ENVELOPES
# ─────────────────────────────────────────────────────────────────────────────


class FetchDataResponse(BaseModel):
    """Response of the fetch-data endpoint."""

    ok: bool = True
    account_id: int = Field(alias="accountId")
    data: list[AggregatedRow]
    totals: ReportTotals

    model_config = ConfigDict(populate_by_name=True)


class ErrorDetail(BaseModel):
    """Error detail."""

    code: str
    message: str
    upstream_status: int | None = None
    upstream_message: str | None = None


class ErrorResponse(BaseModel):
    """Standard error response."""

    ok: bool = False
    error: ErrorDetail
