"""Report API routes."""

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import Response

from ocs_report.api.dependencies import get_aggregator
from ocs_report.config import settings
from ocs_report.core.security import limiter
from ocs_report.models.report import FetchDataResponse
from ocs_report.services.aggregator import AccountAggregator, summarize_rows
from ocs_report.services.export import (
    CSV_MEDIA_TYPE,
    XLSX_MEDIA_TYPE,
    export_filename,
    rows_to_csv,
    rows_to_xlsx,
)
from ocs_report.services.usage import utc_today

router = APIRouter(prefix="/fetch-data", tags=["report"])


def _attachment(filename: str) -> dict[str, str]:
    return {"Content-Disposition": f'attachment; filename="{filename}"'}


@router.get("", response_model=FetchDataResponse)
@limiter.limit(settings.rate_limit)
async def fetch_data(
    request: Request,  # noqa: ARG001
    account_id: str | None = Query(
        None, alias="accountId", description="OCS account; defaults to OCS_ACCOUNT_ID"
    ),
    aggregator: AccountAggregator = Depends(get_aggregator),
) -> FetchDataResponse:
    """Per-subscriber cost and usage rows for an account, with totals."""
    resolved_id = settings.require_account_id(account_id)
    rows = await aggregator.aggregate_account(resolved_id)
    return FetchDataResponse(
        account_id=resolved_id,
        data=rows,
        totals=summarize_rows(rows),
    )


@router.get("/export.csv", response_class=Response)
@limiter.limit(settings.rate_limit)
async def export_csv(
    request: Request,  # noqa: ARG001
    account_id: str | None = Query(
        None, alias="accountId", description="OCS account; defaults to OCS_ACCOUNT_ID"
    ),
    aggregator: AccountAggregator = Depends(get_aggregator),
) -> Response:
    """Same rows as CSV, in the fixed export column order."""
    rows = await aggregator.aggregate_account(account_id)
    return Response(
        content=rows_to_csv(rows),
        media_type=CSV_MEDIA_TYPE,
        headers=_attachment(export_filename(utc_today(), "csv")),
    )


@router.get("/export.xlsx", response_class=Response)
@limiter.limit(settings.rate_limit)
async def export_xlsx(
    request: Request,  # noqa: ARG001
    account_id: str | None = Query(
        None, alias="accountId", description="OCS account; defaults to OCS_ACCOUNT_ID"
    ),
    aggregator: AccountAggregator = Depends(get_aggregator),
) -> Response:
    """Same rows as an Excel workbook."""
    rows = await aggregator.aggregate_account(account_id)
    return Response(
        content=rows_to_xlsx(rows),
        media_type=XLSX_MEDIA_TYPE,
        headers=_attachment(export_filename(utc_today(), "xlsx")),
    )
