import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from ocs_report.api.router import api_router
from ocs_report.config import settings
from ocs_report.core.exceptions import ReportException, UpstreamException
from ocs_report.core.logging import configure_logging, get_logger, set_request_id
from ocs_report.core.security import limiter, verify_api_key
from ocs_report.models.report import ErrorDetail, ErrorResponse
from ocs_report.services.registry import clear_service_cache, close_services

# Configure logging (JSON outside development)
configure_logging(json_logs=settings.env != "development", log_level="INFO")
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifespan - startup and shutdown."""
    logger.info(
        "application_starting",
        env=settings.env,
        require_api_key=settings.require_api_key,
        ocs_configured=bool(settings.ocs_base_url and settings.ocs_token),
        default_account=settings.ocs_account_id or None,
        rate_limit=settings.rate_limit,
    )

    if settings.require_api_key and not settings.get_api_keys():
        logger.warning(
            "no_api_keys_configured",
            message="API key authentication is enabled but no keys configured. "
            "Set API_KEYS environment variable or disable with REQUIRE_API_KEY=false",
        )

    yield

    logger.info("application_shutting_down")
    await close_services()
    clear_service_cache()


app = FastAPI(
    title="OCS Report",
    description="Per-subscriber billing and usage report aggregated from the OCS API",
    version="0.1.0",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.middleware("http")
async def log_requests(request: Request, call_next: Any) -> Any:
    """Log all incoming requests and responses."""
    request_id = set_request_id(request.headers.get("X-Request-ID"))

    if request.url.path == "/health":
        return await call_next(request)

    logger.info(
        "request_started",
        method=request.method,
        path=request.url.path,
        query=str(request.query_params) if request.query_params else None,
        client=request.client.host if request.client else None,
    )

    start_time = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - start_time) * 1000

    logger.info(
        "request_completed",
        method=request.method,
        path=request.url.path,
        status=response.status_code,
        elapsed_ms=round(elapsed_ms, 2),
    )

    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(UpstreamException)
async def upstream_exception_handler(
    request: Request,  # noqa: ARG001
    exc: UpstreamException,
) -> JSONResponse:
    """Handle OCS upstream failures that abort a report."""
    error_response = ErrorResponse(
        error=ErrorDetail(
            code=exc.error_code,
            message=exc.message,
            upstream_status=exc.upstream_status,
            upstream_message=exc.upstream_message,
        ),
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response.model_dump(),
    )


@app.exception_handler(ReportException)
async def report_exception_handler(
    request: Request,  # noqa: ARG001
    exc: ReportException,
) -> JSONResponse:
    """Handle configuration and validation errors."""
    error_response = ErrorResponse(
        error=ErrorDetail(
            code=exc.error_code,
            message=exc.message,
        ),
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response.model_dump(),
    )


app.include_router(
    api_router,
    dependencies=[Depends(verify_api_key)],
)


# Health endpoint (no auth required)
@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok", "service": "ocs-report"}
