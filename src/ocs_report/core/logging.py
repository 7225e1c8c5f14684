"""structlog setup for the report service.

Events are emitted as ``event_name key=value`` pairs, tagged with the id of
the report request being served and scrubbed of OCS and API credentials.
"""

import logging
import sys
from contextvars import ContextVar
from typing import Any
from uuid import uuid4

import structlog

# Correlation ID for the report request being served
request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)

SECRET_KEYS = frozenset({"token", "ocs_token", "api_key", "x-api-key"})
TRANSPORT_LOGGERS = ("httpx", "httpcore", "hpack")


def get_request_id() -> str | None:
    """Id of the report request being served, if any."""
    return request_id_ctx.get()


def set_request_id(request_id: str | None = None) -> str:
    """Bind the caller's X-Request-ID (or a fresh short id) to this request."""
    rid = request_id or str(uuid4())[:8]
    request_id_ctx.set(rid)
    return rid


def add_request_id(
    logger: logging.Logger,  # noqa: ARG001
    method_name: str,  # noqa: ARG001
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Tag every event with the current report request id."""
    request_id = get_request_id()
    if request_id:
        event_dict["request_id"] = request_id
    return event_dict


def redact_secrets(
    logger: logging.Logger,  # noqa: ARG001
    method_name: str,  # noqa: ARG001
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Mask credential-looking fields so the OCS token never reaches the logs."""
    for key in list(event_dict):
        if key.lower() in SECRET_KEYS and event_dict[key]:
            event_dict[key] = "***"
    return event_dict


def configure_logging(json_logs: bool = False, log_level: str = "INFO") -> None:
    """Configure structlog and the stdlib loggers of the transport stack.

    Args:
        json_logs: One JSON object per line instead of the console renderer
        log_level: Minimum level for service events
    """
    level = getattr(logging, log_level.upper())
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        add_request_id,
        redact_secrets,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if json_logs:
        # JSON output for production
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        # Pretty console output for development
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Route stdlib loggers (uvicorn, httpx) through the same stream
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    # httpx logs each request URL at INFO, and OCS URLs carry ?token=
    for name in TRANSPORT_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Bound logger for a service module."""
    return structlog.get_logger(name)  # type: ignore[no-any-return]
