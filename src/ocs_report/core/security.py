"""Access control for the report routes: API keys and per-caller rate limits."""

import hashlib

from fastapi import HTTPException, Request, Security
from fastapi.security import APIKeyHeader
from slowapi import Limiter
from slowapi.util import get_remote_address

from ocs_report.config import settings

report_key_header = APIKeyHeader(
    name=settings.api_key_header,
    auto_error=False,
    description="Key issued to report consumers (API_KEYS)",
)


async def verify_api_key(
    api_key: str | None = Security(report_key_header),
) -> str | None:
    """Admit a report request carrying one of the configured API_KEYS.

    With REQUIRE_API_KEY=false every request is admitted and None is returned.
    """
    if not settings.require_api_key:
        return None

    if not settings.get_api_keys():
        raise HTTPException(
            status_code=500,
            detail="Report access requires an API key but API_KEYS is empty",
        )

    if not api_key:
        raise HTTPException(
            status_code=401,
            detail=f"Send a report API key in the {settings.api_key_header} header",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    if not settings.is_valid_api_key(api_key):
        raise HTTPException(status_code=403, detail="Unknown report API key")

    return api_key


def report_caller_key(request: Request) -> str:
    """Rate-limit bucket for a caller.

    Known API keys share a bucket per key, identified by a digest so the key
    itself never lands in limiter storage; anonymous callers are bucketed by
    address.
    """
    api_key = request.headers.get(settings.api_key_header)
    if api_key and settings.is_valid_api_key(api_key):
        digest = hashlib.sha256(api_key.encode()).hexdigest()[:16]
        return f"report-key:{digest}"
    return f"report-addr:{get_remote_address(request)}"


limiter = Limiter(key_func=report_caller_key)
