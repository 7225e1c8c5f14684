class ReportException(Exception):
    """Base exception for all report service errors."""

    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConfigurationException(ReportException):
    """Required configuration (base URL, token, account) is missing."""

    status_code = 500
    error_code = "configuration_error"


class UpstreamException(ReportException):
    """Error from the OCS upstream: non-2xx status, timeout or network failure."""

    status_code = 502
    error_code = "upstream_error"

    def __init__(
        self,
        message: str,
        upstream_status: int | None = None,
        upstream_message: str | None = None,
    ):
        self.upstream_status = upstream_status
        self.upstream_message = upstream_message
        super().__init__(message)


class ValidationException(ReportException):
    """Request validation failed."""

    status_code = 422
    error_code = "validation_error"
