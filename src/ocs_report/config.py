import secrets
from datetime import date

from pydantic_settings import BaseSettings

from ocs_report.core.exceptions import ConfigurationException, ValidationException


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Service
    env: str = "development"
    debug: bool = False

    # API Security
    api_keys: str = ""  # Comma-separated list of valid API keys
    api_key_header: str = "X-API-Key"
    require_api_key: bool = True  # Set to False to disable auth (dev only)

    # Rate Limiting
    rate_limit_requests: int = 30  # requests per window
    rate_limit_window: str = "minute"  # second, minute, hour, day

    # HTTP Client
    http_timeout: float = 25.0
    http_max_connections: int = 20
    http_max_keepalive: int = 10

    # OCS upstream
    ocs_base_url: str = ""
    ocs_token: str = ""
    ocs_account_id: str = ""  # Default account when the caller passes none

    # Aggregation
    usage_range_start: date = date(2025, 6, 1)
    usage_window_days: int = 7
    usage_window_concurrency: int = 6
    enrichment_concurrency: int = 6

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    def get_api_keys(self) -> set[str]:
        """Get the set of valid API keys."""
        if not self.api_keys:
            return set()
        return {k.strip() for k in self.api_keys.split(",") if k.strip()}

    def is_valid_api_key(self, key: str) -> bool:
        """Check if the given API key is valid."""
        return key in self.get_api_keys()

    @property
    def rate_limit(self) -> str:
        return f"{self.rate_limit_requests}/{self.rate_limit_window}"

    def require_ocs_base_url(self) -> str:
        """Return the upstream base URL or fail if it is not configured."""
        if not self.ocs_base_url:
            raise ConfigurationException("OCS_BASE_URL missing")
        return self.ocs_base_url

    def require_ocs_token(self) -> str:
        """Return the upstream access token or fail if it is not configured."""
        if not self.ocs_token:
            raise ConfigurationException("OCS_TOKEN missing")
        return self.ocs_token

    def require_account_id(self, account_id: str | int | None = None) -> int:
        """Resolve the account to report on.

        An explicit value wins over OCS_ACCOUNT_ID. Missing everywhere is a
        configuration error; a value that is not a positive integer is a
        validation error.
        """
        raw = account_id if account_id not in (None, "") else self.ocs_account_id
        if raw in (None, ""):
            raise ConfigurationException(
                "Provide accountId (env OCS_ACCOUNT_ID or ?accountId=)"
            )
        try:
            value = int(str(raw).strip())
        except ValueError as e:
            raise ValidationException(f"Invalid accountId: {raw!r}") from e
        if value <= 0:
            raise ValidationException(f"Invalid accountId: {raw!r}")
        return value

    @staticmethod
    def generate_api_key() -> str:
        """Generate a new secure API key."""
        return secrets.token_urlsafe(32)


settings = Settings()
