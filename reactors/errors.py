# errors.py
"""
Error taxonomy for the reactors scraper.
Every failure surfaced to a caller is a ScrapeError carrying a category
(ErrorKind), a human-readable message and optional provider detail.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    VALIDATION = "validation_error"
    CONFIG = "config_error"
    CONFIG_MALFORMED = "config_malformed"
    CREDENTIAL_TOO_SHORT = "credential_too_short"
    SESSION_EXPIRED = "session_expired"
    RATE_LIMITED = "rate_limited"
    JOB_NOT_FOUND = "job_not_found"
    AUTH_FAILED = "auth_failed"
    NETWORK = "network_error"
    TIMEOUT = "timeout"
    PROVIDER_EXECUTION_FAILED = "provider_execution_failed"
    PROVIDER_ERROR = "provider_error"


class ScrapeError(Exception):
    """Base error; subclasses pin the kind and whether a retry may help."""

    kind: ErrorKind = ErrorKind.PROVIDER_ERROR
    retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        detail: Any = None,
        http_status: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail
        self.http_status = http_status

    def to_payload(self) -> Dict[str, Any]:
        return {
            "error": self.message,
            "category": self.kind.value,
            "details": self.detail,
        }


class ValidationError(ScrapeError):
    """Bad user input. Correct it and resubmit."""

    kind = ErrorKind.VALIDATION


class ConfigError(ScrapeError):
    """Missing or malformed deployment configuration."""

    kind = ErrorKind.CONFIG


class ConfigMalformedError(ConfigError):
    """The agent argument mapping lacks a field the provider requires."""

    kind = ErrorKind.CONFIG_MALFORMED


class CredentialTooShortError(ConfigError):
    kind = ErrorKind.CREDENTIAL_TOO_SHORT


class SessionExpiredError(ScrapeError):
    """The stored LinkedIn session cookie must be refreshed out-of-band."""

    kind = ErrorKind.SESSION_EXPIRED


class RateLimitError(ScrapeError):
    kind = ErrorKind.RATE_LIMITED
    retryable = True


class JobNotFoundError(ScrapeError):
    kind = ErrorKind.JOB_NOT_FOUND


class AuthFailedError(ScrapeError):
    kind = ErrorKind.AUTH_FAILED


class NetworkError(ScrapeError):
    kind = ErrorKind.NETWORK
    retryable = True


class PollTimeoutError(ScrapeError):
    """The agent did not finish inside the polling budget. It may still be running."""

    kind = ErrorKind.TIMEOUT
    retryable = True


class ProviderExecutionError(ScrapeError):
    """The agent ran but reported a failure; the raw message is passed through."""

    kind = ErrorKind.PROVIDER_EXECUTION_FAILED


class ProviderError(ScrapeError):
    """Unexpected HTTP status or response shape from the provider."""

    kind = ErrorKind.PROVIDER_ERROR


ERRORS_BY_KIND = {
    cls.kind: cls
    for cls in (
        ValidationError,
        ConfigError,
        ConfigMalformedError,
        CredentialTooShortError,
        SessionExpiredError,
        RateLimitError,
        JobNotFoundError,
        AuthFailedError,
        NetworkError,
        PollTimeoutError,
        ProviderExecutionError,
        ProviderError,
    )
}

# Status codes returned by the HTTP API for each category
HTTP_STATUS_BY_KIND = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.CREDENTIAL_TOO_SHORT: 400,
    ErrorKind.SESSION_EXPIRED: 401,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.CONFIG: 500,
    ErrorKind.CONFIG_MALFORMED: 500,
    ErrorKind.JOB_NOT_FOUND: 502,
    ErrorKind.AUTH_FAILED: 502,
    ErrorKind.PROVIDER_EXECUTION_FAILED: 502,
    ErrorKind.PROVIDER_ERROR: 502,
    ErrorKind.NETWORK: 503,
    ErrorKind.TIMEOUT: 504,
}
