# classifier.py
"""
Maps raw PhantomBuster error text and HTTP failures to user-facing
error categories.

Message checks are plain case-sensitive substring tests. The provider's
JSON-schema validation messages always mention "sessionCookie", so those
rules run before the generic session/cookie rule.
"""

from typing import Any, Optional, Sequence, Tuple

import requests

from .errors import ERRORS_BY_KIND, ErrorKind, ScrapeError

# (kind, substrings that must all be present, any-of substrings)
MESSAGE_RULES: Sequence[Tuple[ErrorKind, Tuple[str, ...], Tuple[str, ...]]] = (
    (
        ErrorKind.CREDENTIAL_TOO_SHORT,
        ("sessionCookie", "must NOT have fewer than 15 characters"),
        (),
    ),
    (ErrorKind.CONFIG_MALFORMED, (), ("must have required property",)),
    (ErrorKind.SESSION_EXPIRED, (), ("session", "cookie", "authentication")),
    (ErrorKind.RATE_LIMITED, (), ("rate limit", "too many")),
)

STATUS_RULES = {
    401: ErrorKind.AUTH_FAILED,
    404: ErrorKind.JOB_NOT_FOUND,
    429: ErrorKind.RATE_LIMITED,
}

USER_MESSAGES = {
    ErrorKind.CREDENTIAL_TOO_SHORT: "LinkedIn session cookie is too short (minimum 15 characters)",
    ErrorKind.CONFIG_MALFORMED: "PhantomBuster agent is missing a required argument",
    ErrorKind.SESSION_EXPIRED: "LinkedIn session cookie is invalid or expired; refresh it",
    ErrorKind.RATE_LIMITED: "Rate limited by PhantomBuster; try again later",
    ErrorKind.AUTH_FAILED: "PhantomBuster rejected the API key",
    ErrorKind.JOB_NOT_FOUND: "PhantomBuster agent or container not found",
    ErrorKind.NETWORK: "Could not reach PhantomBuster",
    ErrorKind.PROVIDER_EXECUTION_FAILED: "PhantomBuster agent reported a failure",
    ErrorKind.PROVIDER_ERROR: "Unexpected response from PhantomBuster",
}


def classify_message(message: Optional[str]) -> ErrorKind:
    if not message:
        return ErrorKind.PROVIDER_EXECUTION_FAILED
    for kind, all_of, any_of in MESSAGE_RULES:
        if all_of and not all(s in message for s in all_of):
            continue
        if any_of and not any(s in message for s in any_of):
            continue
        return kind
    return ErrorKind.PROVIDER_EXECUTION_FAILED


def classify(error_message: Optional[str], http_status: Optional[int] = None) -> ErrorKind:
    """
    Classify a provider failure.
    An HTTP status with a dedicated category wins; otherwise the message
    decides. A non-matching message on an HTTP failure is a PROVIDER_ERROR,
    a non-matching message from a finished run is PROVIDER_EXECUTION_FAILED.
    """
    if http_status is not None and http_status in STATUS_RULES:
        return STATUS_RULES[http_status]
    kind = classify_message(error_message)
    if http_status is not None and kind == ErrorKind.PROVIDER_EXECUTION_FAILED:
        return ErrorKind.PROVIDER_ERROR
    return kind


def error_for(
    kind: ErrorKind,
    message: Optional[str] = None,
    *,
    detail: Any = None,
    http_status: Optional[int] = None,
) -> ScrapeError:
    """Build the exception for a category, falling back to a stock message."""
    cls = ERRORS_BY_KIND[kind]
    text = USER_MESSAGES.get(kind, kind.value)
    if message and kind in (ErrorKind.PROVIDER_EXECUTION_FAILED, ErrorKind.PROVIDER_ERROR):
        text = f"{text}: {message}"
    return cls(text, detail=detail if detail is not None else message, http_status=http_status)


def error_from_message(message: Optional[str]) -> ScrapeError:
    """Exception for an error reported inside a fetch-output payload."""
    return error_for(classify(message), message)


def error_from_response(status: int, body: Any) -> ScrapeError:
    """Exception for a provider HTTP response with a failure status."""
    text = body if isinstance(body, str) else _body_message(body)
    return error_for(classify(text, status), text, detail=body, http_status=status)


def error_from_exception(exc: requests.RequestException) -> ScrapeError:
    """Exception for a transport failure raised by requests."""
    response = getattr(exc, "response", None)
    if response is not None:
        return error_from_response(response.status_code, response_body(response))
    return error_for(ErrorKind.NETWORK, str(exc), detail=str(exc))


def _body_message(body: Any) -> str:
    if isinstance(body, dict):
        for key in ("error", "message", "details"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return str(body) if body is not None else ""


def response_body(response: requests.Response) -> Any:
    try:
        return response.json()
    except (ValueError, RecursionError):
        return response.text
