"""
Error kinds and the user-facing messages derived from them.

Raw error text and stack traces never reach the user: every failure is
reduced to an ErrorKind, and every kind has exactly one message.
"""

import asyncio

import httpx

from movieflix.core.exceptions import ApiError
from movieflix.models.errors import ErrorKind

FRIENDLY_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.NETWORK: "Connection problem. Please check your internet connection.",
    ErrorKind.TIMEOUT: "Request timed out. Please try again.",
    ErrorKind.BAD_REQUEST: "Invalid request. Please check your input.",
    ErrorKind.UNAUTHORIZED: "Please log in to continue.",
    ErrorKind.FORBIDDEN: "You don't have permission to access this.",
    ErrorKind.NOT_FOUND: "The requested content was not found.",
    ErrorKind.RATE_LIMITED: "Too many requests. Please wait a moment.",
    ErrorKind.SERVER: "Server issue. Please try again later.",
    ErrorKind.UNKNOWN: "Something went wrong. Please try again.",
}

# Fallback for errors without a typed discriminant. Scanned in order against
# the lower-cased message; the first match wins.
MESSAGE_PATTERNS: tuple[tuple[str, ErrorKind], ...] = (
    ("failed to fetch", ErrorKind.NETWORK),
    ("network error", ErrorKind.NETWORK),
    ("unauthorized", ErrorKind.UNAUTHORIZED),
    ("forbidden", ErrorKind.FORBIDDEN),
    ("not found", ErrorKind.NOT_FOUND),
    ("internal server error", ErrorKind.SERVER),
    ("timeout", ErrorKind.TIMEOUT),
    ("timed out", ErrorKind.TIMEOUT),
    ("too many requests", ErrorKind.RATE_LIMITED),
    ("bad request", ErrorKind.BAD_REQUEST),
    ("connection", ErrorKind.NETWORK),
)

# Messages of the API status switch (ErrorReporter.handle_api_error)
STATUS_MESSAGES: dict[int, str] = {
    400: "Invalid request. Please check your input.",
    401: "Please log in to continue.",
    403: "Access denied.",
    404: "Content not found.",
    429: "Too many requests. Please wait a moment.",
    500: "Server error. Please try again later.",
}
API_FAILED_MESSAGE = "API request failed"


def kind_for_status(status: int | None) -> ErrorKind:
    if status is None:
        return ErrorKind.UNKNOWN
    if status == 400:
        return ErrorKind.BAD_REQUEST
    if status == 401:
        return ErrorKind.UNAUTHORIZED
    if status == 403:
        return ErrorKind.FORBIDDEN
    if status == 404:
        return ErrorKind.NOT_FOUND
    if status == 429:
        return ErrorKind.RATE_LIMITED
    if status >= 500:
        return ErrorKind.SERVER
    return ErrorKind.UNKNOWN


def status_message(status: int | None) -> str:
    if status is None:
        return API_FAILED_MESSAGE
    return STATUS_MESSAGES.get(status, f"Request failed ({status})")


def get_status(error: BaseException) -> int | None:
    """HTTP status carried by `error`, if any."""
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    if isinstance(error, ApiError):
        return error.status
    return None


def classify_message(message: str) -> ErrorKind:
    lowered = message.lower()
    for pattern, kind in MESSAGE_PATTERNS:
        if pattern in lowered:
            return kind
    return ErrorKind.UNKNOWN


def classify_error(error: BaseException | str) -> ErrorKind:
    """Map an error to its kind: exception type and status first, message text last."""
    if isinstance(error, str):
        return classify_message(error)

    if isinstance(error, (httpx.TimeoutException, asyncio.TimeoutError, TimeoutError)):
        return ErrorKind.TIMEOUT
    if isinstance(error, (httpx.TransportError, ConnectionError)):
        return ErrorKind.NETWORK

    status = get_status(error)
    if status is not None:
        kind = kind_for_status(status)
        if kind is not ErrorKind.UNKNOWN:
            return kind

    return classify_message(str(error))


def friendly_message(error: BaseException | str) -> str:
    return FRIENDLY_MESSAGES[classify_error(error)]
