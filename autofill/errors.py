"""Error taxonomy for form analysis, fill generation and orchestration.

API-layer errors carry a ``kind``, whether the retry loop may try again,
and a user-facing message. User messages never echo raw server bodies.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Classified failure condition."""

    CONFIGURATION = "configuration"
    AUTHENTICATION = "authentication"
    RATE_LIMITED = "rate_limited"
    SERVER = "server"
    TIMEOUT = "timeout"
    NETWORK = "network"
    MALFORMED_RESPONSE = "malformed_response"
    TRUNCATED_RESPONSE = "truncated_response"
    REQUEST_FAILED = "request_failed"
    RETRIES_EXHAUSTED = "retries_exhausted"


USER_FRIENDLY_ERRORS = {
    ErrorKind.CONFIGURATION: "API key not configured. Please add your Anthropic API key in settings.",
    ErrorKind.AUTHENTICATION: "Invalid API key. Please check your Anthropic API key in settings.",
    ErrorKind.RATE_LIMITED: "You have exceeded the API rate limit. Please wait a moment and try again.",
    ErrorKind.SERVER: "The AI service is temporarily unavailable. Please try again in a few moments.",
    ErrorKind.TIMEOUT: "The request took too long. Please check your connection and try again.",
    ErrorKind.NETWORK: "Could not connect to the Anthropic API. Please check your internet connection.",
    ErrorKind.MALFORMED_RESPONSE: "Could not understand Claude's response format. Please try again.",
    ErrorKind.TRUNCATED_RESPONSE: "The form is too complex. Please try filling it in sections.",
    ErrorKind.REQUEST_FAILED: "The AI service rejected the request. Please try again.",
    ErrorKind.RETRIES_EXHAUSTED: "Something went wrong. Please try again.",
}


class AutofillError(Exception):
    """Base class for all errors raised by the autofill core."""


# ============================================================================
# API layer
# ============================================================================


class ApiError(AutofillError):
    """Failure of a fill-generation call."""

    kind: ErrorKind = ErrorKind.REQUEST_FAILED
    retryable: bool = False

    def __init__(self, message: str | None = None, status_code: int | None = None):
        self.status_code = status_code
        self.user_message = message or USER_FRIENDLY_ERRORS[self.kind]
        super().__init__(self.user_message)


class ConfigurationError(ApiError):
    kind = ErrorKind.CONFIGURATION


class AuthenticationError(ApiError):
    kind = ErrorKind.AUTHENTICATION


class RateLimitedError(ApiError):
    kind = ErrorKind.RATE_LIMITED
    retryable = True


class ServerError(ApiError):
    kind = ErrorKind.SERVER
    retryable = True


class ApiTimeoutError(ApiError):
    kind = ErrorKind.TIMEOUT
    retryable = True


class NetworkError(ApiError):
    kind = ErrorKind.NETWORK
    retryable = True


class MalformedResponseError(ApiError):
    kind = ErrorKind.MALFORMED_RESPONSE


class TruncatedResponseError(ApiError):
    kind = ErrorKind.TRUNCATED_RESPONSE


class RequestFailedError(ApiError):
    kind = ErrorKind.REQUEST_FAILED


class RetriesExhaustedError(ApiError):
    """Raised when every attempt failed with a retryable error."""

    kind = ErrorKind.RETRIES_EXHAUSTED

    def __init__(self, attempts: int, last_error: ApiError | None):
        self.attempts = attempts
        self.last_error = last_error
        detail = last_error.user_message if last_error else USER_FRIENDLY_ERRORS[self.kind]
        super().__init__(
            f"Unable to complete the request after {attempts} attempts. {detail}",
            status_code=last_error.status_code if last_error else None,
        )


# ============================================================================
# Extraction
# ============================================================================


class NoFormFoundError(AutofillError):
    """The document holds nothing that looks like an application form."""


class NoFormFieldsError(AutofillError):
    """A form was found but none of its controls can be filled."""


# ============================================================================
# Orchestration
# ============================================================================


class RateLimitExceeded(AutofillError):
    """Raised when the local rate limiter rejects an operation."""

    def __init__(self, key: str, limit: int, wait_seconds: float):
        self.key = key
        self.limit = limit
        self.wait_seconds = wait_seconds
        super().__init__(
            f"Too many requests. Please wait {max(1, round(wait_seconds))} seconds "
            f"and try again."
        )


class OperationInProgressError(AutofillError):
    """Raised when an operation starts while another one is still running."""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Another {operation} operation is already in progress.")
