"""Claude completion client and reply parsing."""

from autofill.integrations.claude.client import (
    ApiClient,
    ResilientApiClient,
    RetryState,
    backoff_delay_ms,
    classify_status,
)
from autofill.integrations.claude.parser import parse_fills_response, strip_code_fence

__all__ = [
    "ApiClient",
    "ResilientApiClient",
    "RetryState",
    "backoff_delay_ms",
    "classify_status",
    "parse_fills_response",
    "strip_code_fence",
]
