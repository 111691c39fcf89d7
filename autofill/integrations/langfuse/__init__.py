"""Langfuse tracing for completion calls."""

from autofill.integrations.langfuse.tracing import (
    TracingState,
    flush_langfuse,
    get_langfuse,
    init_langfuse,
    is_tracing_enabled,
    shutdown_langfuse,
)

__all__ = [
    "get_langfuse",
    "init_langfuse",
    "is_tracing_enabled",
    "flush_langfuse",
    "shutdown_langfuse",
    "TracingState",
]
