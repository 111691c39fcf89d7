"""Langfuse tracing for completion calls.

The ``@observe`` decorators on the Claude client report through
``langfuse_context``; ``init_langfuse`` points that context at the
configured project, or switches it off so untraced runs stay silent.
"""

import logging
from enum import Enum
from functools import lru_cache

from langfuse import Langfuse
from langfuse.decorators import langfuse_context

from autofill.config import settings

logger = logging.getLogger(__name__)


class TracingState(str, Enum):
    """Outcome of tracing initialization, shown in the CLI banner."""

    DISABLED = "disabled"
    ENABLED = "enabled"
    UNAVAILABLE = "unavailable"


@lru_cache
def get_langfuse() -> Langfuse | None:
    """
    Get the Langfuse client for this process.

    Returns:
        Langfuse client if both keys are configured, None otherwise.
    """
    if not settings.langfuse_secret_key or not settings.langfuse_public_key:
        return None

    return Langfuse(
        secret_key=settings.langfuse_secret_key,
        public_key=settings.langfuse_public_key,
        host=settings.langfuse_base_url,
    )


def is_tracing_enabled() -> bool:
    """Whether Langfuse keys are configured."""
    return get_langfuse() is not None


def init_langfuse() -> TracingState:
    """Configure the decorator context and verify the credentials.

    Returns:
        ENABLED when traces will be sent, DISABLED when no keys are set,
        UNAVAILABLE when the keys were rejected or the host is unreachable
    """
    if not is_tracing_enabled():
        logger.debug("Langfuse not configured, tracing disabled")
        langfuse_context.configure(enabled=False)
        return TracingState.DISABLED

    try:
        get_langfuse().auth_check()
    except Exception as e:
        logger.warning(f"Langfuse auth check failed, tracing disabled: {e}")
        langfuse_context.configure(enabled=False)
        return TracingState.UNAVAILABLE

    langfuse_context.configure(
        secret_key=settings.langfuse_secret_key,
        public_key=settings.langfuse_public_key,
        host=settings.langfuse_base_url,
        enabled=True,
    )
    logger.info(f"Langfuse tracing enabled ({settings.langfuse_base_url})")
    return TracingState.ENABLED


def flush_langfuse() -> None:
    """Flush pending traces of the client and the decorators (call before exit)."""
    client = get_langfuse()
    if client:
        client.flush()
        langfuse_context.flush()


def shutdown_langfuse() -> None:
    """Shutdown Langfuse client properly."""
    client = get_langfuse()
    if client:
        client.shutdown()
