"""
Correlation ID generation and context management.

Every admin request and every moderated chat message gets a short ID so a
moderator can tie a log line, a Sentry event and an error response together.
"""

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

# Context variable for request/message-scoped correlation ID
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")


def generate_correlation_id() -> str:
    """
    Generate a short, unique correlation ID.

    Format: 8 hex characters (e.g., "abc123de")

    Returns:
        8-character hexadecimal string.
    """
    return uuid.uuid4().hex[:8]


def get_correlation_id() -> str:
    """
    Get the current correlation ID.

    Returns:
        The correlation ID for the current context, or empty string if not set.
    """
    return correlation_id_var.get()


def set_correlation_id(correlation_id: str) -> None:
    """
    Set correlation ID for the current context.

    Args:
        correlation_id: The correlation ID to set.
    """
    correlation_id_var.set(correlation_id)


@contextmanager
def correlation_scope(correlation_id: str | None = None) -> Iterator[str]:
    """
    Run a block under a correlation ID, restoring the previous one afterwards.

    Reuses the ambient ID when one is already set (e.g. inside an HTTP
    request) so the message pipeline logs under the request's ID.

    Args:
        correlation_id: Explicit ID to use; generated if omitted and none is set.

    Yields:
        The correlation ID in effect for the block.
    """
    current = correlation_id or get_correlation_id() or generate_correlation_id()
    token = correlation_id_var.set(current)
    try:
        yield current
    finally:
        correlation_id_var.reset(token)
