"""
RequestContext management.
Use ContextVar to share the invocation log id across async tasks and the
worker threads a handler runs on.
"""

from contextvars import ContextVar
from typing import Optional


# Context variable for the log correlation id of the current invocation.
_log_id_var: ContextVar[Optional[str]] = ContextVar("log_id", default=None)


def get_log_id() -> Optional[str]:
    """Get the current log correlation id."""
    return _log_id_var.get()


def set_log_id(log_id: Optional[str]) -> None:
    """
    Set the log correlation id for the current context.

    Empty ids (disabled logging) are stored as None.
    """
    _log_id_var.set(log_id or None)


def clear_log_id() -> None:
    """Clear the log id context."""
    _log_id_var.set(None)
