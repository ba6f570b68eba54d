from contextvars import ContextVar
from typing import Optional

# The correlation id of the request being handled by the current task.
_correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)


def set_correlation_id(correlation_id: Optional[str]) -> None:
    """Sets the correlation ID for the current async task."""
    _correlation_id_var.set(correlation_id)


def get_correlation_id() -> Optional[str]:
    """Gets the correlation ID for the current async task, if any."""
    return _correlation_id_var.get()
