"""Operation ID logging context for tracing decisions across modules.

Every booking decision and every reminder tick runs under an operation id,
so a single request or tick can be followed through the conflict checker,
the store, and the mail transport.

Usage:
    from clinic_scheduler.logging_context import get_operation_logger, set_operation_id

    set_operation_id("BOOK-3f9a1c")
    logger = get_operation_logger(__name__)
    logger.info("Checking overlap")  # record.operation_id == "BOOK-3f9a1c"
"""

import logging
import uuid
from contextvars import ContextVar

_operation_id: ContextVar[str] = ContextVar("operation_id", default="NO_OPERATION")


def set_operation_id(operation_id: str) -> None:
    """Set the operation ID for the current context."""
    _operation_id.set(operation_id)


def get_operation_id() -> str:
    """Retrieve the current operation ID."""
    return _operation_id.get()


def new_operation_id(prefix: str) -> str:
    """Generate, set, and return a fresh operation ID such as ``TICK-1a2b3c``."""
    operation_id = f"{prefix}-{uuid.uuid4().hex[:6]}"
    set_operation_id(operation_id)
    return operation_id


class OperationIdFilter(logging.Filter):
    """Injects operation_id into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.operation_id = _operation_id.get()  # type: ignore[attr-defined]
        return True


def get_operation_logger(name: str) -> logging.Logger:
    """Return a logger with the OperationIdFilter attached.

    The filter adds ``operation_id`` to each record so formatters can
    include ``%(operation_id)s`` in their format string.
    """
    logger = logging.getLogger(name)
    if not any(isinstance(f, OperationIdFilter) for f in logger.filters):
        logger.addFilter(OperationIdFilter())
    return logger
