"""
Logging configuration.

Every log line carries a correlation id so that the records of one slot
computation or booking attempt can be followed across modules.
"""
import logging
import uuid
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(correlation_id)s] %(message)s"


class CorrelationIdFilter(logging.Filter):
    """Fill in a placeholder correlation id for records logged outside a request."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = "-"
        return True


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger once for the whole application."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, CorrelationIdFilter) for f in handler.filters):
            handler.addFilter(CorrelationIdFilter())

    # Quieter third-party loggers
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def new_correlation_id() -> str:
    return uuid.uuid4().hex[:12]


def bind_logger(logger: logging.Logger, correlation_id: Optional[str] = None) -> logging.LoggerAdapter:
    """
    Return an adapter that stamps every record with ``correlation_id``.

    Args:
        logger: Module logger (usually ``logging.getLogger(__name__)``)
        correlation_id: Request id; a new one is generated when omitted
    """
    return logging.LoggerAdapter(logger, {"correlation_id": correlation_id or new_correlation_id()})
