"""
Audit Logger

Every routing decision of the sync layer is logged: which store served a
call, when the backend was unreachable, when the local mirror was updated.

The audit logger:
- Only writes structured logs (there is no remote audit sink)
- Never raises into the calling operation
- Supports correlation IDs to tie together the events of one facade call
"""

import logging
from uuid import UUID, uuid4

import structlog

from aiwallet.models.audit import AuditEvent


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route stdlib logging (and therefore structlog) to stderr at `level`."""
    logging.basicConfig(format="%(message)s", level=level.upper())


class AuditLogger:
    """
    Central audit logging service.
    """

    def __init__(self, logger_name: str = "aiwallet.audit"):
        self._logger = structlog.get_logger(logger_name)

    def log(self, event: AuditEvent) -> None:
        """Log an audit event at its severity."""
        log_dict = event.to_log_dict()
        severity = event.severity.value

        try:
            if severity == "error":
                self._logger.error("audit_event", **log_dict)
            elif severity == "warning":
                self._logger.warning("audit_event", **log_dict)
            elif severity == "debug":
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception as e:
            # A broken log handler must not fail an account operation
            logging.getLogger(__name__).warning("audit logging failed: %s", e)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a facade call and pass it to every event.
    """
    return uuid4()
