"""
Audit Logger

DESIGN DECISION: Every change to the ledger is logged.
This provides:
1. Complete traceability of stock and money movements
2. Debugging capability
3. A history the shop owner can review

The audit logger:
- Always logs locally through structlog
- Optionally keeps events in the PersistentStore under the "audit" key
- Gracefully handles failures (a failed audit write never breaks a sale)
"""

from typing import Optional

import structlog

from bizledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from bizledger.services.storage import PersistentStore


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


AUDIT_KEY = "audit"


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The persistent store (for the in-app history), when one is given
    """

    def __init__(
        self,
        store: Optional[PersistentStore] = None,
        retention: int = 500,
    ):
        """
        Initialize audit logger.

        Args:
            store: Store used to keep events. If None, only logs locally.
            retention: Maximum number of events kept in the store.
        """
        self._store = store
        self._retention = retention
        self._logger = structlog.get_logger("bizledger.audit")
        if store is not None:
            store.register(AUDIT_KEY, list[AuditEvent], list)

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to the store if available.

        Returns True if the store write succeeded (or no store configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._store is None:
            return True

        events = list(self._store.get(AUDIT_KEY, []))
        events.append(event)
        ok = self._store.set(AUDIT_KEY, events[-self._retention:])
        if not ok:
            # Log failure but don't raise
            self._logger.error("audit_storage_failed", event_id=str(event.event_id))
        return ok

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> bool:
        """Log an error no ledger operation accounted for."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
        )
        return self.log(event)

    def recent(self, limit: int = 50) -> list[AuditEvent]:
        """Most recent persisted events, newest first."""
        if self._store is None:
            return []
        events = self._store.get(AUDIT_KEY, [])
        return list(reversed(events[-limit:]))
