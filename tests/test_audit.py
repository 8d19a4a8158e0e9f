"""Tests for the audit logger."""

from uuid import uuid4

from bizledger.audit import AUDIT_KEY, AuditLogger
from bizledger.models import AuditEventBuilder, AuditEventType, AuditSeverity


class TestAuditLogger:
    """Tests for local and persisted audit logging."""

    def test_local_only(self):
        """Test that a logger without a store still accepts events."""
        logger = AuditLogger()
        assert logger.log(AuditEventBuilder.expense_deleted(uuid4()))
        assert logger.recent() == []

    def test_recent_newest_first(self, store):
        """Test that recent() returns the latest events first."""
        logger = AuditLogger(store)
        logger.log(AuditEventBuilder.printer_connected("Mobile Printer Pro"))
        logger.log(AuditEventBuilder.printer_disconnected())

        events = logger.recent()

        assert [e.event_type for e in events] == [
            AuditEventType.PRINTER_DISCONNECTED,
            AuditEventType.PRINTER_CONNECTED,
        ]

    def test_retention(self, store):
        """Test that only the newest events are kept."""
        logger = AuditLogger(store, retention=10)
        for _ in range(15):
            logger.log(AuditEventBuilder.expense_deleted(uuid4()))
        assert len(store.get(AUDIT_KEY)) == 10

    def test_store_failure_is_not_raised(self, store, backend):
        """Test that a failed audit write is reported, not raised."""
        logger = AuditLogger(store)
        backend.failing = True
        assert not logger.log(AuditEventBuilder.settings_updated({"currency": "KES"}))
        assert AUDIT_KEY in store.unsynced_keys

    def test_log_error(self, store):
        """Test that unexpected errors are kept as system_error events."""
        logger = AuditLogger(store)

        assert logger.log_error("KeyError", "'price'", {"page": "Sales"})

        event = logger.recent(1)[0]
        assert event.event_type == AuditEventType.SYSTEM_ERROR
        assert event.severity == AuditSeverity.ERROR
        assert event.error_message == "'price'"
        assert event.details == {"page": "Sales"}
