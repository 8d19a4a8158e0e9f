"""Tests for the simulated printer and the insight refresher."""

import asyncio

import pytest

from bizledger.exceptions import PrinterNotConnectedError
from bizledger.models import AuditEventType, Period
from bizledger.repositories import SettingsRepository
from bizledger.services.devices import MOCK_PRINTERS, InsightRefresher, PrinterService


@pytest.fixture
def printer(store, audit_logger) -> PrinterService:
    return PrinterService(SettingsRepository(store, audit_logger), audit_logger, scan_seconds=0)


class TestPrinterService:
    """Tests for printer discovery and connection."""

    def test_scan_finds_mock_printers(self, printer):
        """Test that a scan returns the known printers."""
        assert asyncio.run(printer.scan()) == list(MOCK_PRINTERS)
        assert not printer.is_scanning

    def test_concurrent_scan_is_ignored(self, store, audit_logger):
        """Test that only one scan runs at a time."""
        printer = PrinterService(
            SettingsRepository(store, audit_logger), audit_logger, scan_seconds=0.01
        )

        async def scan_twice():
            return await asyncio.gather(printer.scan(), printer.scan())

        first, second = asyncio.run(scan_twice())
        assert first == list(MOCK_PRINTERS)
        assert second is None

    def test_connect_and_disconnect(self, printer, audit_logger):
        """Test that connection state lives in the business settings."""
        settings = printer.connect("Thermal Printer XP-58")
        assert settings.printer_connected
        assert printer.connected_printer == "Thermal Printer XP-58"
        assert audit_logger.recent(1)[0].event_type == AuditEventType.PRINTER_CONNECTED

        printer.disconnect()
        assert printer.connected_printer is None

    def test_test_print_requires_connection(self, printer):
        """Test that printing without a printer is refused."""
        with pytest.raises(PrinterNotConnectedError):
            printer.test_print()

    def test_test_print(self, printer):
        """Test the test page names the printer."""
        printer.connect("Mobile Printer Pro")
        assert "Printer: Mobile Printer Pro" in printer.test_print()


class TestInsightRefresher:
    """Tests for the delayed analytics refresh."""

    def test_refresh_builds_report(self):
        """Test that refresh passes the period through."""
        calls = []
        refresher = InsightRefresher(lambda period: calls.append(period) or period, 0)
        assert asyncio.run(refresher.refresh("monthly")) == Period.MONTHLY
        assert calls == [Period.MONTHLY]

    def test_concurrent_refresh_is_ignored(self):
        """Test that a second refresh during the first returns None."""
        refresher = InsightRefresher(lambda period: period, 0.01)

        async def refresh_twice():
            return await asyncio.gather(refresher.refresh(), refresher.refresh())

        first, second = asyncio.run(refresh_twice())
        assert first == Period.WEEKLY
        assert second is None
        assert not refresher.is_refreshing
