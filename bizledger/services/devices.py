"""
Simulated Devices

There is no hardware behind these services. A printer scan sleeps for a
configured delay and "finds" a fixed list of printers; an insight refresh
sleeps and then recomputes the analytics report. Both are async so a UI
can show a spinner while they run.

DESIGN DECISION: Each service allows ONE operation in flight. A second
scan or refresh started while the first is running returns None straight
away instead of queueing, so a double-click cannot stack up work.
"""

import asyncio
from typing import Callable, Optional

import structlog

from bizledger.audit import AuditLogger
from bizledger.exceptions import PrinterNotConnectedError
from bizledger.models import AnalyticsReport, AuditEventBuilder, BusinessSettings, Period
from bizledger.repositories import SettingsRepository


MOCK_PRINTERS = (
    "Thermal Printer XP-58",
    "ESC/POS Printer 001",
    "Mobile Printer Pro",
)


class PrinterService:
    """Discovery and connection state of the (simulated) receipt printer."""

    def __init__(
        self,
        settings_repo: SettingsRepository,
        audit_logger: Optional[AuditLogger] = None,
        scan_seconds: float = 3.0,
    ):
        self._settings_repo = settings_repo
        self._audit = audit_logger
        self._scan_seconds = scan_seconds
        self._scanning = False
        self._logger = structlog.get_logger(__name__)

    @property
    def is_scanning(self) -> bool:
        return self._scanning

    @property
    def connected_printer(self) -> Optional[str]:
        settings = self._settings_repo.get()
        return settings.printer_name if settings.printer_connected else None

    async def scan(self) -> Optional[list[str]]:
        """
        Look for nearby printers.

        Returns:
            The printer names found, or None if a scan was already running
        """
        if self._scanning:
            self._logger.info("printer_scan_ignored", reason="scan in progress")
            return None
        self._scanning = True
        try:
            await asyncio.sleep(self._scan_seconds)
            return list(MOCK_PRINTERS)
        finally:
            self._scanning = False

    def connect(self, printer_name: str) -> BusinessSettings:
        settings = self._settings_repo.update(
            printer_connected=True, printer_name=printer_name
        )
        if self._audit:
            self._audit.log(AuditEventBuilder.printer_connected(printer_name))
        return settings

    def disconnect(self) -> BusinessSettings:
        settings = self._settings_repo.update(printer_connected=False, printer_name=None)
        if self._audit:
            self._audit.log(AuditEventBuilder.printer_disconnected())
        return settings

    def test_print(self) -> str:
        """
        Produce the text of a test page.

        Raises:
            PrinterNotConnectedError: If no printer is connected
        """
        settings = self._settings_repo.get()
        if not settings.printer_connected:
            raise PrinterNotConnectedError()
        return "\n".join([
            settings.business_name,
            "TEST PRINT",
            f"Printer: {settings.printer_name}",
            "If you can read this, printing works.",
        ])


class InsightRefresher:
    """Recomputes the analytics report after a short simulated delay."""

    def __init__(
        self,
        build_report: Callable[[Period], AnalyticsReport],
        delay_seconds: float = 1.5,
    ):
        self._build_report = build_report
        self._delay_seconds = delay_seconds
        self._refreshing = False

    @property
    def is_refreshing(self) -> bool:
        return self._refreshing

    async def refresh(self, period: Period = Period.WEEKLY) -> Optional[AnalyticsReport]:
        """The fresh report, or None if a refresh was already running."""
        if self._refreshing:
            return None
        self._refreshing = True
        try:
            await asyncio.sleep(self._delay_seconds)
            return self._build_report(Period(period))
        finally:
            self._refreshing = False
