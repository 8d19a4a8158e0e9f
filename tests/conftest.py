"""
Shared fixtures.

Every test runs against an InMemoryBackend with retries that never sleep,
and a clock the test controls. Nothing touches the disk unless a test asks
for tmp_path.
"""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from bizledger.audit import AuditLogger
from bizledger.orchestrator import BusinessLedger
from bizledger.services.storage import InMemoryBackend, PersistentStore, StorageWriteError
from bizledger.validation import LedgerValidator


# Friday
FIXED_NOW = datetime(2024, 3, 15, 10, 30, 0)


class FakeClock:
    """Callable clock that only moves when a test moves it."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class FlakyBackend(InMemoryBackend):
    """InMemoryBackend whose writes fail while `failing` is set."""

    def __init__(self):
        super().__init__()
        self.failing = False
        self.write_attempts = 0

    def write(self, key: str, payload: str) -> None:
        self.write_attempts += 1
        if self.failing:
            raise StorageWriteError(f"disk unavailable for {key}")
        super().write(key, payload)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def backend() -> FlakyBackend:
    return FlakyBackend()


@pytest.fixture
def store(backend) -> PersistentStore:
    return PersistentStore(backend, retry_attempts=2, retry_wait_seconds=0)


@pytest.fixture
def audit_logger(store) -> AuditLogger:
    return AuditLogger(store, retention=50)


@pytest.fixture
def ledger(store, audit_logger, clock) -> BusinessLedger:
    return BusinessLedger(
        store,
        audit_logger=audit_logger,
        validator=LedgerValidator(low_stock_threshold=5),
        printer_scan_seconds=0,
        insight_refresh_seconds=0,
        clock=clock,
    )


@pytest.fixture
def product_form() -> dict:
    return {
        "name": "Sugar 1kg",
        "cost_price": "600",
        "selling_price": "1000",
        "stock": 10,
        "category": "Groceries",
    }


@pytest.fixture
def sugar(ledger, product_form):
    """P1: sells at 1000, costs 600, 10 in stock."""
    return ledger.add_product(product_form)


def money(value) -> Decimal:
    return Decimal(str(value))
