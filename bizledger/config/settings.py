"""
Configuration Management for BizLedger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Every tunable of the ledger (where data lives, how hard we retry a failed
write, how analytics are bucketed) is visible in one place and validated
at startup.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProductDeletePolicy(str, Enum):
    """What happens to historical sales when their product is deleted."""
    RETAIN_SALES = "retain_sales"    # Sales stay, product_id dangles
    CASCADE_SALES = "cascade_sales"  # Sales referencing the product go too


class BucketMatching(str, Enum):
    """How records are assigned to analytics buckets."""
    RANGE = "range"            # Full day / week window / calendar month
    ANCHOR_DAY = "anchor_day"  # Only records on the bucket's anchor day


class StorageSettings(BaseSettings):
    """Durable storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="BIZLEDGER_STORAGE_",
        extra="ignore"
    )

    data_dir: Path = Field(
        default=Path.home() / ".bizledger",
        description="Directory holding one JSON file per collection"
    )
    write_retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts per durable write before giving up"
    )
    write_retry_wait_seconds: float = Field(
        default=0.2,
        ge=0.0,
        le=10.0,
        description="Base wait between write attempts (exponential)"
    )
    persist_audit_log: bool = Field(
        default=True,
        description="Keep audit events in the store next to the ledger"
    )
    audit_retention: int = Field(
        default=500,
        ge=10,
        description="Maximum number of audit events kept in the store"
    )

    @field_validator("data_dir")
    @classmethod
    def expand_data_dir(cls, v: Path) -> Path:
        """Allow ~ in the configured path."""
        return v.expanduser()


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="BIZLEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Inventory and dashboard
    low_stock_threshold: int = Field(
        default=5,
        ge=0,
        description="Products at or below this stock are flagged"
    )
    recent_transactions_limit: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Number of sales shown as recent transactions"
    )

    # Analytics
    top_products_limit: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Length of the top-selling products ranking"
    )
    bucket_matching: BucketMatching = Field(
        default=BucketMatching.RANGE,
        description="How records are matched to trend buckets"
    )

    # Ledger policy
    product_delete_policy: ProductDeletePolicy = Field(
        default=ProductDeletePolicy.RETAIN_SALES,
        description="Fate of historical sales when a product is deleted"
    )

    # Simulated device delays
    printer_scan_seconds: float = Field(
        default=3.0,
        ge=0.0,
        description="Duration of a simulated printer scan"
    )
    insight_refresh_seconds: float = Field(
        default=1.5,
        ge=0.0,
        description="Duration of a simulated insight refresh"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()
