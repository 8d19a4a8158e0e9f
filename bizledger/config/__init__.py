"""Configuration package."""

from bizledger.config.settings import (
    AppSettings,
    BucketMatching,
    ProductDeletePolicy,
    Settings,
    StorageSettings,
    get_settings,
)

__all__ = [
    "AppSettings",
    "BucketMatching",
    "ProductDeletePolicy",
    "Settings",
    "StorageSettings",
    "get_settings",
]
