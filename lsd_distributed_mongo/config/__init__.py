"""
Configuration Package
=====================
Settings for the interaction store (pydantic + environment variables).
"""

from .settings import (
    Settings,
    DatabaseConfig,
    LoggingConfig,
    RetentionPolicy,
    load_settings,
    get_settings,
    reload_settings,
    DEFAULT_TIMEOUT_MILLIS,
    DEFAULT_COLLECTION_SIZE_LIMIT_MB,
    DEFAULT_RETENTION_DAYS,
    DEFAULT_DATABASE_NAME,
    DEFAULT_COLLECTION_NAME
)

__all__ = [
    "Settings",
    "DatabaseConfig",
    "LoggingConfig",
    "RetentionPolicy",
    "load_settings",
    "get_settings",
    "reload_settings",
    "DEFAULT_TIMEOUT_MILLIS",
    "DEFAULT_COLLECTION_SIZE_LIMIT_MB",
    "DEFAULT_RETENTION_DAYS",
    "DEFAULT_DATABASE_NAME",
    "DEFAULT_COLLECTION_NAME"
]
