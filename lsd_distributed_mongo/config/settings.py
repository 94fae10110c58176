"""
Settings Configuration
======================
Configuration for the interaction store, validated with pydantic.

Values come from (highest priority first) explicit keyword arguments,
``LSD_*`` environment variables, a ``.env`` file and YAML/JSON config
files loaded through ``Settings.load``.

Environment examples:
    LSD_DATABASE__CONNECTION_STRING=mongodb://localhost:27017
    LSD_DATABASE__RETENTION_POLICY=ttl
    LSD_LOGGING__LEVEL=DEBUG
    LSD_PROFILE=staging
"""

from pathlib import Path
from typing import Optional, Dict, Any, Union
from enum import Enum

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..utils.logger import get_logger

logger = get_logger(__name__)


DEFAULT_TIMEOUT_MILLIS = 500
DEFAULT_COLLECTION_SIZE_LIMIT_MB = 1000 * 10  # 10Gb
DEFAULT_RETENTION_DAYS = 14
DEFAULT_DATABASE_NAME = "lsd"
DEFAULT_COLLECTION_NAME = "interceptedInteraction"


# ==================== RETENTION POLICY ====================

class RetentionPolicy(str, Enum):
    """How old interactions leave the collection."""
    CAPPED = "capped"
    TTL = "ttl"


# ==================== DATABASE SETTINGS ====================

class DatabaseConfig(BaseModel):
    """MongoDB connection and collection configuration."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    # Connection
    connection_string: Optional[str] = Field(
        None, alias="dbConnectionString", description="MongoDB connection URI"
    )
    connection_timeout_millis: int = Field(
        DEFAULT_TIMEOUT_MILLIS,
        gt=0,
        alias="connectionTimeoutMillis",
        description="Connect, read and server-selection timeout (ms)"
    )

    # TLS
    trust_store_location: Optional[str] = Field(
        None, alias="trustStoreLocation", description="PKCS#12 trust store path or packaged resource"
    )
    trust_store_password: Optional[SecretStr] = Field(
        None, alias="trustStorePassword", description="Trust store password"
    )
    resource_package: str = Field(
        "lsd_distributed_mongo", description="Package searched for packaged trust stores"
    )

    # Collection shape
    database_name: str = Field(DEFAULT_DATABASE_NAME, description="Database name")
    collection_name: str = Field(DEFAULT_COLLECTION_NAME, description="Collection name")
    retention_policy: RetentionPolicy = Field(
        RetentionPolicy.CAPPED, alias="retentionPolicy", description="capped or ttl"
    )
    collection_size_limit_mb: int = Field(
        DEFAULT_COLLECTION_SIZE_LIMIT_MB,
        gt=0,
        alias="collectionSizeLimitMB",
        description="Capped collection size (MB), capped policy only"
    )
    retention_days: int = Field(
        DEFAULT_RETENTION_DAYS,
        gt=0,
        alias="retentionDays",
        description="Record lifetime (days), ttl policy only"
    )

    @field_validator('connection_string', 'trust_store_location')
    @classmethod
    def blank_to_none(cls, v):
        """Treat blank strings as unset."""
        if v is not None and not v.strip():
            return None
        return v

    @property
    def has_trust_store(self) -> bool:
        """Both trust store location and password are non-blank."""
        return bool(
            self.trust_store_location
            and self.trust_store_password is not None
            and self.trust_store_password.get_secret_value().strip()
        )

    @property
    def collection_size_bytes(self) -> int:
        """Capped collection size in bytes."""
        return 1024 * 1000 * self.collection_size_limit_mb

    @property
    def retention_seconds(self) -> int:
        """TTL index ``expireAfterSeconds``."""
        return self.retention_days * 24 * 60 * 60


# ==================== LOGGING SETTINGS ====================

class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field("INFO", description="Log level")
    use_colors: bool = Field(True, description="Use colored output")
    use_json: bool = Field(False, description="Use JSON format for files")
    log_file: Optional[str] = Field(None, description="Log file path")
    max_bytes: int = Field(10485760, description="Max log size (10MB)")
    backup_count: int = Field(5, description="Number of backup files")

    @field_validator('level')
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}")
        return v.upper()


# ==================== MAIN SETTINGS CLASS ====================

class Settings(BaseSettings):
    """
    Main settings class.

    ``database.connection_string`` left unset means the interaction store
    is switched off for this process (see ``library.create_repository``).
    """

    model_config = SettingsConfigDict(
        env_prefix="LSD_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    # Interaction naming/grouping profile handed to the factory
    profile: str = Field("", description="Active deployment profile")

    @property
    def enabled(self) -> bool:
        """True when a connection string is configured."""
        return self.database.connection_string is not None

    @classmethod
    def load(cls, path: Union[str, Path]) -> 'Settings':
        """
        Load configuration from a YAML or JSON file.

        Args:
            path: File path to load from

        Returns:
            Settings: Loaded settings instance
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path, 'r', encoding='utf-8') as f:
            data: Dict[str, Any] = yaml.safe_load(f) or {}

        logger.debug(f"Configuration read from {path}")
        return cls(**data)


# ==================== HELPER FUNCTIONS ====================

def load_settings(environment: Optional[str] = None) -> Settings:
    """
    Load settings for environment.

    Reads ``.env.<environment>`` (or ``.env``) into the process environment,
    then ``config.<environment>.yaml`` (or ``config.yaml``) when present,
    falling back to environment variables only.

    Args:
        environment: Environment name

    Returns:
        Settings: Loaded settings
    """
    env_file = f".env.{environment}" if environment else ".env"
    if Path(env_file).exists():
        load_dotenv(env_file)

    config_file = f"config.{environment}.yaml" if environment else "config.yaml"
    if Path(config_file).exists():
        return Settings.load(config_file)

    return Settings()


_settings_instance: Optional[Settings] = None


def get_settings() -> Settings:
    """Get current settings (singleton)."""
    global _settings_instance

    if _settings_instance is None:
        _settings_instance = load_settings()

    return _settings_instance


def reload_settings(environment: Optional[str] = None) -> Settings:
    """Reload settings, replacing the singleton."""
    global _settings_instance
    _settings_instance = load_settings(environment)

    logger.info("🔄 Settings reloaded")
    return _settings_instance
