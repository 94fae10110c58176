"""
Library Wiring
==============
Startup helpers that build the repository and factory from settings.

The repository is created once per process and shared; it owns its
MongoDB client for the process lifetime.
"""

import threading
from typing import Optional

from .config.settings import Settings, get_settings
from .database.codecs import InteractionCodec
from .database.operations import InterceptedDocumentMongoRepository
from .factory import InterceptedInteractionFactory
from .utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

_repository: Optional[InterceptedDocumentMongoRepository] = None
_lock = threading.Lock()


def create_repository(
    settings: Settings,
    codec: Optional[InteractionCodec] = None
) -> Optional[InterceptedDocumentMongoRepository]:
    """
    Build a repository when a connection string is configured.

    Args:
        settings: Loaded settings
        codec: Document codec (default one when omitted)

    Returns:
        The repository, or None when no connection string is set
    """
    if not settings.enabled:
        logger.info("Interaction store not configured (no connection string)")
        return None

    return InterceptedDocumentMongoRepository(settings.database, codec=codec)


def create_factory(settings: Settings) -> InterceptedInteractionFactory:
    """Factory bound to the configured profile."""
    return InterceptedInteractionFactory(settings.profile)


def configure_logging(settings: Optional[Settings] = None) -> None:
    """
    Apply the ``logging`` section of the settings to the root logger.

    For applications that want the store's console/file formatting; the
    library never calls this on its own.
    """
    config = (settings or get_settings()).logging
    setup_logging(
        level=config.level,
        log_file=config.log_file,
        use_colors=config.use_colors,
        use_json=config.use_json,
        max_bytes=config.max_bytes,
        backup_count=config.backup_count
    )


def get_repository(settings: Optional[Settings] = None) -> Optional[InterceptedDocumentMongoRepository]:
    """
    Get or create the process-wide repository.

    Args:
        settings: Used on first call only; defaults to ``get_settings()``
    """
    global _repository

    with _lock:
        if _repository is None:
            _repository = create_repository(settings or get_settings())
        return _repository


def reset_repository() -> None:
    """Close and forget the process-wide repository."""
    global _repository

    with _lock:
        if _repository is not None:
            _repository.close()
        _repository = None
