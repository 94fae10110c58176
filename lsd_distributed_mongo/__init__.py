"""
lsd-distributed-mongo
=====================
MongoDB storage for intercepted interactions captured by the
distributed tracing library.

Usage:
    from lsd_distributed_mongo import Settings, create_repository

    repository = create_repository(Settings())
    repository.save(interaction)
    repository.find_by_trace_ids("trace-1", "trace-2")
"""

from .config import Settings, DatabaseConfig, RetentionPolicy, load_settings
from .database import (
    InterceptedInteraction,
    InteractionType,
    InteractionCodec,
    InterceptedDocumentRepository,
    InterceptedDocumentMongoRepository,
    MongoManager,
    Active,
    Disabled
)
from .factory import InterceptedInteractionFactory
from .library import (
    create_repository,
    create_factory,
    configure_logging,
    get_repository,
    reset_repository
)

__version__ = "1.0.0"

__all__ = [
    "Settings",
    "DatabaseConfig",
    "RetentionPolicy",
    "load_settings",
    "InterceptedInteraction",
    "InteractionType",
    "InteractionCodec",
    "InterceptedDocumentRepository",
    "InterceptedDocumentMongoRepository",
    "MongoManager",
    "Active",
    "Disabled",
    "InterceptedInteractionFactory",
    "create_repository",
    "create_factory",
    "configure_logging",
    "get_repository",
    "reset_repository"
]
