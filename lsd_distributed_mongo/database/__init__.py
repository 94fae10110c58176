"""
Database Package
================
MongoDB persistence for intercepted interactions.

Components:
    - MongoManager: client construction and collection/index setup
    - InteractionCodec: BSON document mapping
    - InterceptedDocumentMongoRepository: save and lookup by trace id
"""

from .models import InterceptedInteraction, InteractionType
from .codecs import InteractionCodec, InteractionTypeEncoder, build_codec_options
from .tls import TrustStore, TrustStoreError, load_trust_store
from .mongo import MongoManager, ConnectionState, ConnectionResult, Active, Disabled
from .operations import InterceptedDocumentRepository, InterceptedDocumentMongoRepository

__all__ = [
    "InterceptedInteraction",
    "InteractionType",
    "InteractionCodec",
    "InteractionTypeEncoder",
    "build_codec_options",
    "TrustStore",
    "TrustStoreError",
    "load_trust_store",
    "MongoManager",
    "ConnectionState",
    "ConnectionResult",
    "Active",
    "Disabled",
    "InterceptedDocumentRepository",
    "InterceptedDocumentMongoRepository"
]
