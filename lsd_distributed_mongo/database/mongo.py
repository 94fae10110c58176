"""
MongoDB Manager
===============
Builds the MongoDB client and prepares the interaction collection.

``connect`` never raises: it returns ``Active`` with a ready collection
handle, or ``Disabled`` with the reason setup failed. Either outcome is
final for the manager; there is no reconnect.
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Dict, Any, Union, Callable

from pymongo import ASCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import CollectionInvalid, OperationFailure

from ..config.settings import DatabaseConfig, RetentionPolicy
from ..utils.logger import get_logger
from .codecs import InteractionCodec, CREATED_AT, TRACE_ID
from .tls import TrustStore, load_trust_store

logger = get_logger(__name__)

# Server error codes raised when an index exists with other options
INDEX_OPTIONS_CONFLICT = 85
INDEX_KEY_SPECS_CONFLICT = 86


class ConnectionState(str, Enum):
    """Lifecycle of a manager."""
    UNINITIALIZED = "uninitialized"
    CONNECTING = "connecting"
    ACTIVE = "active"
    DISABLED = "disabled"


@dataclass(frozen=True)
class Active:
    """Connected; ``collection`` is ready for reads and writes."""

    collection: Collection
    client: MongoClient
    trust_store: Optional[TrustStore] = None


@dataclass(frozen=True)
class Disabled:
    """Setup failed; the store stays off for this process."""

    reason: str


ConnectionResult = Union[Active, Disabled]


class MongoManager:
    """
    MongoDB connection manager for the interaction collection.

    Responsibilities:
        - Client construction (timeouts, retryable writes, custom trust store)
        - Collection creation per retention policy (capped or TTL)
        - Index creation on ``traceId`` and ``createdAt``
        - Health checks
    """

    RETRY_WRITES = True

    def __init__(
        self,
        config: DatabaseConfig,
        codec: Optional[InteractionCodec] = None,
        client_factory: Callable[..., MongoClient] = MongoClient
    ):
        """
        Initialize MongoDB manager.

        Args:
            config: Database configuration
            codec: Codec options source for the collection handle
            client_factory: Callable building the client (``MongoClient``)
        """
        self.config = config
        self.codec = codec or InteractionCodec()
        self._client_factory = client_factory
        self.state = ConnectionState.UNINITIALIZED
        self.result: Optional[ConnectionResult] = None

    def connect(self) -> ConnectionResult:
        """
        Connect and prepare the collection.

        Returns:
            ConnectionResult: ``Active`` or ``Disabled``; repeated calls
            return the first outcome
        """
        if self.result is not None:
            return self.result

        self.state = ConnectionState.CONNECTING
        trust_store: Optional[TrustStore] = None
        client: Optional[MongoClient] = None

        try:
            if not self.config.connection_string:
                raise ValueError("No database connection string configured")

            trust_store = self._load_trust_store()
            client = self._create_client(trust_store)

            start = time.perf_counter()
            collection = self._prepare_collection(client)
            elapsed = (time.perf_counter() - start) * 1000

        except Exception as e:
            logger.error(
                f"❌ Interaction store disabled, MongoDB setup failed: {e}",
                exc_info=True
            )
            if client is not None:
                client.close()
            if trust_store is not None:
                trust_store.cleanup()

            self.result = Disabled(reason=str(e) or type(e).__name__)
            self.state = ConnectionState.DISABLED
            return self.result

        logger.info(
            f"✅ Interaction store ready: {self.config.database_name}."
            f"{self.config.collection_name} "
            f"({self.config.retention_policy.value}, {elapsed:.0f} ms)"
        )
        self.result = Active(collection=collection, client=client, trust_store=trust_store)
        self.state = ConnectionState.ACTIVE
        return self.result

    def _load_trust_store(self) -> Optional[TrustStore]:
        if not self.config.has_trust_store:
            return None

        return load_trust_store(
            self.config.trust_store_location,
            self.config.trust_store_password.get_secret_value(),
            self.config.resource_package
        )

    def _create_client(self, trust_store: Optional[TrustStore]) -> MongoClient:
        timeout = self.config.connection_timeout_millis

        options: Dict[str, Any] = {
            "connectTimeoutMS": timeout,
            "socketTimeoutMS": timeout,
            "serverSelectionTimeoutMS": timeout,
            "retryWrites": self.RETRY_WRITES,
        }
        if trust_store is not None:
            options.update(trust_store.driver_options())

        return self._client_factory(self.config.connection_string, **options)

    def _prepare_collection(self, client: MongoClient) -> Collection:
        database = client.get_database(self.config.database_name)
        name = self.config.collection_name

        if name not in database.list_collection_names():
            self._create_collection(database)

        collection = database.get_collection(name, codec_options=self.codec.codec_options)
        collection.create_index([(TRACE_ID, ASCENDING)])
        self._create_created_at_index(database, collection)

        logger.debug(f"📇 Indexes ensured on {name}")
        return collection

    def _create_collection(self, database: Database) -> None:
        name = self.config.collection_name
        options: Dict[str, Any] = {}

        if self.config.retention_policy is RetentionPolicy.CAPPED:
            options = {"capped": True, "size": self.config.collection_size_bytes}

        try:
            database.create_collection(name, **options)
        except CollectionInvalid:
            # Created concurrently by another process
            logger.debug(f"Collection {name} already exists")
            return

        logger.info(f"📦 Created collection {name} {options or '(uncapped)'}")

    def _create_created_at_index(self, database: Database, collection: Collection) -> None:
        if self.config.retention_policy is not RetentionPolicy.TTL:
            try:
                collection.create_index([(CREATED_AT, ASCENDING)])
            except OperationFailure as e:
                if e.code not in (INDEX_OPTIONS_CONFLICT, INDEX_KEY_SPECS_CONFLICT):
                    raise
                # Left over from a ttl deployment; still usable for sorting
                logger.warning(
                    f"⚠️ Keeping existing {CREATED_AT} index on {collection.name}: "
                    f"records may still expire by TTL ({e})"
                )
            return

        expire_after = self.config.retention_seconds
        try:
            collection.create_index([(CREATED_AT, ASCENDING)], expireAfterSeconds=expire_after)
        except OperationFailure as e:
            if e.code not in (INDEX_OPTIONS_CONFLICT, INDEX_KEY_SPECS_CONFLICT):
                raise
            # An index on createdAt exists without (or with another) TTL
            database.command(
                "collMod",
                collection.name,
                index={"keyPattern": {CREATED_AT: ASCENDING}, "expireAfterSeconds": expire_after}
            )
            logger.info(f"🔧 TTL on {CREATED_AT} set to {expire_after}s")

    @property
    def is_connected(self) -> bool:
        """True once ``connect`` produced ``Active``."""
        return isinstance(self.result, Active)

    def health_check(self) -> Dict[str, Any]:
        """
        Perform health check on the database connection.

        Returns:
            Dict containing health status and metrics
        """
        if isinstance(self.result, Disabled):
            return {"healthy": False, "status": "disabled", "error": self.result.reason}

        if not isinstance(self.result, Active):
            return {"healthy": False, "status": self.state.value, "error": "Not connected to database"}

        try:
            start = time.perf_counter()
            self.result.client.admin.command("ping")
            latency = (time.perf_counter() - start) * 1000

            database = self.result.collection.database
            stats = database.command("collStats", self.result.collection.name)

            return {
                "healthy": True,
                "status": "connected",
                "latency_ms": round(latency, 2),
                "database": database.name,
                "collection": self.result.collection.name,
                "documents": stats.get("count", 0),
                "capped": stats.get("capped", False),
                "size_mb": round(stats.get("size", 0) / (1024 * 1024), 2)
            }

        except Exception as e:
            logger.error(f"Health check failed: {e}")
            return {"healthy": False, "status": "error", "error": str(e)}

    def close(self) -> None:
        """Close the client and remove temporary trust material."""
        if isinstance(self.result, Active):
            self.result.client.close()
            if self.result.trust_store is not None:
                self.result.trust_store.cleanup()
            logger.info("🔌 Disconnected from MongoDB")
