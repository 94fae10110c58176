"""
Database Operations
===================
Repository for intercepted interactions.

Tracing persistence is best effort: ``save`` and ``find_by_trace_ids``
log storage failures and never raise them to the caller.
"""

import time
from typing import Optional, List, Dict, Any, Iterable, Protocol, Union, runtime_checkable

from bson.errors import BSONError
from pymongo import ASCENDING
from pymongo.errors import PyMongoError

from ..config.settings import DatabaseConfig, Settings
from ..utils.logger import get_logger
from .codecs import InteractionCodec, CREATED_AT, TRACE_ID
from .models import InterceptedInteraction
from .mongo import MongoManager, Active, ConnectionState

logger = get_logger(__name__)


@runtime_checkable
class InterceptedDocumentRepository(Protocol):
    """Storage backend for intercepted interactions."""

    def save(self, interaction: InterceptedInteraction) -> None:
        """Persist one interaction. Must not raise."""
        ...

    def find_by_trace_ids(self, *trace_ids: str) -> List[InterceptedInteraction]:
        """Interactions of any of the trace ids, oldest first. Must not raise."""
        ...


def _flatten_ids(trace_ids) -> List[str]:
    # find_by_trace_ids("a", "b") and find_by_trace_ids({"a", "b"}) are equivalent
    if len(trace_ids) == 1 and not isinstance(trace_ids[0], str):
        trace_ids = tuple(trace_ids[0])
    return list(dict.fromkeys(trace_ids))


class InterceptedDocumentMongoRepository:
    """
    MongoDB-backed interaction repository.

    The collection handle is resolved once, at construction. If the
    database cannot be reached or prepared the repository is disabled:
    ``save`` does nothing and ``find_by_trace_ids`` returns ``[]`` for the
    rest of the instance's life.
    """

    def __init__(
        self,
        config: Union[DatabaseConfig, Settings, None] = None,
        codec: Optional[InteractionCodec] = None,
        manager: Optional[MongoManager] = None,
        **options
    ):
        """
        Initialize repository and connect.

        Args:
            config: Database configuration (or full settings)
            codec: Document codec; a default one is built when omitted
            manager: Pre-built manager, mainly for tests
            **options: ``DatabaseConfig`` fields, used when ``config`` is None
        """
        if isinstance(config, Settings):
            config = config.database
        if config is None and manager is None:
            config = DatabaseConfig(**options)

        self.codec = codec or (manager.codec if manager else InteractionCodec())
        self.manager = manager or MongoManager(config, codec=self.codec)

        result = self.manager.connect()
        self._collection = result.collection if isinstance(result, Active) else None

    @property
    def state(self) -> ConnectionState:
        return self.manager.state

    @property
    def enabled(self) -> bool:
        return self._collection is not None

    def _repository_active(self) -> bool:
        if self._collection is None:
            logger.warning("⚠️ The interaction MongoDB repository is disabled!")
            return False
        return True

    def save(self, interaction: InterceptedInteraction) -> None:
        """
        Save an interaction.

        Args:
            interaction: Record to insert
        """
        if not self._repository_active():
            return

        try:
            start = time.perf_counter()
            self._collection.insert_one(self.codec.to_document(interaction))
            logger.debug(f"💾 save took {(time.perf_counter() - start) * 1000:.1f} ms")

        except (PyMongoError, BSONError, UnicodeError) as e:
            logger.error(
                f"Skipping persisting the interceptedInteraction due to exception - "
                f"interceptedInteraction:{interaction!r}, message:{e}",
                exc_info=True
            )

    def find_by_trace_ids(self, *trace_ids: Union[str, Iterable[str]]) -> List[InterceptedInteraction]:
        """
        Get interactions whose trace id is any of ``trace_ids``.

        Args:
            *trace_ids: One or more trace ids, or a single iterable of them

        Returns:
            List ordered by ``createdAt`` ascending; partial on storage errors
        """
        result: List[InterceptedInteraction] = []
        if not self._repository_active():
            return result

        ids = _flatten_ids(trace_ids)
        if not ids:
            return result

        start = time.perf_counter()
        try:
            with self._collection.find(
                {TRACE_ID: {"$in": ids}},
                sort=[(CREATED_AT, ASCENDING)]
            ) as cursor:
                for document in cursor:
                    try:
                        result.append(self.codec.from_document(document))
                    except (ValueError, TypeError) as e:
                        logger.warning(f"Skipping unreadable interaction {document.get('_id')}: {e}")

            logger.debug(f"🔍 findByTraceIds took {(time.perf_counter() - start) * 1000:.1f} ms")

        except (PyMongoError, BSONError) as e:
            logger.error(
                f"Failed to retrieve interceptedInteractions - traceIds:{ids}, "
                f"retrieved:{len(result)}, message:{e}",
                exc_info=True
            )

        return result

    def health_check(self) -> Dict[str, Any]:
        """Delegates to the manager."""
        return self.manager.health_check()

    def close(self) -> None:
        """Release the client. Only for process shutdown and tests."""
        self.manager.close()
        self._collection = None
