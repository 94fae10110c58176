"""Shared fixtures for lsd-distributed-mongo unit tests."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List
from unittest.mock import MagicMock

import pytest
from lsd_distributed_mongo.config.settings import DatabaseConfig
from lsd_distributed_mongo.database.models import InterceptedInteraction, InteractionType
from lsd_distributed_mongo.database.mongo import MongoManager

BASE_TIME = datetime(2024, 3, 1, 12, 0, 0, 123456, tzinfo=timezone(timedelta(hours=2)))


def make_interaction(trace_id: str = "trace-1", offset_seconds: int = 0, **overrides) -> InterceptedInteraction:
    data: Dict[str, Any] = dict(
        trace_id=trace_id,
        created_at=BASE_TIME + timedelta(seconds=offset_seconds),
        interaction_type=InteractionType.REQUEST,
        body='{"order": 42}',
        request_headers={"Content-Type": ["application/json"], "X-Ids": ["1", "2"]},
        service_name="OrderService",
        target="PaymentService",
        path="/payments",
        http_method="POST",
        profile="test",
        elapsed_time=17,
    )
    data.update(overrides)
    return InterceptedInteraction(**data)


def make_cursor(documents: List[Dict[str, Any]], error: Exception = None) -> MagicMock:
    """Cursor double: a context manager yielding ``documents``, then raising ``error``."""

    def iterate():
        yield from documents
        if error is not None:
            raise error

    cursor = MagicMock(name="cursor")
    cursor.__enter__.return_value = cursor
    cursor.__exit__.return_value = False
    cursor.__iter__.side_effect = iterate
    return cursor


class MockMongo:
    """Client/database/collection doubles wired the way pymongo hands them out."""

    def __init__(self):
        self.collection = MagicMock(name="collection")
        self.collection.name = "interceptedInteraction"
        self.database = MagicMock(name="database")
        self.database.list_collection_names.return_value = []
        self.database.get_collection.return_value = self.collection
        self.client = MagicMock(name="client")
        self.client.get_database.return_value = self.database
        self.calls: List[Dict[str, Any]] = []

    def factory(self, uri, **options):
        self.calls.append({"uri": uri, **options})
        return self.client

    def cursor(self, documents, error=None) -> MagicMock:
        cursor = make_cursor(documents, error)
        self.collection.find.return_value = cursor
        return cursor


@pytest.fixture
def new_interaction():
    """``new_interaction(trace_id, offset_seconds, **overrides)``"""
    return make_interaction


@pytest.fixture
def mongo() -> MockMongo:
    return MockMongo()


@pytest.fixture
def db_config() -> DatabaseConfig:
    return DatabaseConfig(connection_string="mongodb://localhost:27017")


@pytest.fixture
def manager(mongo, db_config) -> MongoManager:
    return MongoManager(db_config, client_factory=mongo.factory)
