"""Integration tests against a real MongoDB server.

Set ``LSD_TEST_MONGO_URI`` (e.g. ``mongodb://localhost:27017``) to run them;
they are skipped automatically otherwise. Each test uses its own database,
dropped afterwards. Run with::

    LSD_TEST_MONGO_URI=mongodb://localhost:27017 pytest tests/integration/ -v
"""

import os
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pytest
from pymongo import MongoClient
from lsd_distributed_mongo.config.settings import DatabaseConfig, RetentionPolicy
from lsd_distributed_mongo.database.models import InterceptedInteraction, InteractionType
from lsd_distributed_mongo.database.operations import InterceptedDocumentMongoRepository

MONGO_URI = os.environ.get("LSD_TEST_MONGO_URI")


def _mongo_reachable() -> bool:
    if not MONGO_URI:
        return False
    try:
        client = MongoClient(MONGO_URI, serverSelectionTimeoutMS=1000)
        client.admin.command("ping")
        client.close()
        return True
    except Exception:
        return False


pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(not _mongo_reachable(), reason="LSD_TEST_MONGO_URI not set or not reachable"),
]

START = datetime(2024, 6, 1, 9, 0, 0, 654321, tzinfo=timezone(timedelta(hours=-5)))


def interaction(trace_id, seconds=0, **overrides):
    data = dict(
        trace_id=trace_id,
        created_at=START + timedelta(seconds=seconds),
        interaction_type=InteractionType.REQUEST,
        body="x" * 64,
        request_headers={"Accept": ["application/json"]},
        service_name="Orders",
        target="Stock",
        path="/stock/1",
        http_method="GET",
    )
    data.update(overrides)
    return InterceptedInteraction(**data)


@pytest.fixture
def database_name():
    name = f"lsd_test_{uuid.uuid4().hex[:12]}"
    yield name
    client = MongoClient(MONGO_URI)
    client.drop_database(name)
    client.close()


@pytest.fixture
def make_repository(database_name):
    created = []

    def make(**options):
        config = DatabaseConfig(
            connection_string=MONGO_URI,
            database_name=database_name,
            connection_timeout_millis=2000,
            **options,
        )
        repository = InterceptedDocumentMongoRepository(config)
        created.append(repository)
        return repository

    yield make
    for repository in created:
        repository.close()


@pytest.fixture
def repository(make_repository):
    repo = make_repository()
    assert repo.enabled
    return repo


class TestRoundTrip:
    def test_all_fields_survive(self, repository):
        original = interaction(
            "rt-1",
            interaction_type=InteractionType.CONSUME,
            response_headers={"X-Multi": ["a", "b"]},
            http_status="202 Accepted",
            profile="it",
            elapsed_time=99,
        )
        repository.save(original)

        (found,) = repository.find_by_trace_ids("rt-1")

        assert found == original
        assert found.created_at.utcoffset() == timedelta(hours=-5)
        assert found.created_at.microsecond == 654321
        assert found.interaction_type is InteractionType.CONSUME

    def test_unknown_trace_id(self, repository):
        repository.save(interaction("known"))
        assert repository.find_by_trace_ids("nonexistent-id") == []


class TestOrdering:
    def test_sorted_by_created_at_regardless_of_insert_order(self, repository):
        records = [interaction("order", s) for s in (30, 10, 20, 0)]
        for record in records:
            repository.save(record)

        found = repository.find_by_trace_ids("order")

        assert [r.created_at for r in found] == sorted(r.created_at for r in records)

    def test_union_globally_sorted(self, repository):
        repository.save(interaction("a", 3))
        repository.save(interaction("b", 1))
        repository.save(interaction("a", 2))
        repository.save(interaction("c", 0))

        found = repository.find_by_trace_ids("a", "b")

        assert [(r.trace_id, (r.created_at - START).seconds) for r in found] == [
            ("b", 1), ("a", 2), ("a", 3),
        ]

    def test_mixed_offsets_sorted_by_instant(self, repository):
        utc = interaction("tz", created_at=datetime(2024, 6, 1, 13, 0, tzinfo=timezone.utc))
        earlier_local = interaction("tz", created_at=datetime(2024, 6, 1, 14, 30, tzinfo=timezone(timedelta(hours=2))))
        repository.save(utc)
        repository.save(earlier_local)

        assert repository.find_by_trace_ids("tz") == [earlier_local, utc]


class TestCappedPolicy:
    def test_collection_is_capped(self, repository, database_name):
        client = MongoClient(MONGO_URI)
        try:
            options = client[database_name]["interceptedInteraction"].options()
            assert options["capped"] is True
        finally:
            client.close()

    def test_oldest_records_evicted_when_full(self, make_repository):
        # Minimum capped size is rounded up to 4096 bytes by the server
        repository = make_repository(collection_size_limit_mb=1)
        body = "y" * 4096
        total = (1024 * 1000) // 4096 + 50

        for i in range(total):
            repository.save(interaction(f"cap-{i}", i, body=body))

        assert repository.find_by_trace_ids("cap-0") == []
        assert len(repository.find_by_trace_ids(f"cap-{total - 1}")) == 1

    def test_existing_collection_reused(self, make_repository):
        first = make_repository()
        first.save(interaction("kept"))

        second = make_repository()

        assert second.enabled
        assert len(second.find_by_trace_ids("kept")) == 1


class TestTtlPolicy:
    def test_ttl_index(self, make_repository, database_name):
        repository = make_repository(retention_policy=RetentionPolicy.TTL, retention_days=14)
        assert repository.enabled

        client = MongoClient(MONGO_URI)
        try:
            collection = client[database_name]["interceptedInteraction"]
            assert not collection.options().get("capped", False)

            indexes = {tuple(spec["key"].items()): spec for spec in collection.list_indexes()}
            assert (("traceId", 1),) in indexes
            assert indexes[(("createdAt", 1),)]["expireAfterSeconds"] == 14 * 86400
        finally:
            client.close()

    def test_retention_change_updates_ttl(self, make_repository, database_name):
        make_repository(retention_policy=RetentionPolicy.TTL, retention_days=14)
        repository = make_repository(retention_policy=RetentionPolicy.TTL, retention_days=2)
        assert repository.enabled

        client = MongoClient(MONGO_URI)
        try:
            indexes = client[database_name]["interceptedInteraction"].index_information()
            assert indexes["createdAt_1"]["expireAfterSeconds"] == 2 * 86400
        finally:
            client.close()

    def test_switch_back_to_capped_stays_enabled(self, make_repository):
        make_repository(retention_policy=RetentionPolicy.TTL, retention_days=14)
        repository = make_repository(retention_policy=RetentionPolicy.CAPPED)

        assert repository.enabled
        repository.save(interaction("after-switch"))
        assert len(repository.find_by_trace_ids("after-switch")) == 1

    @pytest.mark.slow
    def test_expired_records_swept(self, make_repository):
        # The server's TTL monitor runs once a minute
        repository = make_repository(retention_policy=RetentionPolicy.TTL, retention_days=1)
        now = datetime.now(timezone.utc)
        repository.save(interaction("ttl", created_at=now - timedelta(days=3)))
        repository.save(interaction("ttl", created_at=now))

        deadline = time.monotonic() + 150
        found = repository.find_by_trace_ids("ttl")
        while len(found) > 1 and time.monotonic() < deadline:
            time.sleep(5)
            found = repository.find_by_trace_ids("ttl")

        assert [r.created_at for r in found] == [now]


class TestConcurrency:
    def test_concurrent_saves_all_retrievable(self, repository):
        records = [interaction(f"con-{i % 5}", i) for i in range(100)]

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(repository.save, records))

        found = repository.find_by_trace_ids({f"con-{i}" for i in range(5)})

        assert len(found) == 100
        assert [r.created_at for r in found] == sorted(r.created_at for r in records)


class TestUnreachable:
    def test_disabled_without_raising(self):
        repository = InterceptedDocumentMongoRepository(
            connection_string="mongodb://127.0.0.1:1", connection_timeout_millis=200
        )

        repository.save(interaction("nowhere"))
        assert repository.find_by_trace_ids("nowhere") == []
        assert not repository.enabled
