"""
Unit tests for IndexerService.

Runs against InMemoryDocumentStore; store failures and slow stores are
simulated with small subclasses.
"""

import asyncio

import pytest

from gitss.core.document_id import derive_key
from gitss.core.errors import (
    BackingStoreUnavailableError,
    ConflictingWriteError,
    MalformedRecordError,
    NotFoundError,
)
from gitss.core.key_lock import KeyedLock
from gitss.core.operations import AddOperation, DeleteOperation, DocumentSelector
from gitss.infrastructure.fakes import InMemoryDocumentStore
from gitss.services.indexer_service import IndexerService
from gitss.services.indexing_models import WriteStatus
from tests.file_index_strategies import make_file_index


class FailingDocumentStore(InMemoryDocumentStore):
    """Store whose upserts fail for selected paths."""

    def __init__(self, failing_paths: set[str]) -> None:
        super().__init__()
        self.failing_paths = failing_paths

    async def upsert(self, key, document):
        if document.path in self.failing_paths:
            raise BackingStoreUnavailableError(f"Write rejected for {key}")
        await super().upsert(key, document)


class SlowDocumentStore(InMemoryDocumentStore):
    """Store that yields to the event loop between read and write."""

    async def get(self, key):
        document = await super().get(key)
        await asyncio.sleep(0)
        return document

    async def update_refs(self, key, document):
        await asyncio.sleep(0)
        await super().update_refs(key, document)


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def service(store) -> IndexerService:
    return IndexerService(store)


class TestCreateAndUpsert:
    @pytest.mark.asyncio
    async def test_create_returns_key(self, service, store):
        key = await service.create_file_index(make_file_index())

        assert key == "o:p:r:abc123:/src/a.go"
        assert store.keys() == [key]
        assert await service.count() == 1

    @pytest.mark.asyncio
    async def test_create_existing_key_conflicts(self, service):
        await service.create_file_index(make_file_index(branches=["main"]))

        with pytest.raises(ConflictingWriteError):
            await service.create_file_index(make_file_index(branches=["dev"]))

    @pytest.mark.asyncio
    async def test_create_rejects_malformed_record(self, service, store):
        record = make_file_index()
        record.blob = ""

        with pytest.raises(MalformedRecordError):
            await service.create_file_index(record)
        assert await store.count() == 0

    @pytest.mark.asyncio
    async def test_create_rejects_record_without_refs(self, service, store):
        with pytest.raises(MalformedRecordError):
            await service.create_file_index(make_file_index(branches=[], tags=[]))

        assert await store.count() == 0

    @pytest.mark.asyncio
    async def test_upsert_rejects_record_without_refs(self, service, store):
        await service.upsert_file_index(make_file_index(branches=["main"]))

        with pytest.raises(MalformedRecordError):
            await service.upsert_file_index(make_file_index(branches=[], tags=[]))

        stored = await service.get_file_index("o:p:r:abc123:/src/a.go")
        assert stored.branches == ["main"]
        assert await store.count() == 1

    @pytest.mark.asyncio
    async def test_upsert_creates_then_merges(self, service):
        assert await service.upsert_file_index(make_file_index(branches=["main"])) == WriteStatus.CREATED
        assert await service.upsert_file_index(make_file_index(branches=["develop"])) == WriteStatus.MERGED

        stored = await service.get_file_index("o:p:r:abc123:/src/a.go")
        assert stored.branches == ["main", "develop"]
        assert sorted(stored.full_refs) == ["o:p/r:branch:develop", "o:p/r:branch:main"]

    @pytest.mark.asyncio
    async def test_upsert_known_refs_is_unchanged(self, service):
        await service.upsert_file_index(make_file_index(branches=["main"], tags=["v1"]))

        status = await service.upsert_file_index(make_file_index(branches=["main"], tags=["v1"]))

        assert status == WriteStatus.UNCHANGED

    @pytest.mark.asyncio
    async def test_upsert_does_not_mutate_caller_record(self, service):
        await service.upsert_file_index(make_file_index(branches=["main"]))
        record = make_file_index(branches=["dev"])

        await service.upsert_file_index(record)

        assert record.branches == ["dev"]

    @pytest.mark.asyncio
    async def test_merge_keeps_content_searchable(self, service):
        await service.upsert_file_index(make_file_index(branches=["main"], content="func Hello()"))
        await service.upsert_file_index(make_file_index(branches=["dev"], content="func Hello()"))

        result = await service.search_query("hello")

        assert result.size == 1
        assert result.hits[0].metadata.branches == ["main", "dev"]

    @pytest.mark.asyncio
    async def test_exists(self, service):
        record = make_file_index()
        assert await service.exists(record) is False

        await service.upsert_file_index(record)

        assert await service.exists(record) is True

    @pytest.mark.asyncio
    async def test_get_missing_key_raises(self, service):
        with pytest.raises(NotFoundError):
            await service.get_file_index("o:p:r:missing:/x")


class TestBatch:
    @pytest.mark.asyncio
    async def test_failure_does_not_block_other_operations(self):
        store = FailingDocumentStore(failing_paths={"/bad.go"})
        service = IndexerService(store)
        bad = make_file_index(path="/bad.go")
        good = make_file_index(path="/good.go")

        result = await service.batch_file_index([AddOperation(bad), AddOperation(good)])

        assert not result.ok
        assert [o.succeeded for o in result.outcomes] == [False, True]
        assert isinstance(result.outcomes[0].error, BackingStoreUnavailableError)
        assert result.outcomes[1].status == WriteStatus.CREATED
        assert result.failed_operations() == [AddOperation(bad)]
        assert await service.exists(good)
        assert not await service.exists(bad)

    @pytest.mark.asyncio
    async def test_add_without_refs_is_reported_as_failed(self, service, store):
        bare = make_file_index(path="/bare.go", branches=[], tags=[])
        good = make_file_index(path="/good.go")

        result = await service.batch_file_index([AddOperation(bare), AddOperation(good)])

        assert [o.succeeded for o in result.outcomes] == [False, True]
        assert isinstance(result.outcomes[0].error, MalformedRecordError)
        assert store.keys() == ["o:p:r:abc123:/good.go"]

    @pytest.mark.asyncio
    async def test_operations_apply_in_order(self, service):
        selector = DocumentSelector("o", "p", "r", branches=("main",))

        result = await service.batch_file_index(
            [
                AddOperation(make_file_index(branches=["main"])),
                DeleteOperation(selector),
                AddOperation(make_file_index(branches=["main"])),
            ]
        )

        assert result.ok
        assert [o.status for o in result.outcomes] == [
            WriteStatus.CREATED,
            WriteStatus.DELETED,
            WriteStatus.CREATED,
        ]
        assert await service.count() == 1

    @pytest.mark.asyncio
    async def test_delete_without_match_is_noop(self, service):
        await service.upsert_file_index(make_file_index(branches=["main"]))

        result = await service.batch_file_index(
            [DeleteOperation(DocumentSelector("o", "p", "r", branches=("gone",)))]
        )

        assert result.ok
        assert result.outcomes[0].status == WriteStatus.NO_MATCH
        assert await service.count() == 1

    @pytest.mark.asyncio
    async def test_delete_by_path(self, service):
        await service.upsert_file_index(make_file_index(path="/a.go", branches=["main"]))
        await service.upsert_file_index(make_file_index(path="/b.go", branches=["main"]))

        result = await service.batch_file_index(
            [DeleteOperation(DocumentSelector("o", "p", "r", branches=("main",), path="/a.go"))]
        )

        assert result.outcomes[0].status == WriteStatus.DELETED
        assert not await service.exists(make_file_index(path="/a.go"))
        assert await service.exists(make_file_index(path="/b.go"))

    @pytest.mark.asyncio
    async def test_unknown_operation_is_reported(self, service):
        result = await service.batch_file_index(["not an operation"])

        assert isinstance(result.outcomes[0].error, TypeError)


class TestDeleteByRefs:
    @pytest.mark.asyncio
    async def test_strips_ref_and_deletes_orphans(self, service):
        await service.upsert_file_index(make_file_index(path="/shared.go", branches=["main", "dev"]))
        await service.upsert_file_index(make_file_index(path="/dev_only.go", branches=["dev"]))
        await service.upsert_file_index(make_file_index(path="/main_only.go", branches=["main"]))

        result = await service.delete_index_by_refs("o", "p", "r", branches=["dev"])

        assert (result.matched, result.updated, result.deleted) == (2, 1, 1)
        assert result.status == WriteStatus.UPDATED
        shared = await service.get_file_index(derive_key(make_file_index(path="/shared.go")))
        assert shared.branches == ["main"]
        assert shared.full_refs == ["o:p/r:branch:main"]
        assert await service.count() == 2

    @pytest.mark.asyncio
    async def test_tag_removal_keeps_same_named_branch(self, service):
        await service.upsert_file_index(make_file_index(branches=["v1"], tags=["v1"]))

        result = await service.delete_index_by_refs("o", "p", "r", tags=["v1"])

        assert result.updated == 1
        stored = await service.get_file_index("o:p:r:abc123:/src/a.go")
        assert stored.branches == ["v1"]
        assert stored.tags == []

    @pytest.mark.asyncio
    async def test_other_repositories_untouched(self, service):
        await service.upsert_file_index(make_file_index(repository="r", branches=["main"]))
        await service.upsert_file_index(make_file_index(repository="other", branches=["main"]))

        result = await service.delete_index_by_refs("o", "p", "r", branches=["main"])

        assert result.deleted == 1
        assert await service.exists(make_file_index(repository="other"))

    @pytest.mark.asyncio
    async def test_unknown_ref_is_noop(self, service):
        await service.upsert_file_index(make_file_index(branches=["main"]))

        result = await service.delete_index_by_refs("o", "p", "r", branches=["nope"])

        assert result.status == WriteStatus.NO_MATCH
        assert await service.count() == 1


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_concurrent_upserts_keep_every_ref(self):
        store = SlowDocumentStore()
        service = IndexerService(store)
        branches = [f"b{i}" for i in range(10)]

        statuses = await asyncio.gather(
            *(service.upsert_file_index(make_file_index(branches=[b])) for b in branches)
        )

        assert statuses.count(WriteStatus.CREATED) == 1
        assert statuses.count(WriteStatus.MERGED) == 9
        stored = await service.get_file_index("o:p:r:abc123:/src/a.go")
        assert sorted(stored.branches) == sorted(branches)
        assert len(stored.full_refs) == 10

    @pytest.mark.asyncio
    async def test_concurrent_merge_and_removal(self):
        store = SlowDocumentStore()
        service = IndexerService(store)
        await service.upsert_file_index(make_file_index(branches=["main", "dev"]))

        await asyncio.gather(
            service.upsert_file_index(make_file_index(branches=["feature"])),
            service.delete_index_by_refs("o", "p", "r", branches=["dev"]),
        )

        stored = await service.get_file_index("o:p:r:abc123:/src/a.go")
        assert sorted(stored.branches) == ["feature", "main"]

    @pytest.mark.asyncio
    async def test_concurrent_creates_conflict_once(self):
        service = IndexerService(SlowDocumentStore())

        results = await asyncio.gather(
            service.create_file_index(make_file_index()),
            service.create_file_index(make_file_index()),
            return_exceptions=True,
        )

        assert sum(isinstance(r, ConflictingWriteError) for r in results) == 1


class TestKeyedLock:
    @pytest.mark.asyncio
    async def test_same_key_is_serialized(self):
        locks = KeyedLock()
        entered = asyncio.Event()
        release = asyncio.Event()
        order = []

        async def first():
            async with locks.hold("k"):
                entered.set()
                await release.wait()
                order.append("first")

        async def second():
            await entered.wait()
            async with locks.hold("k"):
                order.append("second")

        tasks = [asyncio.create_task(first()), asyncio.create_task(second())]
        await asyncio.wait_for(entered.wait(), timeout=1.0)
        await asyncio.sleep(0)
        assert order == []

        release.set()
        await asyncio.wait_for(asyncio.gather(*tasks), timeout=1.0)
        assert order == ["first", "second"]

    @pytest.mark.asyncio
    async def test_different_keys_do_not_block(self):
        locks = KeyedLock()

        async with locks.hold("a"):
            await asyncio.wait_for(_acquire_and_release(locks, "b"), timeout=1.0)

    @pytest.mark.asyncio
    async def test_locks_dropped_after_use(self):
        locks = KeyedLock()

        async with locks.hold("a"):
            assert len(locks) == 1

        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_lock_released_on_error(self):
        locks = KeyedLock()

        with pytest.raises(RuntimeError):
            async with locks.hold("a"):
                raise RuntimeError("boom")

        assert len(locks) == 0


async def _acquire_and_release(locks: KeyedLock, key: str) -> None:
    async with locks.hold(key):
        pass
