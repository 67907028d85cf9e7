"""
Indexer Service for GITSS.

Owns every write to the document store. Each read-modify-write on a
document runs under that document's key lock so concurrent producers
cannot lose ref updates.
"""

import dataclasses
import logging
from collections.abc import Iterable, Sequence
from typing import Optional

from gitss.core.document_id import derive_key
from gitss.core.errors import ConflictingWriteError, MalformedRecordError, NotFoundError
from gitss.core.filters import FilterParams
from gitss.core.key_lock import KeyedLock
from gitss.core.metadata import FileIndex, RefKind
from gitss.core.operations import (
    AddOperation,
    DeleteOperation,
    DocumentSelector,
    FileIndexOperation,
)
from gitss.core.refs import merge_refs, remove_refs
from gitss.infrastructure.document_store_base import DocumentStoreInterface
from gitss.services.indexing_models import (
    BatchResult,
    OperationOutcome,
    RefRemovalResult,
    WriteStatus,
)
from gitss.services.search_service import SearchService
from gitss.services.search_types import SearchResult

logger = logging.getLogger(__name__)


def _prepare(file_index: FileIndex) -> FileIndex:
    """
    Validated, filled copy of a caller's record.

    Raises:
        MalformedRecordError: If an identity field is empty or the record
            names no branch and no tag
    """
    file_index.validate()
    prepared = dataclasses.replace(
        file_index,
        branches=list(file_index.branches),
        tags=list(file_index.tags),
    ).fill()
    if not prepared.branches and not prepared.tags:
        raise MalformedRecordError(
            f"Record {derive_key(prepared)} is not reachable from any branch or tag"
        )
    return prepared


class IndexerService:
    """
    Service maintaining the file index.

    Documents are keyed by content and path; ref sets grow through upserts
    and shrink through ref deletion until the document is removed.
    """

    def __init__(
        self,
        document_store: DocumentStoreInterface,
        search_service: Optional[SearchService] = None,
    ):
        """
        Initialize the indexer service.

        Args:
            document_store: Backing store for documents
            search_service: Query path (default: SearchService over the same store)
        """
        self._document_store = document_store
        self._search_service = search_service or SearchService(document_store)
        self._locks = KeyedLock()

    async def create_file_index(self, file_index: FileIndex) -> str:
        """
        Create a new document.

        Returns:
            The document key

        Raises:
            ConflictingWriteError: If a document with the same key exists
        """
        prepared = _prepare(file_index)
        key = derive_key(prepared)

        async with self._locks.hold(key):
            if await self._document_store.get(key) is not None:
                raise ConflictingWriteError(f"Document already exists: {key}")
            await self._document_store.upsert(key, prepared)

        logger.debug(f"Created document {key}")
        return key

    async def upsert_file_index(self, file_index: FileIndex) -> WriteStatus:
        """
        Create the document, or merge the record's refs into the existing one.

        Merging refs that are already present does not write.
        """
        prepared = _prepare(file_index)
        key = derive_key(prepared)

        async with self._locks.hold(key):
            current = await self._document_store.get(key)
            if current is None:
                await self._document_store.upsert(key, prepared)
                logger.debug(f"Created document {key}")
                return WriteStatus.CREATED

            if merge_refs(current, prepared.branches, prepared.tags):
                return WriteStatus.UNCHANGED

            await self._document_store.update_refs(key, current)

        logger.debug(f"Merged refs into document {key}")
        return WriteStatus.MERGED

    async def batch_file_index(self, operations: Sequence[FileIndexOperation]) -> BatchResult:
        """
        Apply operations in order.

        A failing operation is recorded and the batch continues; the result
        reports every operation's outcome.

        Args:
            operations: ADD and DELETE operations

        Returns:
            BatchResult with one outcome per operation
        """
        result = BatchResult()

        for index, operation in enumerate(operations):
            try:
                status = await self._apply(operation)
                result.outcomes.append(OperationOutcome(index=index, operation=operation, status=status))
            except Exception as e:
                logger.error(f"Batch operation {index} failed: {e}")
                result.outcomes.append(OperationOutcome(index=index, operation=operation, error=e))

        if not result.ok:
            logger.warning(
                "Batch completed with failures",
                extra={
                    "operation_count": len(result.outcomes),
                    "failed_count": len(result.failed),
                },
            )
        return result

    async def _apply(self, operation: FileIndexOperation) -> WriteStatus:
        if isinstance(operation, AddOperation):
            return await self.upsert_file_index(operation.file_index)
        if isinstance(operation, DeleteOperation):
            removal = await self._remove_matching(operation.selector)
            return removal.status
        raise TypeError(f"Unsupported batch operation: {operation!r}")

    async def delete_index_by_refs(
        self,
        organization: str,
        project: str,
        repository: str,
        branches: Iterable[str] = (),
        tags: Iterable[str] = (),
    ) -> RefRemovalResult:
        """
        Strip branches and tags from every document of a repository.

        Documents left without refs are deleted. Naming refs that no document
        carries is a no-op.
        """
        selector = DocumentSelector(
            organization=organization,
            project=project,
            repository=repository,
            branches=tuple(branches),
            tags=tuple(tags),
        )
        result = await self._remove_matching(selector)
        logger.info(
            f"Removed refs from {organization}/{project}/{repository}",
            extra={
                "branches": list(selector.branches),
                "tags": list(selector.tags),
                "updated": result.updated,
                "deleted": result.deleted,
            },
        )
        return result

    async def prune_ref(
        self,
        organization: str,
        project: str,
        repository: str,
        kind: RefKind,
        name: str,
        keep_keys: set[str],
    ) -> RefRemovalResult:
        """
        Strip one ref from every document of a repository not in keep_keys.

        Used after re-indexing a moved ref so files no longer reachable from
        it stop listing it.
        """
        selector = DocumentSelector(
            organization=organization,
            project=project,
            repository=repository,
            branches=(name,) if kind == RefKind.BRANCH else (),
            tags=(name,) if kind == RefKind.TAG else (),
        )
        return await self._remove_matching(selector, keep_keys=keep_keys)

    async def _remove_matching(
        self, selector: DocumentSelector, keep_keys: Optional[set[str]] = None
    ) -> RefRemovalResult:
        candidates = await self._document_store.find(selector)
        if keep_keys:
            candidates = [(key, doc) for key, doc in candidates if key not in keep_keys]

        result = RefRemovalResult(matched=len(candidates))
        if not candidates:
            logger.debug(f"No documents match {selector}")
            return result

        for key, _ in candidates:
            async with self._locks.hold(key):
                # Re-read under the lock; the document may have moved on since find()
                current = await self._document_store.get(key)
                if current is None:
                    continue
                before = (list(current.branches), list(current.tags))
                if remove_refs(current, list(selector.branches), list(selector.tags)):
                    await self._document_store.delete(key)
                    result.deleted += 1
                elif before != (current.branches, current.tags):
                    await self._document_store.update_refs(key, current)
                    result.updated += 1

        return result

    async def exists(self, file_index: FileIndex) -> bool:
        """Check whether the record's document is in the store."""
        file_index.validate()
        return await self._document_store.get(derive_key(file_index)) is not None

    async def get_file_index(self, key: str) -> FileIndex:
        """
        Get a document by key.

        Raises:
            NotFoundError: If no document has this key
        """
        document = await self._document_store.get(key)
        if document is None:
            raise NotFoundError(f"Document not found: {key}")
        return document

    async def count(self) -> int:
        """Number of indexed documents."""
        return await self._document_store.count()

    async def search_query(
        self, query: str, filters: Optional[FilterParams] = None, page: int = 1
    ) -> SearchResult:
        """Run a faceted search over the index."""
        return await self._search_service.search_query(query, filters, page)
