"""
Repository indexing pipeline for GITSS.

Reads the files reachable from a ref through the git reader and submits
them to the IndexerService in batches. Re-indexing a ref also strips it
from documents that are no longer reachable from it.
"""

import asyncio
import itertools
import logging
import time
from collections.abc import Iterable, Iterator
from typing import Callable, Optional

from gitss.core.document_id import derive_key
from gitss.core.metadata import RefKind, new_file_index
from gitss.core.operations import AddOperation
from gitss.infrastructure.git_reader import GitFile, GitRepoReaderInterface
from gitss.services.indexer_service import IndexerService
from gitss.services.indexing_models import IndexingResult, RefRemovalResult, WriteStatus

logger = logging.getLogger(__name__)


def _next_chunk(files: Iterator[GitFile], size: int) -> list[GitFile]:
    return list(itertools.islice(files, size))


class RepositoryIndexer:
    """Indexes the refs of git repositories into the file index."""

    def __init__(
        self,
        indexer_service: IndexerService,
        git_reader: GitRepoReaderInterface,
        batch_size: int = 100,
        progress_callback: Optional[Callable[[int, str], None]] = None,
    ):
        """
        Initialize the repository indexer.

        Args:
            indexer_service: Service receiving the batches
            git_reader: Source of refs and files
            batch_size: Number of files per batch
            progress_callback: Optional callback(files_done, message)
        """
        self._indexer_service = indexer_service
        self._git_reader = git_reader
        self._batch_size = batch_size
        self._progress_callback = progress_callback

    def _report_progress(self, current: int, message: str) -> None:
        """Report progress if callback is set."""
        if self._progress_callback:
            self._progress_callback(current, message)
        logger.info(f"Progress: {current} - {message}")

    async def index_ref(
        self,
        organization: str,
        project: str,
        repository: str,
        kind: RefKind,
        name: str,
        prune: bool = True,
    ) -> IndexingResult:
        """
        Index every file reachable from one branch or tag.

        Args:
            organization: Organization name
            project: Project name
            repository: Repository name
            kind: Branch or tag
            name: Ref name
            prune: Strip the ref from documents it no longer reaches

        Returns:
            IndexingResult with statistics
        """
        start_time = time.time()
        result = IndexingResult()
        seen_keys: set[str] = set()
        ref_label = f"{organization}/{project}/{repository}@{kind.value}:{name}"

        files = await asyncio.to_thread(
            self._git_reader.iter_files, organization, project, repository, kind, name
        )
        while True:
            chunk = await asyncio.to_thread(_next_chunk, files, self._batch_size)
            if not chunk:
                break

            operations = [
                AddOperation(
                    new_file_index(
                        blob=f.blob,
                        organization=organization,
                        project=project,
                        repository=repository,
                        path=f.path,
                        content=f.content,
                        branches=[name] if kind == RefKind.BRANCH else [],
                        tags=[name] if kind == RefKind.TAG else [],
                        size=f.size,
                        encoding=f.encoding,
                    )
                )
                for f in chunk
            ]
            batch = await self._indexer_service.batch_file_index(operations)

            for outcome in batch.outcomes:
                file_index = outcome.operation.file_index
                # Failed files keep the ref too; pruning them would drop a live ref
                seen_keys.add(derive_key(file_index))
                if not outcome.succeeded:
                    result.failed_files.append(file_index.path)
                    continue
                result.total_files += 1
                if outcome.status == WriteStatus.CREATED:
                    result.created += 1
                elif outcome.status == WriteStatus.MERGED:
                    result.merged += 1
                else:
                    result.unchanged += 1

            self._report_progress(result.total_files, f"Indexed {ref_label}")

        if prune:
            removal = await self._indexer_service.prune_ref(
                organization, project, repository, kind, name, keep_keys=seen_keys
            )
            result.pruned = removal.updated + removal.deleted

        result.duration_seconds = time.time() - start_time
        logger.info(
            f"Indexing of {ref_label} completed",
            extra={
                "total_files": result.total_files,
                "created": result.created,
                "merged": result.merged,
                "pruned": result.pruned,
                "failed_files": len(result.failed_files),
                "duration_seconds": result.duration_seconds,
            },
        )
        return result

    async def index_repository(
        self, organization: str, project: str, repository: str
    ) -> IndexingResult:
        """Index every branch and tag of a repository."""
        start_time = time.time()
        result = IndexingResult()

        refs = await asyncio.to_thread(self._git_reader.list_refs, organization, project, repository)
        for kind in (RefKind.BRANCH, RefKind.TAG):
            for name in refs.get(kind, []):
                result.add(await self.index_ref(organization, project, repository, kind, name))

        result.duration_seconds = time.time() - start_time
        return result

    async def remove_refs(
        self,
        organization: str,
        project: str,
        repository: str,
        branches: Iterable[str] = (),
        tags: Iterable[str] = (),
    ) -> RefRemovalResult:
        """Reflect deleted branches and tags in the index."""
        return await self._indexer_service.delete_index_by_refs(
            organization, project, repository, branches, tags
        )
