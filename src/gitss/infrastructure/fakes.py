"""
Fake implementations for testing.

Provides in-memory implementations of infrastructure interfaces
for use in unit and integration tests without external dependencies.
"""

from __future__ import annotations

import copy
from collections.abc import Iterator

from gitss.core.errors import NotFoundError
from gitss.core.filters import FilterParams
from gitss.core.metadata import FileIndex, RefKind
from gitss.core.operations import DocumentSelector
from gitss.infrastructure.document_store_base import (
    DocumentStoreInterface,
    ScoredDocument,
    matches_filters,
    matches_selector,
    query_terms,
    score_text,
)
from gitss.infrastructure.git_reader import GitFile, GitRepoReaderInterface


class InMemoryDocumentStore(DocumentStoreInterface):
    """
    In-memory document store for testing.

    Implements DocumentStoreInterface without requiring Qdrant.
    Documents are copied on the way in and out so callers never share
    state with the store.
    """

    def __init__(self) -> None:
        self._documents: dict[str, FileIndex] = {}

    async def get(self, key: str) -> FileIndex | None:
        document = self._documents.get(key)
        if document is None:
            return None
        result = copy.deepcopy(document)
        result.content = None
        return result

    async def upsert(self, key: str, document: FileIndex) -> None:
        self._documents[key] = copy.deepcopy(document)

    async def update_refs(self, key: str, document: FileIndex) -> None:
        stored = self._documents.get(key)
        if stored is None:
            # Qdrant's set_payload is a no-op for a missing point
            return
        stored.branches = list(document.branches)
        stored.tags = list(document.tags)
        stored.full_refs = list(document.full_refs)

    async def delete(self, key: str) -> None:
        self._documents.pop(key, None)

    async def find(self, selector: DocumentSelector) -> list[tuple[str, FileIndex]]:
        results = []
        for key, document in self._documents.items():
            if matches_selector(document, selector):
                found = copy.deepcopy(document)
                found.content = None
                results.append((key, found))
        return results

    async def count(self) -> int:
        return len(self._documents)

    async def query(self, query: str, filters: FilterParams) -> list[ScoredDocument]:
        """
        Match documents by term occurrence in their content.

        Results are sorted by score descending, then key.
        """
        terms = query_terms(query)
        results = []
        for key, document in self._documents.items():
            if not matches_filters(document, filters):
                continue
            if terms:
                score = score_text(document.content or "", terms)
                if score == 0.0:
                    continue
            else:
                score = 1.0
            found = copy.deepcopy(document)
            found.content = None
            results.append(ScoredDocument(key=key, document=found, score=score))

        results.sort(key=lambda r: (-r.score, r.key))
        return results

    async def get_contents(self, keys: list[str]) -> dict[str, str]:
        return {
            key: self._documents[key].content or ""
            for key in keys
            if key in self._documents
        }

    def keys(self) -> list[str]:
        """All stored document keys."""
        return list(self._documents)

    def clear(self) -> None:
        """Clear all stored data."""
        self._documents.clear()


class InMemoryGitRepoReader(GitRepoReaderInterface):
    """
    Git reader serving files registered by tests.

    Repositories are keyed by (organization, project, repository) and map
    (kind, ref name) to the files reachable from that ref.
    """

    def __init__(self) -> None:
        self._repos: dict[tuple[str, str, str], dict[tuple[RefKind, str], list[GitFile]]] = {}

    def add_ref(
        self,
        organization: str,
        project: str,
        repository: str,
        kind: RefKind,
        name: str,
        files: list[GitFile],
    ) -> None:
        refs = self._repos.setdefault((organization, project, repository), {})
        refs[(kind, name)] = list(files)

    def remove_ref(self, organization: str, project: str, repository: str, kind: RefKind, name: str) -> None:
        self._repos.get((organization, project, repository), {}).pop((kind, name), None)

    def list_organizations(self) -> list[str]:
        return sorted({org for org, _, _ in self._repos})

    def list_projects(self, organization: str) -> list[str]:
        projects = sorted({project for org, project, _ in self._repos if org == organization})
        if not projects:
            raise NotFoundError(f"Unknown organization: {organization}")
        return projects

    def list_repositories(self, organization: str, project: str) -> list[str]:
        repositories = sorted(
            repo for org, proj, repo in self._repos if (org, proj) == (organization, project)
        )
        if not repositories:
            raise NotFoundError(f"Unknown project: {organization}/{project}")
        return repositories

    def list_refs(self, organization: str, project: str, repository: str) -> dict[RefKind, list[str]]:
        if (organization, project, repository) not in self._repos:
            raise NotFoundError(f"Unknown repository: {organization}/{project}/{repository}")
        refs = self._repos[(organization, project, repository)]
        return {
            RefKind.BRANCH: sorted(name for kind, name in refs if kind == RefKind.BRANCH),
            RefKind.TAG: sorted(name for kind, name in refs if kind == RefKind.TAG),
        }

    def iter_files(
        self,
        organization: str,
        project: str,
        repository: str,
        kind: RefKind,
        name: str,
    ) -> Iterator[GitFile]:
        refs = self._repos.get((organization, project, repository), {})
        yield from refs.get((kind, name), [])
