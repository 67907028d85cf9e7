"""
Document store base types and interfaces.

Contains the abstract interface of the backing text-search store together
with the matching helpers shared by store implementations.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from gitss.core.filters import FilterParams
from gitss.core.metadata import FileIndex
from gitss.core.operations import DocumentSelector


@dataclass
class ScoredDocument:
    """One query match returned by the store."""

    key: str
    document: FileIndex
    score: float


def query_terms(query: str) -> List[str]:
    """Split a free-text query into lowercase terms."""
    return [term.lower() for term in query.split() if term.strip()]


def score_text(text: str, terms: List[str]) -> float:
    """
    Relevance of text for the given terms.

    Every term must occur (case-insensitive); the score is the total number
    of occurrences. Returns 0.0 when any term is missing.
    """
    lowered = text.lower()
    score = 0
    for term in terms:
        occurrences = len(re.findall(re.escape(term), lowered))
        if occurrences == 0:
            return 0.0
        score += occurrences
    return float(score)


def matches_filters(document: FileIndex, filters: FilterParams) -> bool:
    """Check a document against structural filters."""
    if filters.exts and document.ext not in filters.exts:
        return False
    if filters.organizations and document.organization not in filters.organizations:
        return False
    if filters.projects and document.project not in filters.projects:
        return False
    if filters.repositories and document.repository not in filters.repositories:
        return False
    if filters.branches and not set(filters.branches) & set(document.branches):
        return False
    if filters.tags and not set(filters.tags) & set(document.tags):
        return False
    return True


def matches_selector(document: FileIndex, selector: DocumentSelector) -> bool:
    """Check whether a document falls under a selector and carries one of its refs."""
    if (
        document.organization != selector.organization
        or document.project != selector.project
        or document.repository != selector.repository
    ):
        return False
    if selector.path is not None and document.path != selector.path:
        return False
    return bool(
        set(selector.branches) & set(document.branches)
        or set(selector.tags) & set(document.tags)
    )


class DocumentStoreInterface(ABC):
    """Abstract interface for the backing document store."""

    @abstractmethod
    async def get(self, key: str) -> Optional[FileIndex]:
        """Get a document by key, without its content."""
        pass

    @abstractmethod
    async def upsert(self, key: str, document: FileIndex) -> None:
        """Insert or replace a whole document, content included."""
        pass

    @abstractmethod
    async def update_refs(self, key: str, document: FileIndex) -> None:
        """Overwrite only the branches, tags and full refs of a document."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a document."""
        pass

    @abstractmethod
    async def find(self, selector: DocumentSelector) -> List[tuple[str, FileIndex]]:
        """
        Find documents matching a selector.

        Args:
            selector: Repository, optional path, and the refs to look for

        Returns:
            List of (key, document) pairs whose refs intersect the selector's
        """
        pass

    @abstractmethod
    async def count(self) -> int:
        """Number of documents in the store."""
        pass

    @abstractmethod
    async def query(self, query: str, filters: FilterParams) -> List[ScoredDocument]:
        """
        Execute a free-text query.

        Args:
            query: Free-text query; an empty query matches every document
            filters: Structural filters

        Returns:
            Every matching document without its content, most relevant first
        """
        pass

    @abstractmethod
    async def get_contents(self, keys: List[str]) -> dict[str, str]:
        """
        Fetch the content of documents.

        Args:
            keys: Document keys, typically the hits of one result page

        Returns:
            Mapping of key to content; missing documents are left out
        """
        pass

    async def close(self) -> None:
        """Release any connection held by the store (optional)."""
        pass
