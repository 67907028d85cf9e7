"""
Indexer Service data models.

Contains dataclasses for write outcomes, batch results and pipeline runs.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from gitss.core.operations import FileIndexOperation


class WriteStatus(str, Enum):
    """What a single document operation did to the store."""

    CREATED = "created"
    MERGED = "merged"
    UNCHANGED = "unchanged"
    UPDATED = "updated"
    DELETED = "deleted"
    NO_MATCH = "no_match"


@dataclass
class RefRemovalResult:
    """Result of stripping refs from the documents of a repository."""

    matched: int = 0
    updated: int = 0
    deleted: int = 0

    @property
    def status(self) -> WriteStatus:
        if self.updated == 0 and self.deleted == 0:
            return WriteStatus.NO_MATCH if self.matched == 0 else WriteStatus.UNCHANGED
        if self.updated == 0:
            return WriteStatus.DELETED
        return WriteStatus.UPDATED


@dataclass
class OperationOutcome:
    """Outcome of one operation in a batch."""

    index: int
    operation: FileIndexOperation
    status: Optional[WriteStatus] = None
    error: Optional[Exception] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass
class BatchResult:
    """Per-operation outcomes of a batch, in submission order."""

    outcomes: list[OperationOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> list[OperationOutcome]:
        return [o for o in self.outcomes if o.succeeded]

    @property
    def failed(self) -> list[OperationOutcome]:
        return [o for o in self.outcomes if not o.succeeded]

    @property
    def ok(self) -> bool:
        return all(o.succeeded for o in self.outcomes)

    def failed_operations(self) -> list[FileIndexOperation]:
        """Operations to resubmit."""
        return [o.operation for o in self.failed]


@dataclass
class IndexingResult:
    """Result of indexing one or more refs of a repository."""

    total_files: int = 0
    created: int = 0
    merged: int = 0
    unchanged: int = 0
    pruned: int = 0
    failed_files: list[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    def add(self, other: "IndexingResult") -> None:
        self.total_files += other.total_files
        self.created += other.created
        self.merged += other.merged
        self.unchanged += other.unchanged
        self.pruned += other.pruned
        self.failed_files.extend(other.failed_files)
