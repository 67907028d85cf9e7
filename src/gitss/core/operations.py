"""
Batch operations over the file index.

A batch is an ordered list of AddOperation and DeleteOperation values. ADD
carries a full record; DELETE carries a selector naming the refs to strip.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

from gitss.core.metadata import FileIndex


class BatchMethod(str, Enum):
    ADD = "add"
    DELETE = "delete"


@dataclass(frozen=True)
class DocumentSelector:
    """
    Selects documents of one repository whose refs intersect the given names.

    When path is set only documents at that path are selected.
    """

    organization: str
    project: str
    repository: str
    branches: tuple[str, ...] = field(default_factory=tuple)
    tags: tuple[str, ...] = field(default_factory=tuple)
    path: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "branches", tuple(self.branches))
        object.__setattr__(self, "tags", tuple(self.tags))


@dataclass(frozen=True)
class AddOperation:
    """Create the document or merge its refs into the existing one."""

    file_index: FileIndex

    @property
    def method(self) -> BatchMethod:
        return BatchMethod.ADD


@dataclass(frozen=True)
class DeleteOperation:
    """Strip refs from every document matching the selector."""

    selector: DocumentSelector

    @property
    def method(self) -> BatchMethod:
        return BatchMethod.DELETE


FileIndexOperation = Union[AddOperation, DeleteOperation]
