"""
Metadata model for indexed file versions.

A FileIndex is one (organization, project, repository, blob, path) entity
plus the branches and tags it is reachable from. The fullRefs list is always
derived from branches and tags.
"""

from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import Any, Optional

from gitss.core.errors import MalformedRecordError

NO_EXT = "/noext/"

_REQUIRED_FIELDS = ("blob", "organization", "project", "repository", "path")


class RefKind(str, Enum):
    """Class of a git ref. Part of a ref's identity."""

    BRANCH = "branch"
    TAG = "tag"


def get_ext(path: str) -> str:
    """
    Return the extension of the final path element.

    The extension starts at the last dot of the final element, so
    ``.gitignore`` is its own extension. Paths without a dot map to NO_EXT.
    """
    base = path.rsplit("/", 1)[-1]
    idx = base.rfind(".")
    if idx < 0:
        return NO_EXT
    return base[idx:]


def full_ref(organization: str, project: str, repository: str, kind: RefKind, name: str) -> str:
    """Build the fully qualified ref string ``org:project/repo:kind:name``."""
    return f"{organization}:{project}/{repository}:{RefKind(kind).value}:{name}"


def unique(names) -> list[str]:
    """De-duplicate names, keeping first occurrence order."""
    seen: set[str] = set()
    result = []
    for name in names or ():
        if name not in seen:
            seen.add(name)
            result.append(name)
    return result


@dataclass
class Metadata:
    """One indexed version of one file."""

    blob: str
    organization: str
    project: str
    repository: str
    path: str
    branches: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    ext: str = ""
    size: int = 0
    encoding: str = ""

    def validate(self) -> None:
        """Raise MalformedRecordError if an identity field is empty."""
        missing = [name for name in _REQUIRED_FIELDS if not getattr(self, name)]
        if missing:
            raise MalformedRecordError(f"Record is missing required fields: {', '.join(missing)}")

    def derive_full_refs(self) -> list[str]:
        """Full-ref strings for every branch and tag, branches first."""
        refs = [
            full_ref(self.organization, self.project, self.repository, RefKind.BRANCH, b)
            for b in self.branches
        ]
        refs.extend(
            full_ref(self.organization, self.project, self.repository, RefKind.TAG, t)
            for t in self.tags
        )
        return refs

    def refs_of(self, kind: RefKind) -> list[str]:
        return self.branches if kind == RefKind.BRANCH else self.tags


@dataclass
class FileIndex(Metadata):
    """
    A Metadata record plus derived full refs and file content.

    Content is only carried on write paths; records read back for
    facets or ref maintenance leave it as None.
    """

    full_refs: list[str] = field(default_factory=list)
    content: Optional[str] = None

    def fill(self) -> "FileIndex":
        """Derive ext and full_refs from path and ref sets."""
        self.branches = unique(self.branches)
        self.tags = unique(self.tags)
        self.ext = get_ext(self.path)
        self.full_refs = self.derive_full_refs()
        return self

    def metadata(self) -> Metadata:
        """Copy of the plain metadata, without full refs or content."""
        values = {f.name: getattr(self, f.name) for f in fields(Metadata)}
        values["branches"] = list(self.branches)
        values["tags"] = list(self.tags)
        return Metadata(**values)

    def to_payload(self, include_content: bool = True) -> dict[str, Any]:
        """Serialize to the stored document shape."""
        payload = asdict(self.metadata())
        payload["fullRefs"] = list(self.full_refs)
        if include_content and self.content is not None:
            payload["content"] = self.content
        return payload

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "FileIndex":
        """Build a FileIndex from a stored document payload."""
        return cls(
            blob=payload.get("blob", ""),
            organization=payload.get("organization", ""),
            project=payload.get("project", ""),
            repository=payload.get("repository", ""),
            path=payload.get("path", ""),
            branches=list(payload.get("branches") or []),
            tags=list(payload.get("tags") or []),
            ext=payload.get("ext", ""),
            size=payload.get("size", 0),
            encoding=payload.get("encoding", ""),
            full_refs=list(payload.get("fullRefs") or []),
            content=payload.get("content"),
        )


def new_file_index(
    blob: str,
    organization: str,
    project: str,
    repository: str,
    path: str,
    content: Optional[str] = None,
    branches: Optional[list[str]] = None,
    tags: Optional[list[str]] = None,
    size: int = 0,
    encoding: str = "",
) -> FileIndex:
    """Build a filled FileIndex for one sighting of a file."""
    file_index = FileIndex(
        blob=blob,
        organization=organization,
        project=project,
        repository=repository,
        path=path,
        branches=list(branches or []),
        tags=list(tags or []),
        size=size,
        encoding=encoding,
        content=content,
    )
    return file_index.fill()
