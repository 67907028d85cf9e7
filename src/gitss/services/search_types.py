"""
Search result types for GITSS.

Contains the client-facing result shape: hits, the four-level ref facet
tree and the per-field term facets.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Optional

from gitss.core.filters import FilterParams
from gitss.core.metadata import Metadata, RefKind


class FacetField(str, Enum):
    """Fields that can be faceted in a search result."""

    EXT = "ext"
    ORGANIZATION = "organization"
    PROJECT = "project"
    REPOSITORY = "repository"
    BRANCHES = "branches"
    TAGS = "tags"

    @property
    def multi_valued(self) -> bool:
        return self in (FacetField.BRANCHES, FacetField.TAGS)


@dataclass
class TermFacet:
    term: str
    count: int


@dataclass
class FacetResult:
    """
    Term counts for one field.

    Attributes:
        field: Faceted field
        total: Number of term occurrences across hits
        missing: Hits without a value for the field
        other: Occurrences not covered by the reported terms
        terms: Top terms, most frequent first
    """

    field: FacetField
    total: int
    missing: int
    other: int
    terms: list[TermFacet] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "field": self.field.value,
            "total": self.total,
            "missing": self.missing,
            "other": self.other,
            "terms": [asdict(t) for t in self.terms],
        }


@dataclass
class RefFacet:
    term: str
    kind: RefKind
    count: int

    def to_dict(self) -> dict[str, Any]:
        return {"term": self.term, "kind": self.kind.value, "count": self.count}


@dataclass
class RepositoryFacet:
    term: str
    count: int
    refs: list[RefFacet] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "term": self.term,
            "count": self.count,
            "refs": [r.to_dict() for r in self.refs],
        }


@dataclass
class ProjectFacet:
    term: str
    count: int
    repositories: list[RepositoryFacet] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "term": self.term,
            "count": self.count,
            "repositories": [r.to_dict() for r in self.repositories],
        }


@dataclass
class OrganizationFacet:
    term: str
    count: int
    projects: list[ProjectFacet] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "term": self.term,
            "count": self.count,
            "projects": [p.to_dict() for p in self.projects],
        }


@dataclass
class TextPreview:
    """A preview snippet; offset is the 1-based line number."""

    offset: int
    content: str


@dataclass
class Hit:
    """One matching document with its matched keywords and previews."""

    metadata: Metadata
    keyword: list[str] = field(default_factory=list)
    preview: list[TextPreview] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            **asdict(self.metadata),
            "keyword": list(self.keyword),
            "preview": [asdict(p) for p in self.preview],
        }


@dataclass
class Pagination:
    current: int
    next: Optional[int]
    is_last_page: bool


@dataclass
class SearchResult:
    """Search response returned to clients."""

    query: str
    filter_params: FilterParams
    time: float
    size: int
    limit: int
    is_last_page: bool
    current: int
    next: Optional[int]
    hits: list[Hit] = field(default_factory=list)
    full_refs_facet: list[OrganizationFacet] = field(default_factory=list)
    facets: dict[FacetField, FacetResult] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the JSON wire shape."""
        return {
            "query": self.query,
            "filterParams": self.filter_params.to_dict(),
            "time": self.time,
            "size": self.size,
            "limit": self.limit,
            "isLastPage": self.is_last_page,
            "current": self.current,
            "next": self.next,
            "hits": [h.to_dict() for h in self.hits],
            "fullRefsFacet": [o.to_dict() for o in self.full_refs_facet],
            "facets": {f.value: r.to_dict() for f, r in self.facets.items()},
        }
