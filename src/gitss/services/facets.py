"""
Facet aggregation for search results.

Every count is taken from the hit set at the scope of its facet, never by
summing child facets: one hit reachable from several branches counts once
for its repository but once per branch.
"""

from collections import Counter
from collections.abc import Iterable, Sequence

from gitss.core.metadata import Metadata, RefKind
from gitss.services.search_types import (
    FacetField,
    FacetResult,
    OrganizationFacet,
    Pagination,
    ProjectFacet,
    RefFacet,
    RepositoryFacet,
    TermFacet,
)


def _group_by(hits: Iterable[Metadata], attr: str) -> list[tuple[str, list[Metadata]]]:
    """Group hits by an attribute, largest group first, then by term."""
    groups: dict[str, list[Metadata]] = {}
    for hit in hits:
        groups.setdefault(getattr(hit, attr), []).append(hit)
    return sorted(groups.items(), key=lambda item: (-len(item[1]), item[0]))


def _ref_facets(hits: Sequence[Metadata]) -> list[RefFacet]:
    counts: Counter[tuple[RefKind, str]] = Counter()
    for hit in hits:
        for kind in (RefKind.BRANCH, RefKind.TAG):
            for name in set(hit.refs_of(kind)):
                counts[(kind, name)] += 1
    ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0][1], item[0][0].value))
    return [RefFacet(term=name, kind=kind, count=count) for (kind, name), count in ordered]


def build_ref_facets(hits: Sequence[Metadata]) -> list[OrganizationFacet]:
    """
    Build the organization > project > repository > ref facet tree.

    Args:
        hits: Metadata of every matching document

    Returns:
        Organization facets, most hits first
    """
    organizations = []
    for org, org_hits in _group_by(hits, "organization"):
        projects = []
        for project, project_hits in _group_by(org_hits, "project"):
            repositories = [
                RepositoryFacet(term=repo, count=len(repo_hits), refs=_ref_facets(repo_hits))
                for repo, repo_hits in _group_by(project_hits, "repository")
            ]
            projects.append(
                ProjectFacet(term=project, count=len(project_hits), repositories=repositories)
            )
        organizations.append(OrganizationFacet(term=org, count=len(org_hits), projects=projects))
    return organizations


def _field_values(hit: Metadata, facet_field: FacetField) -> list[str]:
    value = getattr(hit, facet_field.value)
    if facet_field.multi_valued:
        return list(dict.fromkeys(value or []))
    return [value] if value else []


def build_term_facet(hits: Sequence[Metadata], facet_field: FacetField, size: int) -> FacetResult:
    """
    Count the top terms of one field.

    Args:
        hits: Metadata of every matching document
        facet_field: Field to facet
        size: Maximum number of terms to report

    Returns:
        FacetResult with total, missing and other counts
    """
    counts: Counter[str] = Counter()
    missing = 0
    for hit in hits:
        values = _field_values(hit, facet_field)
        if not values:
            missing += 1
        counts.update(values)

    total = sum(counts.values())
    top = sorted(counts.items(), key=lambda item: (-item[1], item[0]))[:size]
    return FacetResult(
        field=facet_field,
        total=total,
        missing=missing,
        other=total - sum(count for _, count in top),
        terms=[TermFacet(term=term, count=count) for term, count in top],
    )


def build_facets(
    hits: Sequence[Metadata], facet_fields: Iterable[FacetField], size: int
) -> dict[FacetField, FacetResult]:
    return {f: build_term_facet(hits, f, size) for f in facet_fields}


def paginate(size: int, limit: int, page: int) -> Pagination:
    """
    Compute 1-based page numbers.

    Pages below 1 are clamped to 1. next is None on the last page.
    """
    if limit <= 0:
        raise ValueError(f"Page limit must be positive, got {limit}")
    current = max(page, 1)
    is_last_page = current * limit >= size
    return Pagination(
        current=current,
        next=None if is_last_page else current + 1,
        is_last_page=is_last_page,
    )
