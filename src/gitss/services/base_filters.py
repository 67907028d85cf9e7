"""
Drill-down filter values for the search UI.

Each level lists the names one step below the given scope, read from the
git data directory rather than the index, so repositories and refs show up
before they are indexed.
"""

import asyncio
from typing import Optional

from gitss.core.filters import FilterParams
from gitss.core.metadata import RefKind
from gitss.infrastructure.git_reader import GitRepoReaderInterface


def _collect(
    git_reader: GitRepoReaderInterface,
    organization: Optional[str],
    project: Optional[str],
    repository: Optional[str],
) -> FilterParams:
    if organization is None:
        return FilterParams(organizations=git_reader.list_organizations())

    filters = FilterParams(organizations=[organization])
    if project is None:
        filters.projects = git_reader.list_projects(organization)
        return filters

    filters.projects = [project]
    if repository is None:
        filters.repositories = git_reader.list_repositories(organization, project)
        return filters

    filters.repositories = [repository]
    refs = git_reader.list_refs(organization, project, repository)
    filters.branches = list(refs.get(RefKind.BRANCH, []))
    filters.tags = list(refs.get(RefKind.TAG, []))
    return filters


async def base_filters(
    git_reader: GitRepoReaderInterface,
    organization: Optional[str] = None,
    project: Optional[str] = None,
    repository: Optional[str] = None,
) -> FilterParams:
    """
    List the filter values available below a scope.

    Args:
        git_reader: Source of organizations, projects, repositories and refs
        organization: Organization scope, or None for the top level
        project: Project scope within the organization
        repository: Repository scope within the project

    Returns:
        FilterParams holding the scope itself plus the names one level down

    Raises:
        NotFoundError: If a scope component does not exist
    """
    return await asyncio.to_thread(_collect, git_reader, organization, project, repository)
