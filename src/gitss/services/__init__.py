"""
Service Layer - IndexerService, SearchService, RepositoryIndexer and ServicesContainer.
"""

from gitss.services.base_filters import base_filters
from gitss.services.container import ServicesContainer, build_services, create_services
from gitss.services.indexer_service import IndexerService
from gitss.services.indexing_models import (
    BatchResult,
    IndexingResult,
    OperationOutcome,
    RefRemovalResult,
    WriteStatus,
)
from gitss.services.repository_indexer import RepositoryIndexer
from gitss.services.search_service import SearchService
from gitss.services.search_types import (
    FacetField,
    FacetResult,
    Hit,
    OrganizationFacet,
    SearchResult,
)

__all__ = [
    # Container and factory
    "ServicesContainer",
    "build_services",
    "create_services",
    # Filters
    "base_filters",
    # Services
    "IndexerService",
    "SearchService",
    "RepositoryIndexer",
    # Results
    "BatchResult",
    "OperationOutcome",
    "RefRemovalResult",
    "IndexingResult",
    "WriteStatus",
    "SearchResult",
    "Hit",
    "OrganizationFacet",
    "FacetField",
    "FacetResult",
]
