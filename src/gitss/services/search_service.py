"""
Search Service for GITSS.

Runs a free-text query against the document store and shapes the matches
into a paginated, faceted SearchResult.
"""

import logging
import time
from collections.abc import Sequence
from typing import Optional

from gitss.core.filters import FilterParams
from gitss.infrastructure.document_store_base import (
    DocumentStoreInterface,
    ScoredDocument,
    query_terms,
)
from gitss.services.facets import build_facets, build_ref_facets, paginate
from gitss.services.highlight import (
    LinePreviewGenerator,
    PreviewGeneratorInterface,
    extract_hit_words,
)
from gitss.services.search_types import FacetField, Hit, SearchResult

logger = logging.getLogger(__name__)

DEFAULT_FACET_FIELDS = (FacetField.EXT,)


class SearchService:
    """
    Service for faceted full-text search.

    Facets are computed over the whole match set, which the store returns
    without content; content is fetched for the requested page only, to
    build its hits, keywords and previews.
    """

    def __init__(
        self,
        document_store: DocumentStoreInterface,
        preview_generator: Optional[PreviewGeneratorInterface] = None,
        page_limit: int = 20,
        facet_size: int = 10,
        facet_fields: Sequence[FacetField] = DEFAULT_FACET_FIELDS,
    ):
        """
        Initialize the search service.

        Args:
            document_store: Backing store executing queries
            preview_generator: Produces preview snippets (default: LinePreviewGenerator)
            page_limit: Hits per page
            facet_size: Maximum terms reported per facet field
            facet_fields: Fields reported in the generic facet map
        """
        self._document_store = document_store
        self._preview_generator = preview_generator or LinePreviewGenerator()
        self._page_limit = page_limit
        self._facet_size = facet_size
        self._facet_fields = tuple(facet_fields)

    async def search_query(
        self,
        query: str,
        filters: Optional[FilterParams] = None,
        page: int = 1,
    ) -> SearchResult:
        """
        Search the index.

        Args:
            query: Free-text query
            filters: Structural filters
            page: 1-based page number

        Returns:
            SearchResult for the requested page

        Raises:
            BackingStoreUnavailableError: If the store query fails
        """
        start_time = time.perf_counter()
        filters = filters or FilterParams()

        matches = await self._document_store.query(query, filters)
        all_metadata = [m.document.metadata() for m in matches]

        pagination = paginate(len(matches), self._page_limit, page)
        offset = (pagination.current - 1) * self._page_limit
        terms = query_terms(query)
        page_matches = matches[offset:offset + self._page_limit]
        contents = await self._document_store.get_contents([m.key for m in page_matches])
        hits = [self._to_hit(m, terms, contents.get(m.key, "")) for m in page_matches]

        result = SearchResult(
            query=query,
            filter_params=filters,
            time=time.perf_counter() - start_time,
            size=len(matches),
            limit=self._page_limit,
            is_last_page=pagination.is_last_page,
            current=pagination.current,
            next=pagination.next,
            hits=hits,
            full_refs_facet=build_ref_facets(all_metadata),
            facets=build_facets(all_metadata, self._facet_fields, self._facet_size),
        )

        logger.info(
            "Search completed",
            extra={
                "query": query,
                "size": result.size,
                "page": result.current,
                "duration_seconds": result.time,
            },
        )
        return result

    def _to_hit(self, match: ScoredDocument, terms: list[str], content: str) -> Hit:
        return Hit(
            metadata=match.document.metadata(),
            keyword=extract_hit_words(terms, [content]),
            preview=self._preview_generator.generate(content, terms),
        )
