"""
Unit tests for SearchService.

Documents are written through IndexerService into InMemoryDocumentStore.
"""

import pytest

from gitss.core.errors import BackingStoreUnavailableError
from gitss.core.filters import FilterParams
from gitss.core.metadata import NO_EXT
from gitss.infrastructure.fakes import InMemoryDocumentStore
from gitss.services.highlight import LinePreviewGenerator, extract_hit_words
from gitss.services.indexer_service import IndexerService
from gitss.services.search_service import SearchService
from gitss.services.search_types import FacetField, TextPreview
from tests.file_index_strategies import make_file_index

GO_SOURCE = "package main\n\nfunc Main() {\n\tprintln(\"hello\")\n}\n"


class UnavailableDocumentStore(InMemoryDocumentStore):
    async def query(self, query, filters):
        raise BackingStoreUnavailableError("store offline")


class RecordingDocumentStore(InMemoryDocumentStore):
    def __init__(self):
        super().__init__()
        self.content_requests: list[list[str]] = []

    async def get_contents(self, keys):
        self.content_requests.append(list(keys))
        return await super().get_contents(keys)


async def _index(store, *records):
    indexer = IndexerService(store)
    for record in records:
        await indexer.upsert_file_index(record)


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


class TestSearchQuery:
    @pytest.mark.asyncio
    async def test_returns_hits_with_keywords_and_previews(self, store):
        await _index(store, make_file_index(path="/main.go", content=GO_SOURCE))
        service = SearchService(store)

        result = await service.search_query("main")

        assert result.size == 1
        hit = result.hits[0]
        assert hit.metadata.path == "/main.go"
        assert hit.keyword == ["main", "Main"]
        assert hit.preview == [
            TextPreview(offset=1, content="package main"),
            TextPreview(offset=3, content="func Main() {"),
        ]

    @pytest.mark.asyncio
    async def test_every_term_must_match(self, store):
        await _index(
            store,
            make_file_index(path="/a.go", content="alpha beta"),
            make_file_index(path="/b.go", content="alpha"),
        )

        result = await SearchService(store).search_query("alpha beta")

        assert [h.metadata.path for h in result.hits] == ["/a.go"]

    @pytest.mark.asyncio
    async def test_more_occurrences_rank_first(self, store):
        await _index(
            store,
            make_file_index(path="/once.go", content="token"),
            make_file_index(path="/twice.go", content="token token"),
        )

        result = await SearchService(store).search_query("token")

        assert [h.metadata.path for h in result.hits] == ["/twice.go", "/once.go"]

    @pytest.mark.asyncio
    async def test_no_match_is_empty_result(self, store):
        await _index(store, make_file_index(content="nothing here"))

        result = await SearchService(store).search_query("absent")

        assert result.size == 0
        assert result.hits == []
        assert result.full_refs_facet == []
        assert result.is_last_page is True
        assert result.next is None

    @pytest.mark.asyncio
    async def test_filters_restrict_hits(self, store):
        await _index(
            store,
            make_file_index(path="/a.go", repository="r1", branches=["main"], content="x"),
            make_file_index(path="/b.py", repository="r2", branches=["dev"], content="x"),
        )
        service = SearchService(store)

        by_ext = await service.search_query("x", FilterParams(exts=[".py"]))
        by_branch = await service.search_query("x", FilterParams(branches=["main"]))
        by_repo = await service.search_query("x", FilterParams(repositories=["r2", "r1"]))

        assert [h.metadata.path for h in by_ext.hits] == ["/b.py"]
        assert [h.metadata.path for h in by_branch.hits] == ["/a.go"]
        assert by_repo.size == 2
        assert by_ext.filter_params.exts == [".py"]

    @pytest.mark.asyncio
    async def test_pages_slice_hits_but_facets_cover_all(self, store):
        await _index(
            store,
            *(make_file_index(path=f"/f{i}.go", content="needle") for i in range(5)),
        )
        service = SearchService(store, page_limit=2)

        first = await service.search_query("needle", page=1)
        last = await service.search_query("needle", page=3)

        assert len(first.hits) == 2
        assert (first.current, first.next, first.is_last_page) == (1, 2, False)
        assert len(last.hits) == 1
        assert (last.current, last.next, last.is_last_page) == (3, None, True)
        assert first.full_refs_facet[0].count == 5
        assert first.facets[FacetField.EXT].terms[0].count == 5

    @pytest.mark.asyncio
    async def test_content_is_loaded_for_requested_page_only(self):
        store = RecordingDocumentStore()
        await _index(
            store,
            *(make_file_index(path=f"/f{i}.go", content="needle") for i in range(5)),
        )

        result = await SearchService(store, page_limit=2).search_query("needle", page=2)

        assert len(store.content_requests) == 1
        assert len(store.content_requests[0]) == 2
        assert all(hit.keyword == ["needle"] for hit in result.hits)

    @pytest.mark.asyncio
    async def test_page_beyond_results_is_empty(self, store):
        await _index(store, make_file_index(content="needle"))

        result = await SearchService(store, page_limit=2).search_query("needle", page=4)

        assert result.hits == []
        assert result.size == 1
        assert result.is_last_page is True

    @pytest.mark.asyncio
    async def test_configured_facet_fields(self, store):
        await _index(
            store,
            make_file_index(path="/a.go", branches=["main", "dev"], content="x"),
            make_file_index(path="/Makefile", branches=["main"], content="x"),
        )
        service = SearchService(store, facet_fields=[FacetField.EXT, FacetField.BRANCHES])

        result = await service.search_query("x")

        assert set(result.facets) == {FacetField.EXT, FacetField.BRANCHES}
        assert {t.term for t in result.facets[FacetField.EXT].terms} == {".go", NO_EXT}
        branches = {t.term: t.count for t in result.facets[FacetField.BRANCHES].terms}
        assert branches == {"main": 2, "dev": 1}

    @pytest.mark.asyncio
    async def test_store_failure_propagates(self):
        service = SearchService(UnavailableDocumentStore())

        with pytest.raises(BackingStoreUnavailableError):
            await service.search_query("x")

    @pytest.mark.asyncio
    async def test_wire_shape(self, store):
        await _index(store, make_file_index(content="hello world"))

        payload = (await SearchService(store).search_query("hello", FilterParams(exts=[".go"]))).to_dict()

        assert payload["query"] == "hello"
        assert payload["filterParams"] == {"x": [".go"]}
        assert payload["isLastPage"] is True
        assert payload["hits"][0]["path"] == "/src/a.go"
        assert payload["hits"][0]["keyword"] == ["hello"]
        assert payload["fullRefsFacet"][0]["projects"][0]["repositories"][0]["refs"] == [
            {"term": "main", "kind": "branch", "count": 1}
        ]
        assert payload["facets"]["ext"]["terms"] == [{"term": ".go", "count": 1}]


class TestHighlight:
    def test_extract_hit_words_preserves_case_and_order(self):
        words = extract_hit_words(["foo"], ["Foo bar foo", "FOO"])

        assert words == ["Foo", "foo", "FOO"]

    def test_extract_hit_words_escapes_terms(self):
        assert extract_hit_words(["a.b"], ["axb a.b"]) == ["a.b"]

    def test_no_terms_no_words(self):
        assert extract_hit_words([], ["anything"]) == []

    def test_preview_limit(self):
        generator = LinePreviewGenerator(max_previews=2)
        content = "hit\nmiss\nhit\nhit\n"

        previews = generator.generate(content, ["hit"])

        assert [p.offset for p in previews] == [1, 3]
