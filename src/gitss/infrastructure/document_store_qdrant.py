"""
Qdrant-based document store implementation.

Documents are stored as payload-only points: the collection has no vectors,
keyword indexes on the structural fields and a full-text index on content.
"""

import logging
import uuid
from collections.abc import AsyncIterator
from typing import List, Optional

from qdrant_client import AsyncQdrantClient, models

from gitss.core.errors import BackingStoreUnavailableError
from gitss.core.filters import FilterParams
from gitss.core.metadata import FileIndex
from gitss.core.operations import DocumentSelector

from .document_store_base import (
    DocumentStoreInterface,
    ScoredDocument,
    query_terms,
    score_text,
)

logger = logging.getLogger(__name__)

# Namespace for deriving Qdrant point ids from document keys
_POINT_NAMESPACE = uuid.UUID("6f1c8a52-3d5e-4c1b-9a57-0e2f4b8d7c31")

_KEYWORD_FIELDS = ("doc_id", "organization", "project", "repository", "branches", "tags", "ext", "path")

_SCROLL_PAGE = 1000

_WITHOUT_CONTENT = models.PayloadSelectorExclude(exclude=["content"])


def point_id(key: str) -> str:
    """Deterministic Qdrant point id for a document key."""
    return str(uuid.uuid5(_POINT_NAMESPACE, key))


def _match_any(key: str, values: List[str]) -> models.FieldCondition:
    return models.FieldCondition(key=key, match=models.MatchAny(any=list(values)))


def _match_value(key: str, value: str) -> models.FieldCondition:
    return models.FieldCondition(key=key, match=models.MatchValue(value=value))


class QdrantDocumentStore(DocumentStoreInterface):
    """
    Qdrant-based document store implementation.

    Relevance is computed client-side from term occurrences; Qdrant narrows
    the candidate set with its full-text and keyword indexes.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6333,
        collection_name: str = "gitss_files",
        api_key: Optional[str] = None,
        url: Optional[str] = None,
        timeout: int = 30,
    ):
        self._host = host
        self._port = port
        self._collection_name = collection_name
        self._api_key = api_key
        self._url = url
        self._timeout = timeout
        self._client: Optional[AsyncQdrantClient] = None
        self._initialized = False

    async def _get_client(self) -> AsyncQdrantClient:
        """Get or create the Qdrant client."""
        if self._client is None:
            if self._url:
                self._client = AsyncQdrantClient(
                    url=self._url, api_key=self._api_key, timeout=self._timeout
                )
            else:
                self._client = AsyncQdrantClient(
                    host=self._host,
                    port=self._port,
                    api_key=self._api_key,
                    timeout=self._timeout,
                )
        return self._client

    def get_collection_name(self) -> str:
        """Get the current collection name."""
        return self._collection_name

    async def initialize(self) -> None:
        """Create the collection and its payload indexes if missing."""
        if self._initialized:
            return

        client = await self._get_client()

        try:
            if not await client.collection_exists(self._collection_name):
                await client.create_collection(
                    collection_name=self._collection_name,
                    vectors_config={},
                )
                logger.info(f"Created collection: {self._collection_name}")

                for field_name in _KEYWORD_FIELDS:
                    await client.create_payload_index(
                        collection_name=self._collection_name,
                        field_name=field_name,
                        field_schema=models.PayloadSchemaType.KEYWORD,
                    )
                await client.create_payload_index(
                    collection_name=self._collection_name,
                    field_name="content",
                    field_schema=models.TextIndexParams(
                        type=models.TextIndexType.TEXT,
                        tokenizer=models.TokenizerType.WORD,
                        lowercase=True,
                    ),
                )
                logger.info("Created payload indexes")

            self._initialized = True

        except Exception as e:
            raise BackingStoreUnavailableError(f"Failed to initialize collection: {e}") from e

    async def get(self, key: str) -> Optional[FileIndex]:
        await self.initialize()
        client = await self._get_client()

        try:
            records = await client.retrieve(
                collection_name=self._collection_name,
                ids=[point_id(key)],
                with_payload=_WITHOUT_CONTENT,
            )
        except Exception as e:
            raise BackingStoreUnavailableError(f"Failed to get document '{key}': {e}") from e

        if not records:
            return None
        return FileIndex.from_payload(records[0].payload or {})

    async def upsert(self, key: str, document: FileIndex) -> None:
        await self.initialize()
        client = await self._get_client()

        payload = {**document.to_payload(), "doc_id": key}
        try:
            await client.upsert(
                collection_name=self._collection_name,
                points=[models.PointStruct(id=point_id(key), vector={}, payload=payload)],
            )
        except Exception as e:
            raise BackingStoreUnavailableError(f"Failed to upsert document '{key}': {e}") from e

    async def update_refs(self, key: str, document: FileIndex) -> None:
        await self.initialize()
        client = await self._get_client()

        try:
            await client.set_payload(
                collection_name=self._collection_name,
                payload={
                    "branches": list(document.branches),
                    "tags": list(document.tags),
                    "fullRefs": list(document.full_refs),
                },
                points=[point_id(key)],
            )
        except Exception as e:
            raise BackingStoreUnavailableError(
                f"Failed to update refs of document '{key}': {e}"
            ) from e

    async def delete(self, key: str) -> None:
        await self.initialize()
        client = await self._get_client()

        try:
            await client.delete(
                collection_name=self._collection_name,
                points_selector=models.PointIdsList(points=[point_id(key)]),
            )
        except Exception as e:
            raise BackingStoreUnavailableError(f"Failed to delete document '{key}': {e}") from e

    async def find(self, selector: DocumentSelector) -> List[tuple[str, FileIndex]]:
        if not selector.branches and not selector.tags:
            return []

        must = [
            _match_value("organization", selector.organization),
            _match_value("project", selector.project),
            _match_value("repository", selector.repository),
        ]
        if selector.path is not None:
            must.append(_match_value("path", selector.path))

        should = []
        if selector.branches:
            should.append(_match_any("branches", list(selector.branches)))
        if selector.tags:
            should.append(_match_any("tags", list(selector.tags)))

        records = await self._scroll_all(
            models.Filter(must=must, should=should),
            with_payload=_WITHOUT_CONTENT,
        )
        return [
            (record.payload["doc_id"], FileIndex.from_payload(record.payload))
            for record in records
            if record.payload
        ]

    async def count(self) -> int:
        await self.initialize()
        client = await self._get_client()

        try:
            result = await client.count(collection_name=self._collection_name, exact=True)
            return result.count
        except Exception as e:
            raise BackingStoreUnavailableError(f"Failed to count documents: {e}") from e

    async def query(self, query: str, filters: FilterParams) -> List[ScoredDocument]:
        terms = query_terms(query)

        must = [
            models.FieldCondition(key="content", match=models.MatchText(text=term))
            for term in terms
        ]
        for key, values in (
            ("ext", filters.exts),
            ("organization", filters.organizations),
            ("project", filters.projects),
            ("repository", filters.repositories),
            ("branches", filters.branches),
            ("tags", filters.tags),
        ):
            if values:
                must.append(_match_any(key, values))

        scroll_filter = models.Filter(must=must) if must else None
        # Content is only loaded when terms need scoring, one page at a time
        with_payload = True if terms else _WITHOUT_CONTENT

        results = []
        async for batch in self._scroll_pages(scroll_filter, with_payload):
            for record in batch:
                payload = record.payload or {}
                document = FileIndex.from_payload(payload)
                score = score_text(document.content or "", terms) if terms else 1.0
                document.content = None
                if score == 0.0:
                    continue
                results.append(
                    ScoredDocument(key=payload.get("doc_id", ""), document=document, score=score)
                )

        results.sort(key=lambda r: (-r.score, r.key))
        return results

    async def get_contents(self, keys: List[str]) -> dict[str, str]:
        if not keys:
            return {}
        await self.initialize()
        client = await self._get_client()

        try:
            records = await client.retrieve(
                collection_name=self._collection_name,
                ids=[point_id(key) for key in keys],
                with_payload=models.PayloadSelectorInclude(include=["doc_id", "content"]),
            )
        except Exception as e:
            raise BackingStoreUnavailableError(f"Failed to fetch document contents: {e}") from e

        return {
            record.payload["doc_id"]: record.payload.get("content") or ""
            for record in records
            if record.payload and "doc_id" in record.payload
        }

    async def _scroll_pages(
        self, scroll_filter: Optional[models.Filter], with_payload
    ) -> AsyncIterator[list]:
        """Yield every point matching a filter, one scroll page at a time."""
        await self.initialize()
        client = await self._get_client()

        offset = None
        while True:
            try:
                batch, offset = await client.scroll(
                    collection_name=self._collection_name,
                    scroll_filter=scroll_filter,
                    limit=_SCROLL_PAGE,
                    offset=offset,
                    with_payload=with_payload,
                    with_vectors=False,
                )
            except Exception as e:
                raise BackingStoreUnavailableError(f"Failed to scroll documents: {e}") from e
            yield batch
            if offset is None:
                break

    async def _scroll_all(self, scroll_filter: Optional[models.Filter], with_payload) -> list:
        """Collect every point matching a filter."""
        records = []
        async for batch in self._scroll_pages(scroll_filter, with_payload):
            records.extend(batch)
        return records

    async def close(self) -> None:
        """Close the client connection."""
        if self._client:
            await self._client.close()
            self._client = None
            self._initialized = False
