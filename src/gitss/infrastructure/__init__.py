"""
Infrastructure Layer - Document store and git reader implementations.
"""

from gitss.infrastructure.document_store_base import (
    DocumentStoreInterface,
    ScoredDocument,
)
from gitss.infrastructure.document_store_qdrant import QdrantDocumentStore
from gitss.infrastructure.fakes import InMemoryDocumentStore, InMemoryGitRepoReader
from gitss.infrastructure.git_reader import (
    GitFile,
    GitRepoReaderInterface,
    PygitRepoReader,
)

__all__ = [
    # Document store
    "DocumentStoreInterface",
    "QdrantDocumentStore",
    "ScoredDocument",
    "create_document_store",
    # Git reader
    "GitFile",
    "GitRepoReaderInterface",
    "PygitRepoReader",
    # Fakes for testing
    "InMemoryDocumentStore",
    "InMemoryGitRepoReader",
]


def create_document_store(
    host: str = "localhost",
    port: int = 6333,
    collection_name: str = "gitss_files",
    api_key: str | None = None,
    url: str | None = None,
    timeout: int = 30,
) -> DocumentStoreInterface:
    """
    Factory function to create a document store.

    Args:
        host: Qdrant server host
        port: Qdrant server port
        collection_name: Name of the collection
        api_key: Optional API key for authentication
        url: Optional Qdrant URL (takes precedence over host/port)
        timeout: Request timeout in seconds

    Returns:
        Configured DocumentStoreInterface instance
    """
    return QdrantDocumentStore(
        host=host,
        port=port,
        collection_name=collection_name,
        api_key=api_key,
        url=url,
        timeout=timeout,
    )
