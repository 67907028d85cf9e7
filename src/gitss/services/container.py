"""
Centralized services container module for GITSS.

Provides a shared container for all services used by the CLI and HTTP
entry points.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from gitss.core.config import GitssConfig, load_config
from gitss.infrastructure import (
    DocumentStoreInterface,
    GitRepoReaderInterface,
    PygitRepoReader,
    create_document_store,
)
from gitss.services.highlight import LinePreviewGenerator
from gitss.services.indexer_service import IndexerService
from gitss.services.repository_indexer import RepositoryIndexer
from gitss.services.search_service import SearchService


@dataclass
class ServicesContainer:
    """
    Container holding all shared service instances.

    Attributes:
        config: Application configuration
        document_store: Backing store for indexed documents
        git_reader: Reader for the repositories under git_data_dir
        search_service: Faceted query path
        indexer_service: Write path for documents
        repository_indexer: Pipeline from git refs to batches
    """

    config: GitssConfig
    document_store: DocumentStoreInterface
    git_reader: GitRepoReaderInterface
    search_service: SearchService
    indexer_service: IndexerService
    repository_indexer: RepositoryIndexer


def build_services(
    config: GitssConfig,
    document_store: DocumentStoreInterface,
    git_reader: GitRepoReaderInterface,
    progress_callback: Optional[Callable[[int, str], None]] = None,
) -> ServicesContainer:
    """Wire services around an existing store and git reader."""
    search_service = SearchService(
        document_store=document_store,
        preview_generator=LinePreviewGenerator(max_previews=config.search.preview_lines),
        page_limit=config.search.page_limit,
        facet_size=config.search.facet_size,
    )
    indexer_service = IndexerService(
        document_store=document_store,
        search_service=search_service,
    )
    repository_indexer = RepositoryIndexer(
        indexer_service=indexer_service,
        git_reader=git_reader,
        batch_size=config.indexing.batch_size,
        progress_callback=progress_callback,
    )
    return ServicesContainer(
        config=config,
        document_store=document_store,
        git_reader=git_reader,
        search_service=search_service,
        indexer_service=indexer_service,
        repository_indexer=repository_indexer,
    )


def create_services(
    config_path: Optional[Path] = None,
    progress_callback: Optional[Callable[[int, str], None]] = None,
) -> ServicesContainer:
    """
    Create and initialize all services from configuration.

    Args:
        config_path: Optional path to configuration file. If None, uses
                    environment variables and defaults.
        progress_callback: Optional callback(files_done, message) for indexing.

    Returns:
        ServicesContainer with all initialized services.
    """
    config = load_config(config_path)

    document_store = create_document_store(
        host=config.store.host,
        port=config.store.port,
        collection_name=config.store.collection_name,
        api_key=config.store.api_key,
        url=config.store.url,
        timeout=config.store.timeout,
    )
    git_reader = PygitRepoReader(config.indexing.git_data_dir)

    return build_services(config, document_store, git_reader, progress_callback)
