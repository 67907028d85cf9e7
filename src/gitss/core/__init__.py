"""
Core Layer - Metadata model, document identity, ref lifecycle and configuration.
"""

from gitss.core.config import (
    GitssConfig,
    IndexingConfig,
    LoggingConfig,
    SearchConfig,
    ServerConfig,
    StoreConfig,
    load_config,
)
from gitss.core.document_id import derive_key, document_key, parse_key
from gitss.core.errors import (
    BackingStoreUnavailableError,
    ConflictingWriteError,
    GitssError,
    MalformedRecordError,
    NotFoundError,
)
from gitss.core.filters import FilterParams
from gitss.core.metadata import (
    NO_EXT,
    FileIndex,
    Metadata,
    RefKind,
    full_ref,
    get_ext,
    new_file_index,
)
from gitss.core.operations import (
    AddOperation,
    BatchMethod,
    DeleteOperation,
    DocumentSelector,
    FileIndexOperation,
)
from gitss.core.refs import merge_refs, remove_refs

__all__ = [
    # Config
    "GitssConfig",
    "StoreConfig",
    "IndexingConfig",
    "SearchConfig",
    "ServerConfig",
    "LoggingConfig",
    "load_config",
    # Errors
    "GitssError",
    "NotFoundError",
    "ConflictingWriteError",
    "BackingStoreUnavailableError",
    "MalformedRecordError",
    # Metadata model
    "Metadata",
    "FileIndex",
    "RefKind",
    "NO_EXT",
    "get_ext",
    "full_ref",
    "new_file_index",
    # Identity
    "derive_key",
    "document_key",
    "parse_key",
    # Ref lifecycle
    "merge_refs",
    "remove_refs",
    # Batch operations
    "AddOperation",
    "DeleteOperation",
    "DocumentSelector",
    "FileIndexOperation",
    "BatchMethod",
    # Filters
    "FilterParams",
]
