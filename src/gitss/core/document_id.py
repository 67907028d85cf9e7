"""
Document identity for indexed files.

Keys have the form ``organization:project:repository:blob:path``. Each
component is percent-escaped for ``%`` and ``:`` so that paths containing
the delimiter cannot collide; components without those characters appear
verbatim.
"""

from gitss.core.errors import MalformedRecordError
from gitss.core.metadata import Metadata

KEY_DELIMITER = ":"
_KEY_PARTS = 5


def escape_component(value: str) -> str:
    """Escape ``%`` and ``:`` in a key component."""
    return value.replace("%", "%25").replace(":", "%3A")


def unescape_component(value: str) -> str:
    """Inverse of escape_component."""
    return value.replace("%3A", ":").replace("%25", "%")


def derive_key(record: Metadata) -> str:
    """
    Derive the document key of a record.

    A pure function of (organization, project, repository, blob, path).

    Args:
        record: Any Metadata or FileIndex

    Returns:
        The colon-delimited document key
    """
    return document_key(
        record.organization, record.project, record.repository, record.blob, record.path
    )


def document_key(organization: str, project: str, repository: str, blob: str, path: str) -> str:
    """Build a document key from its five identity components."""
    return KEY_DELIMITER.join(
        escape_component(part) for part in (organization, project, repository, blob, path)
    )


def parse_key(key: str) -> tuple[str, str, str, str, str]:
    """
    Split a document key into (organization, project, repository, blob, path).

    Raises:
        MalformedRecordError: If the key does not have five components
    """
    parts = key.split(KEY_DELIMITER)
    if len(parts) != _KEY_PARTS:
        raise MalformedRecordError(f"Invalid document key: {key!r}")
    organization, project, repository, blob, path = (unescape_component(p) for p in parts)
    return organization, project, repository, blob, path
