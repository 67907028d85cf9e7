"""Exception types for GITSS."""


class GitssError(Exception):
    """Base exception for indexing and search errors."""

    pass


class NotFoundError(GitssError):
    """Document key is absent on an operation that requires it to exist."""

    pass


class ConflictingWriteError(GitssError):
    """A write would clobber a document that already exists."""

    pass


class BackingStoreUnavailableError(GitssError):
    """Transport or engine failure in the backing document store."""

    pass


class MalformedRecordError(GitssError, ValueError):
    """A record is missing required metadata fields."""

    pass
