"""GITSS - Git source search: content-addressed indexing and faceted search of git refs."""

__version__ = "0.1.0"
