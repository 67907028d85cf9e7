"""
Structural search filters and their query-parameter encoding.

On the wire each filter is a repeatable short key: x=extensions,
o=organizations, p=projects, r=repositories, b=branches, t=tags.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, fields
from typing import Any

WIRE_KEYS = {
    "exts": "x",
    "organizations": "o",
    "projects": "p",
    "repositories": "r",
    "branches": "b",
    "tags": "t",
}


@dataclass
class FilterParams:
    """Filters applied to a search query. Empty lists mean no restriction."""

    exts: list[str] = field(default_factory=list)
    organizations: list[str] = field(default_factory=list)
    projects: list[str] = field(default_factory=list)
    repositories: list[str] = field(default_factory=list)
    branches: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not any(getattr(self, f.name) for f in fields(self))

    def to_query_params(self) -> list[tuple[str, str]]:
        """Encode as repeatable (short key, value) pairs."""
        params = []
        for name, key in WIRE_KEYS.items():
            params.extend((key, value) for value in getattr(self, name))
        return params

    def to_dict(self) -> dict[str, list[str]]:
        """Short-key mapping with empty filters omitted."""
        return {
            key: list(getattr(self, name))
            for name, key in WIRE_KEYS.items()
            if getattr(self, name)
        }

    @classmethod
    def from_query_params(cls, params: Mapping[str, Any] | Iterable[tuple[str, str]]) -> "FilterParams":
        """
        Decode short-key parameters.

        Accepts either (key, value) pairs or a mapping whose values are a
        single string or a list of strings. Unknown keys are ignored.
        """
        by_key: dict[str, list[str]] = {key: [] for key in WIRE_KEYS.values()}
        items = params.items() if isinstance(params, Mapping) else params
        for key, value in items:
            if key not in by_key or value is None:
                continue
            if isinstance(value, str):
                by_key[key].append(value)
            else:
                by_key[key].extend(value)
        return cls(**{name: by_key[key] for name, key in WIRE_KEYS.items()})
