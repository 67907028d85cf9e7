"""Hypothesis strategies and builders for file index tests."""

from hypothesis import strategies as st

from gitss.core.metadata import FileIndex, new_file_index

name_strategy = st.text(
    alphabet=st.characters(whitelist_categories=("L", "N"), whitelist_characters="-_."),
    min_size=1,
    max_size=12,
)

ref_name_strategy = st.text(
    alphabet=st.characters(whitelist_categories=("L", "N"), whitelist_characters="-_./"),
    min_size=1,
    max_size=20,
)

ref_list_strategy = st.lists(ref_name_strategy, max_size=6)

blob_strategy = st.text(alphabet="0123456789abcdef", min_size=40, max_size=40)

path_strategy = st.text(
    alphabet=st.characters(whitelist_categories=("L", "N"), whitelist_characters="/._-:%"),
    min_size=1,
    max_size=60,
)


@st.composite
def file_index_strategy(draw, min_refs: int = 1) -> FileIndex:
    """Generate a filled FileIndex with at least min_refs refs."""
    branches = draw(ref_list_strategy)
    tags = draw(ref_list_strategy)
    if len(set(branches)) + len(set(tags)) < min_refs:
        branches = branches + [draw(ref_name_strategy)]
    return new_file_index(
        blob=draw(blob_strategy),
        organization=draw(name_strategy),
        project=draw(name_strategy),
        repository=draw(name_strategy),
        path=draw(path_strategy),
        content=draw(st.text(max_size=200)),
        branches=branches,
        tags=tags,
    )


def make_file_index(
    path: str = "/src/a.go",
    blob: str = "abc123",
    organization: str = "o",
    project: str = "p",
    repository: str = "r",
    branches: list[str] | None = None,
    tags: list[str] | None = None,
    content: str | None = "package main\n",
) -> FileIndex:
    """Build a FileIndex with test defaults."""
    return new_file_index(
        blob=blob,
        organization=organization,
        project=project,
        repository=repository,
        path=path,
        content=content,
        branches=["main"] if branches is None else branches,
        tags=tags or [],
    )
