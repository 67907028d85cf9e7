"""
Property-based tests for document identity.

Keys are a pure, injective function of organization, project,
repository, blob and path.
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from gitss.core.document_id import derive_key, document_key, parse_key
from gitss.core.errors import MalformedRecordError
from tests.file_index_strategies import (
    blob_strategy,
    file_index_strategy,
    make_file_index,
    name_strategy,
    path_strategy,
)

identity_strategy = st.tuples(
    name_strategy, name_strategy, name_strategy, blob_strategy, path_strategy
)


def test_key_format_is_colon_delimited():
    record = make_file_index(
        organization="o", project="p", repository="r", blob="abc123", path="/src/a.go"
    )

    assert derive_key(record) == "o:p:r:abc123:/src/a.go"


def test_key_ignores_refs_and_content():
    main = make_file_index(branches=["main"], content="one")
    tagged = make_file_index(branches=[], tags=["v1"], content="two")

    assert derive_key(main) == derive_key(tagged)


def test_path_with_delimiter_is_escaped():
    record = make_file_index(path="/docs/a:b.md")

    key = derive_key(record)

    assert key == "o:p:r:abc123:/docs/a%3Ab.md"
    assert parse_key(key)[4] == "/docs/a:b.md"


def test_escaped_paths_do_not_collide():
    # Unescaped, both would produce "o:p:r:abc123:x:y"
    colon_in_blob = document_key("o", "p", "r", "abc123:x", "y")
    colon_in_path = document_key("o", "p", "r", "abc123", "x:y")

    assert colon_in_blob != colon_in_path


@given(file_index=file_index_strategy())
@settings(max_examples=100)
def test_key_is_stable(file_index):
    """*For any* record, deriving the key twice gives the same key."""
    assert derive_key(file_index) == derive_key(file_index)


@given(identity=identity_strategy)
@settings(max_examples=200)
def test_parse_key_inverts_document_key(identity):
    assert parse_key(document_key(*identity)) == identity


@given(a=identity_strategy, b=identity_strategy)
@settings(max_examples=200)
def test_distinct_identities_have_distinct_keys(a, b):
    """*For any* two identity tuples, keys are equal only when tuples are."""
    assert (document_key(*a) == document_key(*b)) == (a == b)


@given(identity=identity_strategy, position=st.integers(min_value=0, max_value=4))
@settings(max_examples=100)
def test_changing_one_component_changes_key(identity, position):
    changed = list(identity)
    changed[position] = changed[position] + "x"

    assert document_key(*changed) != document_key(*identity)


def test_parse_key_rejects_wrong_arity():
    with pytest.raises(MalformedRecordError):
        parse_key("o:p:r:abc123")
