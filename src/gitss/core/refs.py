"""
Ref lifecycle for indexed documents.

Reconciles a document's current branches and tags against a proposed delta.
Both functions mutate the record in place and never touch the store; callers
own the read-modify-write around them.
"""

from gitss.core.metadata import FileIndex, RefKind, full_ref, unique


def _refs_to_add(proposed: list[str], current: list[str]) -> list[str]:
    existing = set(current)
    return [ref for ref in unique(proposed) if ref not in existing]


def _surviving_refs(current: list[str], to_remove: list[str]) -> list[str]:
    removed = set(to_remove or ())
    return [ref for ref in current if ref not in removed]


def merge_refs(record: FileIndex, branches: list[str], tags: list[str]) -> bool:
    """
    Merge proposed branches and tags into a record.

    Each ref class is handled independently. Added refs are appended to the
    class collection and their full-ref strings appended to full_refs.

    Args:
        record: Record to update in place
        branches: Proposed branch names
        tags: Proposed tag names

    Returns:
        True if neither class changed and no write is needed
    """
    record.validate()
    unchanged = True

    for kind, proposed in ((RefKind.BRANCH, branches), (RefKind.TAG, tags)):
        current = record.refs_of(kind)
        to_add = _refs_to_add(proposed, current)
        if not to_add:
            continue

        unchanged = False
        current.extend(to_add)
        record.full_refs.extend(
            full_ref(record.organization, record.project, record.repository, kind, ref)
            for ref in to_add
        )

    return unchanged


def remove_refs(record: FileIndex, branches: list[str], tags: list[str]) -> bool:
    """
    Remove branches and tags from a record.

    Branches are removed only via the branch list and tags only via the tag
    list. When nothing survives the record is left as is and the caller must
    delete the document.

    Args:
        record: Record to update in place
        branches: Branch names to remove
        tags: Tag names to remove

    Returns:
        True if the record has no refs left and must be deleted
    """
    record.validate()
    new_branches = _surviving_refs(record.branches, branches)
    new_tags = _surviving_refs(record.tags, tags)

    if not new_branches and not new_tags:
        return True

    record.branches = new_branches
    record.tags = new_tags
    record.full_refs = record.derive_full_refs()
    return False
