"""
Change detection between the stored snapshot and a freshly fetched list.

Pure functions over two ordered lists; no network or storage access.
"""

from typing import List, Sequence

from circulars.models import Circular
from scheduler.models import DiffMode, DiffResult


def detect_changes(
    old_list: Sequence[Circular],
    new_list: Sequence[Circular],
    mode: DiffMode = DiffMode.LENGTH
) -> DiffResult:
    """
    Compare the snapshot against the fetch result.

    Args:
        old_list: Stored snapshot, in stored order
        new_list: Fetched circulars, in remote order
        mode: LENGTH (size-based) or BY_ID (id-keyed)

    Returns:
        DiffResult describing what to notify and how to commit
    """
    if mode == DiffMode.BY_ID:
        return _detect_by_id(old_list, new_list)
    return _detect_by_length(old_list, new_list)


def _detect_by_length(old_list: Sequence[Circular], new_list: Sequence[Circular]) -> DiffResult:
    """
    A size change is the only change signal. Content edits with an unchanged
    size (a renamed circular) are not detected.

    Growth: everything past the old length is new and gets appended.
    Shrink: the whole new list is new and replaces the snapshot.
    """
    old_size = len(old_list)
    new_size = len(new_list)

    if new_size == old_size:
        return DiffResult(changed=False)

    must_replace = new_size < old_size
    inserted_start = 0 if must_replace else old_size

    return DiffResult(
        changed=True,
        inserted_start=inserted_start,
        new_items=list(new_list[inserted_start:]),
        must_replace=must_replace
    )


def _detect_by_id(old_list: Sequence[Circular], new_list: Sequence[Circular]) -> DiffResult:
    """
    Novelty by circular id. Only ids missing from the snapshot are new; the
    snapshot is replaced when an id disappeared remotely, else extended.
    """
    old_ids = {circular.id for circular in old_list}
    new_ids = {circular.id for circular in new_list}

    if old_ids == new_ids:
        return DiffResult(changed=False)

    new_items: List[Circular] = [c for c in new_list if c.id not in old_ids]
    must_replace = not old_ids.issubset(new_ids)
    inserted_start = next(
        (index for index, c in enumerate(new_list) if c.id not in old_ids),
        len(new_list)
    )

    return DiffResult(
        changed=True,
        inserted_start=inserted_start,
        new_items=new_items,
        must_replace=must_replace
    )
