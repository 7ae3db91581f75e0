"""
Change enumeration shared by provenance aggregation and push validation.

A root commit is diffed against the empty tree, any other commit against
each of its parents independently. A merge commit can therefore report the
same path once per parent it differs from.
"""

from typing import Iterator, Optional, Tuple

from ..models import CommitRef, PathChange
from .repository import RepositoryPort


def iter_commit_changes(
    repository: RepositoryPort, commit: CommitRef
) -> Iterator[Tuple[Optional[str], PathChange]]:
    """Yield ``(parent_oid, change)`` for every path a commit touches.

    ``parent_oid`` is None for root commits.
    """
    if commit.is_root:
        for change in repository.diff(None, commit.tree):
            yield None, change
        return

    for parent_oid in commit.parents:
        parent = repository.commit(parent_oid)
        for change in repository.diff(parent.tree, commit.tree):
            yield parent_oid, change
