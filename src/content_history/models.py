"""Data model shared by the aggregator and the push validator."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Tuple


def is_zero_oid(oid: str) -> bool:
    """Return True for the all-zero OID git uses for missing refs."""
    return bool(oid) and set(oid) == {"0"}


@dataclass(frozen=True)
class RawSignature:
    """Author or committer exactly as recorded in the commit object."""

    name: str
    email: str
    when: datetime


@dataclass(frozen=True)
class Identity:
    """A signature after mailmap resolution.

    Identities compare by display name only; the email is kept for
    reference but two signatures with the same resolved name are the
    same contributor.
    """

    name: str
    email: str = field(default="", compare=False)

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class CommitRef:
    """A single commit of the DAG. Commits never change once written."""

    oid: str
    tree: str
    parents: Tuple[str, ...]
    author: RawSignature
    committer: RawSignature
    message: str = ""
    short_id: str = ""

    def __post_init__(self):
        if not self.short_id:
            object.__setattr__(self, "short_id", self.oid[:7])

    @property
    def is_root(self) -> bool:
        return not self.parents

    @property
    def is_merge(self) -> bool:
        return len(self.parents) > 1


class ChangeKind(Enum):
    """How a path differs between two trees."""

    CREATED = "created"
    DELETED = "deleted"
    MODIFIED = "modified"


@dataclass(frozen=True)
class PathChange:
    path: str
    kind: ChangeKind


@dataclass(frozen=True)
class RefUpdateRequest:
    """One ``<old> <new> <refname>`` line of pre-receive input."""

    old: str
    new: str
    refname: str

    @property
    def changes_ref_lifecycle(self) -> bool:
        """True when the update creates or deletes the ref."""
        return is_zero_oid(self.old) or is_zero_oid(self.new)


@dataclass(frozen=True)
class PathRecord:
    """Provenance facts for one repository path.

    Records are combined with :meth:`merge`, which keeps the earliest
    creation and the latest modification. Ties on the timestamp are broken
    by commit OID so that merging is commutative, associative and
    idempotent; the final table never depends on the order commits were
    visited in.
    """

    created_at: datetime
    creator: Identity
    created_commit_id: str
    # Latest of author and commit time, so never before created_at
    modified_at: datetime
    last_editor: Identity
    last_commit_id: str
    last_short_id: str
    last_message: str
    contributors: FrozenSet[Identity] = field(default_factory=frozenset)

    @classmethod
    def from_commit(
        cls, commit: CommitRef, author: Identity, committer: Identity
    ) -> "PathRecord":
        """Build the record a single commit contributes to a path it touched."""
        created_at = commit.author.when
        # Commit time alone can precede the author time on skewed clocks
        modified_at = max(commit.author.when, commit.committer.when)
        return cls(
            created_at=created_at,
            creator=author,
            created_commit_id=commit.oid,
            modified_at=modified_at,
            last_editor=author,
            last_commit_id=commit.oid,
            last_short_id=commit.short_id,
            last_message=commit.message,
            contributors=frozenset({author, committer}),
        )

    @property
    def _creation_key(self) -> Tuple[datetime, str]:
        return (self.created_at, self.created_commit_id)

    @property
    def _modification_key(self) -> Tuple[datetime, str]:
        return (self.modified_at, self.last_commit_id)

    def merge(self, other: Optional["PathRecord"]) -> "PathRecord":
        """Fold two records for the same path into one."""
        if other is None:
            return self

        first = self if self._creation_key <= other._creation_key else other
        last = self if self._modification_key >= other._modification_key else other

        return PathRecord(
            created_at=first.created_at,
            creator=first.creator,
            created_commit_id=first.created_commit_id,
            modified_at=last.modified_at,
            last_editor=last.last_editor,
            last_commit_id=last.last_commit_id,
            last_short_id=last.last_short_id,
            last_message=last.last_message,
            contributors=self.contributors | other.contributors,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for downstream renderers (JSON friendly)."""
        return {
            "created_at": self.created_at.isoformat(),
            "creator": self.creator.name,
            "modified_at": self.modified_at.isoformat(),
            "last_editor": self.last_editor.name,
            "last_commit": self.last_short_id,
            "last_message": self.last_message,
            "contributors": sorted({c.name for c in self.contributors}),
        }


ProvenanceTable = Dict[str, PathRecord]
