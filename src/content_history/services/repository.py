"""
Repository access port.

The aggregator and the push validator only see the git object store through
RepositoryPort. GitRepository adapts an on-disk repository by running the
git binary; tests use an in-memory commit DAG implementing the same port.
"""

import logging
import re
import subprocess
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from ..errors import NonUTF8PathError, RepositoryError
from ..models import ChangeKind, CommitRef, Identity, PathChange, RawSignature
from ..utils.git_runner import run_git_command

logger = logging.getLogger(__name__)


class RepositoryPort(ABC):
    """Read-only view of a commit graph."""

    @abstractmethod
    def resolve(self, revision: str) -> str:
        """Resolve a revision (branch, tag, ``HEAD``, OID) to a commit OID."""

    @abstractmethod
    def commit(self, oid: str) -> CommitRef:
        """Read a commit object."""

    @abstractmethod
    def diff(self, tree_a: Optional[str], tree_b: str) -> List[PathChange]:
        """Diff two trees. With ``tree_a`` absent every entry of B is created."""

    @abstractmethod
    def ancestors_from(self, oid: str, hide: Iterable[str] = ()) -> Iterator[str]:
        """Walk every commit reachable from ``oid`` (inclusive).

        Commits reachable from any OID in ``hide`` are left out. The order
        of the walk is unspecified.
        """

    @abstractmethod
    def verify_signature(self, oid: str) -> bool:
        """Return True if the commit carries a valid signature."""

    @abstractmethod
    def resolve_identity(self, name: str, email: str) -> Identity:
        """Map a raw signature to its canonical identity via the mailmap."""


# Fields requested from `git log`, NUL separated. The body goes last.
_COMMIT_FORMAT = "%x00".join(
    ["%H", "%h", "%T", "%P", "%an", "%ae", "%aI", "%cn", "%ce", "%cI", "%B"]
)
_COMMIT_FIELD_COUNT = 11

_STATUS_KINDS = {
    "A": ChangeKind.CREATED,
    "D": ChangeKind.DELETED,
    "M": ChangeKind.MODIFIED,
    "T": ChangeKind.MODIFIED,
}

_CONTACT_RE = re.compile(r"^(?P<name>.*?)\s*<(?P<email>[^>]*)>\s*$")


def _decode_path(raw: bytes) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise NonUTF8PathError(raw) from e


class GitRepository(RepositoryPort):
    """RepositoryPort backed by the git command line."""

    def __init__(self, repo_path: Path = Path(".")):
        """
        Initialize the adapter.

        Args:
            repo_path: Work tree or bare repository directory. Inside a hook
                the current directory is the repository and GIT_DIR is set.
        """
        self.repo_path = Path(repo_path)
        self._identity_cache: Dict[Tuple[str, str], Identity] = {}

    def _git(self, args: List[str], text: bool = True):
        cmd = ["git"] + args
        try:
            result = run_git_command(cmd, cwd=self.repo_path, check=True, text=text)
        except subprocess.CalledProcessError as e:
            stderr = e.stderr
            if isinstance(stderr, bytes):
                stderr = stderr.decode("utf-8", errors="replace")
            raise RepositoryError(
                f"{' '.join(cmd)} failed: {(stderr or '').strip()}",
                command=" ".join(cmd),
            ) from e
        except (FileNotFoundError, NotADirectoryError) as e:
            raise RepositoryError(
                f"cannot run git in {self.repo_path}: {e}", command=" ".join(cmd)
            ) from e
        return result.stdout

    def resolve(self, revision: str) -> str:
        return self._git(["rev-parse", "--verify", f"{revision}^{{commit}}"]).strip()

    def commit(self, oid: str) -> CommitRef:
        raw = self._git(
            ["log", "-1", "--no-show-signature", f"--format={_COMMIT_FORMAT}", oid],
            text=False,
        )
        fields = raw.decode("utf-8", errors="replace").split("\x00")
        if len(fields) != _COMMIT_FIELD_COUNT:
            raise RepositoryError(f"unexpected commit format for {oid}")

        (
            full_oid,
            short_id,
            tree,
            parents,
            author_name,
            author_email,
            author_date,
            committer_name,
            committer_email,
            committer_date,
            message,
        ) = fields

        try:
            author_when = datetime.fromisoformat(author_date)
            committer_when = datetime.fromisoformat(committer_date)
        except ValueError as e:
            raise RepositoryError(f"corrupt timestamp in commit {oid}: {e}") from e

        return CommitRef(
            oid=full_oid,
            short_id=short_id,
            tree=tree,
            parents=tuple(parents.split()),
            author=RawSignature(author_name, author_email, author_when),
            committer=RawSignature(committer_name, committer_email, committer_when),
            message=message.rstrip("\n"),
        )

    def diff(self, tree_a: Optional[str], tree_b: str) -> List[PathChange]:
        if tree_a is None:
            raw = self._git(["ls-tree", "-r", "-z", "--name-only", tree_b], text=False)
            return [
                PathChange(_decode_path(entry), ChangeKind.CREATED)
                for entry in raw.split(b"\x00")
                if entry
            ]

        raw = self._git(
            ["diff-tree", "-r", "-z", "--no-renames", "--name-status", tree_a, tree_b],
            text=False,
        )
        tokens = [token for token in raw.split(b"\x00") if token]
        if len(tokens) % 2:
            raise RepositoryError(f"unexpected diff-tree output for {tree_a}..{tree_b}")

        changes = []
        for status, path in zip(tokens[0::2], tokens[1::2]):
            kind = _STATUS_KINDS.get(status.decode("ascii", errors="replace")[:1])
            if kind is None:
                raise RepositoryError(f"unexpected diff status {status!r} for {path!r}")
            changes.append(PathChange(_decode_path(path), kind))
        return changes

    def ancestors_from(self, oid: str, hide: Iterable[str] = ()) -> Iterator[str]:
        args = ["rev-list", oid] + [f"^{hidden}" for hidden in hide]
        for line in self._git(args).splitlines():
            if line:
                yield line

    def verify_signature(self, oid: str) -> bool:
        try:
            result = run_git_command(
                ["git", "verify-commit", oid], cwd=self.repo_path, check=False
            )
        except (FileNotFoundError, NotADirectoryError) as e:
            raise RepositoryError(f"cannot run git in {self.repo_path}: {e}") from e
        return result.returncode == 0

    def resolve_identity(self, name: str, email: str) -> Identity:
        key = (name, email)
        cached = self._identity_cache.get(key)
        if cached is not None:
            return cached

        contact = f"{name} <{email}>" if name else f"<{email}>"
        output = self._git(["check-mailmap", contact]).strip()
        match = _CONTACT_RE.match(output)
        if match is None:
            raise RepositoryError(f"unexpected check-mailmap output: {output!r}")

        identity = Identity(match.group("name"), match.group("email"))
        self._identity_cache[key] = identity
        return identity
