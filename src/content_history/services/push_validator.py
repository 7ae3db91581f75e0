"""
Pre-receive push validation.

Each ref-update line runs through the same stages:

    parse -> ref guard -> reachability walk -> per-commit policy check

The first failure anywhere rejects the whole push; later lines are never
looked at and no commit of a rejected update is treated as acceptable.
"""

import logging
import re
from typing import Iterable, List

from ..errors import CreateRefError, ForcePushError, InvalidHookInputError
from ..models import CommitRef, RefUpdateRequest
from .changes import iter_commit_changes
from .policy import Action, PolicyRuleSet
from .repository import RepositoryPort

logger = logging.getLogger(__name__)

_OID_RE = re.compile(r"^(?:[0-9a-fA-F]{40}|[0-9a-fA-F]{64})$")


def parse_ref_update(line: str) -> RefUpdateRequest:
    """
    Parse one ``<old-oid> <new-oid> <refname>`` line.

    Raises:
        InvalidHookInputError: If the line does not have exactly three
            space separated fields or an OID is not hexadecimal
    """
    fields = line.rstrip("\n").split(" ")
    if len(fields) != 3:
        raise InvalidHookInputError(line)

    old, new, refname = fields
    if not (_OID_RE.match(old) and _OID_RE.match(new)) or not refname:
        raise InvalidHookInputError(line)

    return RefUpdateRequest(old=old.lower(), new=new.lower(), refname=refname)


class PushValidator:
    """Applies a PolicyRuleSet to incoming ref updates."""

    def __init__(self, repository: RepositoryPort, rules: PolicyRuleSet):
        self.repository = repository
        self.rules = rules

    def run(self, lines: Iterable[str]) -> None:
        """
        Validate every ref update read from hook input.

        Raises:
            ContentHistoryError: The first violation or failure encountered
        """
        for line in lines:
            self.validate(parse_ref_update(line))

    def validate(self, update: RefUpdateRequest) -> None:
        """Validate a single ref update."""
        logger.debug(f"Validating {update.refname}: {update.old} -> {update.new}")

        # Deletion is rejected the same way as creation
        if update.changes_ref_lifecycle:
            raise CreateRefError(update.refname)

        commits = self.introduced_commits(update)
        for commit in commits:
            self.check_commit(commit)

        logger.info(f"Accepted {len(commits)} new commit(s) on {update.refname}")

    def introduced_commits(self, update: RefUpdateRequest) -> List[CommitRef]:
        """
        Find the commits an update adds to the ref.

        These are the commits reachable from ``new`` but not from ``old``.
        The update is a fast-forward exactly when ``old`` is the parent of
        one of them.

        Raises:
            ForcePushError: If ``old`` is not an ancestor of ``new``
        """
        commits = []
        fast_forward = False
        for oid in self.repository.ancestors_from(update.new, hide=[update.old]):
            commit = self.repository.commit(oid)
            if update.old in commit.parents:
                fast_forward = True
            commits.append(commit)

        if not fast_forward:
            raise ForcePushError()
        return commits

    def check_commit(self, commit: CommitRef) -> None:
        """Apply signing and path rules to one new commit."""
        if self.rules.require_signing:
            self.rules.check_signed(self.repository.verify_signature(commit.oid))

        for _parent, change in iter_commit_changes(self.repository, commit):
            self.rules.check(change.path, Action.from_change_kind(change.kind))
