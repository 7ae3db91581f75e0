"""Identity resolution on top of the repository mailmap."""

from typing import Optional, Tuple

from ..errors import BadAuthorError, BadCommitterError
from ..models import CommitRef, Identity
from .repository import RepositoryPort


class IdentityResolver:
    """Canonicalizes raw (name, email) pairs into display identities."""

    def __init__(self, repository: RepositoryPort):
        self.repository = repository

    def resolve(
        self,
        name: str,
        email: str,
        oid: Optional[str] = None,
        committer: bool = False,
    ) -> Identity:
        """
        Resolve a raw signature.

        Args:
            name: Name recorded in the commit
            email: Email recorded in the commit
            oid: Commit being resolved, only used for error reporting
            committer: Whether the signature is the committer's

        Raises:
            BadAuthorError: If an author resolves to no display name
            BadCommitterError: If a committer resolves to no display name
        """
        identity = self.repository.resolve_identity(name, email)
        if not identity.name.strip():
            if committer:
                raise BadCommitterError(oid)
            raise BadAuthorError(oid)
        return identity

    def resolve_commit(self, commit: CommitRef) -> Tuple[Identity, Identity]:
        """Return the (author, committer) identities of a commit."""
        author = self.resolve(commit.author.name, commit.author.email, commit.oid)
        committer = self.resolve(
            commit.committer.name, commit.committer.email, commit.oid, committer=True
        )
        return author, committer
