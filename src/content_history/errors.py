"""
Error taxonomy for content-history.

Each component raises its own family of exceptions:

- RepositoryError / NonUTF8PathError: the git object store could not be read
- AggregationError: provenance aggregation could not produce a record
  (BadAuthorError and BadCommitterError name the signature at fault)
- HookIoError: the pre-receive hook input was unreadable or malformed
- PolicyError: a push was rejected by the publishing policy

None of these are recovered from. Callers wrap lower level errors with
``raise ... from`` so the root cause stays attached.
"""

from typing import Optional


class ContentHistoryError(Exception):
    """Base class for all content-history errors."""


class RepositoryError(ContentHistoryError):
    """Git object store corruption or I/O failure."""

    def __init__(self, message: str, command: Optional[str] = None):
        super().__init__(message)
        self.command = command

    def __str__(self) -> str:
        return f"internal git error: {self.args[0]}"


class NonUTF8PathError(ContentHistoryError):
    """A tree entry path could not be decoded as UTF-8."""

    def __init__(self, raw_path: bytes = b""):
        super().__init__(raw_path)
        self.raw_path = raw_path

    def __str__(self) -> str:
        return "paths that are not utf-8 are not supported"


class AggregationError(ContentHistoryError):
    """Provenance aggregation failed for a commit."""

    def __init__(self, message: str, oid: Optional[str] = None):
        super().__init__(message)
        self.oid = oid


class BadAuthorError(AggregationError):
    """A commit has no resolvable author display name."""

    def __init__(self, oid: Optional[str] = None):
        super().__init__("commit author has no name", oid=oid)

    def __str__(self) -> str:
        if self.oid:
            return f"commit {self.oid} has no resolvable author name"
        return "commit has no resolvable author name"


class BadCommitterError(AggregationError):
    """A commit has no resolvable committer display name."""

    def __init__(self, oid: Optional[str] = None):
        super().__init__("commit committer has no name", oid=oid)

    def __str__(self) -> str:
        if self.oid:
            return f"commit {self.oid} has no resolvable committer name"
        return "commit has no resolvable committer name"


class HookIoError(ContentHistoryError):
    """The hook could not read its input."""

    def __str__(self) -> str:
        return f"failed to read stdin: {self.args[0]}"


class InvalidHookInputError(HookIoError):
    """A ref-update line did not have the expected shape."""

    def __init__(self, line: str = ""):
        super().__init__(line)
        self.line = line

    def __str__(self) -> str:
        return "invalid input. this is being used as a git hook, yes?"


class PolicyError(ContentHistoryError):
    """Base class for push rejections."""

    message = "push rejected"

    def __str__(self) -> str:
        return self.message


class BadRegexError(PolicyError):
    """A configured allow/protect pattern failed to compile."""

    def __init__(self, pattern: str, reason: str):
        super().__init__(pattern, reason)
        self.pattern = pattern
        self.reason = reason

    def __str__(self) -> str:
        return f"failed to compile regex: {self.pattern!r}: {self.reason}"


class CreateRefError(PolicyError):
    """Ref creation or deletion was attempted."""

    def __init__(self, refname: str):
        super().__init__(refname)
        self.refname = refname

    def __str__(self) -> str:
        return f"creating new refs is not permitted: {self.refname}"


class ForcePushError(PolicyError):
    message = "force-pushes are not permitted"


class NotSignedError(PolicyError):
    message = "signing your commits is required"


class PathPolicyError(PolicyError):
    """Rejection tied to a single repository path."""

    template = "{path}"

    def __init__(self, path: str):
        super().__init__(path)
        self.path = path

    def __str__(self) -> str:
        return self.template.format(path=self.path)


class BadCreateError(PathPolicyError):
    template = "creating pages is not permitted: {path}"


class BadDeleteError(PathPolicyError):
    template = "deleting pages is not permitted: {path}"


class NotAllowedError(PathPolicyError):
    template = "editing this page is not permitted: {path}"


class ProtectedError(PathPolicyError):
    template = "page is protected: {path}"
