"""
Publishing policy rules for the pre-receive hook.

Checks run in a fixed order so the reported rejection is deterministic:
creation/deletion first, then the allow-list, then the protect-list.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Pattern, Tuple

from ..config import PolicyConfig
from ..errors import (
    BadCreateError,
    BadDeleteError,
    BadRegexError,
    NotAllowedError,
    NotSignedError,
    ProtectedError,
)
from ..models import ChangeKind

MATCH_ALL_PATTERN = ".*"


class Action(Enum):
    CREATE = "create"
    DELETE = "delete"
    MODIFY = "modify"

    @classmethod
    def from_change_kind(cls, kind: ChangeKind) -> "Action":
        return _ACTIONS_BY_KIND[kind]


_ACTIONS_BY_KIND = {
    ChangeKind.CREATED: Action.CREATE,
    ChangeKind.DELETED: Action.DELETE,
    ChangeKind.MODIFIED: Action.MODIFY,
}


def compile_patterns(patterns: Iterable[str]) -> Tuple[Pattern[str], ...]:
    """Compile regular expressions, failing on the first invalid one."""
    compiled = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern))
        except re.error as e:
            raise BadRegexError(pattern, str(e)) from e
    return tuple(compiled)


@dataclass(frozen=True)
class PolicyRuleSet:
    """Immutable rule set built once per hook invocation."""

    require_signing: bool = False
    no_deletion: bool = False
    no_creation: bool = False
    allow_patterns: Tuple[Pattern[str], ...] = (re.compile(MATCH_ALL_PATTERN),)
    protect_patterns: Tuple[Pattern[str], ...] = ()

    @classmethod
    def from_config(cls, config: PolicyConfig) -> "PolicyRuleSet":
        """
        Build a rule set from configuration.

        Raises:
            BadRegexError: If an allow or protect pattern does not compile
        """
        return cls(
            require_signing=config.require_signing,
            no_deletion=config.no_deletion,
            no_creation=config.no_creation,
            allow_patterns=compile_patterns(config.allow_patterns),
            protect_patterns=compile_patterns(config.protect_patterns),
        )

    def check_signed(self, signed: bool) -> None:
        if self.require_signing and not signed:
            raise NotSignedError()

    def check(self, path: str, action: Action) -> None:
        """
        Check a single path change against the rules.

        Raises:
            BadCreateError, BadDeleteError: creation/deletion is disabled
            NotAllowedError: no allow pattern matches ``path``
            ProtectedError: a protect pattern matches ``path``
        """
        if action is Action.CREATE and self.no_creation:
            raise BadCreateError(path)
        if action is Action.DELETE and self.no_deletion:
            raise BadDeleteError(path)

        if not any(pattern.search(path) for pattern in self.allow_patterns):
            raise NotAllowedError(path)
        if any(pattern.search(path) for pattern in self.protect_patterns):
            raise ProtectedError(path)
