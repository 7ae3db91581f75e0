"""Core services: repository access, provenance aggregation and push policy."""

from .identity import IdentityResolver
from .policy import Action, PolicyRuleSet
from .provenance import ProvenanceAggregator, merge_tables
from .push_validator import PushValidator, parse_ref_update
from .repository import GitRepository, RepositoryPort

__all__ = [
    "Action",
    "GitRepository",
    "IdentityResolver",
    "PolicyRuleSet",
    "ProvenanceAggregator",
    "PushValidator",
    "RepositoryPort",
    "merge_tables",
    "parse_ref_update",
]
