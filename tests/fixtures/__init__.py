"""
Test fixtures for content-history.

Provides reusable test infrastructure including:
- InMemoryRepository: hand-built commit DAG implementing RepositoryPort
- GitRepositoryBuilder: real git repositories for integration tests
"""

from .git_repository_builder import GitRepositoryBuilder
from .memory_repository import InMemoryRepository, ZERO_OID, day

__all__ = ["GitRepositoryBuilder", "InMemoryRepository", "ZERO_OID", "day"]
