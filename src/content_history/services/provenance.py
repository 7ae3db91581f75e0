"""
Provenance aggregation over the full commit history.

Every commit reachable from the start revision is visited once. For each
path a commit touches, the commit contributes a one-commit PathRecord which
is folded into the table with PathRecord.merge. Because that merge only
takes minima/maxima and unions, the resulting table does not depend on the
walk order, so the walk can be sharded over worker threads and the partial
tables merged afterwards.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, List, Optional

from ..errors import AggregationError, NonUTF8PathError
from ..models import PathRecord, ProvenanceTable
from .changes import iter_commit_changes
from .identity import IdentityResolver
from .repository import RepositoryPort

logger = logging.getLogger(__name__)


def fold_record(table: ProvenanceTable, path: str, record: PathRecord) -> None:
    """Fold one contribution into the table entry for ``path``."""
    table[path] = record.merge(table.get(path))


def merge_tables(tables: Iterable[ProvenanceTable]) -> ProvenanceTable:
    """Merge partial tables produced from disjoint sets of commits."""
    merged: ProvenanceTable = {}
    for table in tables:
        for path, record in table.items():
            fold_record(merged, path, record)
    return merged


class ProvenanceAggregator:
    """Builds the path -> PathRecord table for a repository."""

    def __init__(
        self,
        repository: RepositoryPort,
        resolver: Optional[IdentityResolver] = None,
        workers: int = 1,
    ):
        """
        Initialize the aggregator.

        Args:
            repository: Port to read commits and trees from
            resolver: Identity resolver, defaults to one over ``repository``
            workers: Number of threads to shard the walk over
        """
        if workers < 1:
            raise ValueError(f"workers must be at least 1, got {workers}")
        self.repository = repository
        self.resolver = resolver or IdentityResolver(repository)
        self.workers = workers

    def aggregate(self, start: str) -> ProvenanceTable:
        """
        Replay the history reachable from ``start``.

        Args:
            start: OID of the commit to walk from

        Returns:
            A fresh table keyed by repository-relative path

        Raises:
            AggregationError: If a commit has no author name or an
                undecodable path
            RepositoryError: If the object store cannot be read
        """
        start_time = time.time()
        oids = self.repository.ancestors_from(start)

        if self.workers == 1:
            table = self.fold_commits(oids)
        else:
            oid_list = list(oids)
            shards = [oid_list[i :: self.workers] for i in range(self.workers)]
            table = self._aggregate_sharded(shards)

        logger.info(
            f"Aggregated provenance for {len(table)} paths from {start} "
            f"in {time.time() - start_time:.2f}s"
        )
        return table

    def _aggregate_sharded(self, shards: List[List[str]]) -> ProvenanceTable:
        executor = ThreadPoolExecutor(max_workers=self.workers)
        try:
            futures = [executor.submit(self.fold_commits, shard) for shard in shards]
            partials = [future.result() for future in futures]
        except BaseException:
            executor.shutdown(wait=True, cancel_futures=True)
            raise
        executor.shutdown(wait=True)
        return merge_tables(partials)

    def fold_commits(self, oids: Iterable[str]) -> ProvenanceTable:
        """Fold the given commits into a new table."""
        table: ProvenanceTable = {}
        count = 0
        for oid in oids:
            self.fold_commit(table, oid)
            count += 1
        logger.debug(f"Folded {count} commits into {len(table)} paths")
        return table

    def fold_commit(self, table: ProvenanceTable, oid: str) -> None:
        """Fold every path change of one commit into ``table``."""
        commit = self.repository.commit(oid)
        author, committer = self.resolver.resolve_commit(commit)
        contribution = PathRecord.from_commit(commit, author, committer)

        try:
            for _parent, change in iter_commit_changes(self.repository, commit):
                fold_record(table, change.path, contribution)
        except NonUTF8PathError as e:
            raise AggregationError(f"commit {commit.oid}: {e}", oid=commit.oid) from e
