"""
Integration tests for GitRepository against real git repositories.

These create repositories under tmp_path with the git binary; no Python
mocks are involved.
"""

import sys
from datetime import datetime, timedelta, timezone

import pytest

from content_history.errors import AggregationError, NonUTF8PathError, RepositoryError
from content_history.models import ChangeKind, PathChange
from content_history.services.provenance import ProvenanceAggregator
from content_history.services.repository import GitRepository
from tests.fixtures import GitRepositoryBuilder

pytestmark = pytest.mark.requires_git

UTC = timezone.utc
T1 = datetime(2024, 3, 1, 10, 0, tzinfo=UTC)
T2 = datetime(2024, 3, 2, 10, 0, tzinfo=UTC)
T3 = datetime(2024, 3, 3, 10, 0, tzinfo=UTC)
T4 = datetime(2024, 3, 4, 10, 0, tzinfo=UTC)

ALICE = ("Alice", "alice@example.com")
BOB = ("Bob", "bob@example.com")


class TestGitRepositoryCommits:
    def test_reads_commit_metadata(self, git_repo):
        root = git_repo.commit("first page\n\nwith a body", {"index.org": "hi"}, author=ALICE, when=T1)
        child = git_repo.commit(
            "second", {"index.org": "hello"}, author=ALICE, committer=BOB, when=T2, commit_when=T3
        )

        commit = GitRepository(git_repo.repo_path).commit(child)

        assert commit.oid == child
        assert child.startswith(commit.short_id)
        assert commit.parents == (root,)
        assert commit.author.name == "Alice"
        assert commit.author.email == "alice@example.com"
        assert commit.author.when == T2
        assert commit.committer.name == "Bob"
        assert commit.committer.when == T3
        assert commit.message == "second"

    def test_preserves_multiline_message_and_timezone(self, git_repo):
        tz = timezone(timedelta(hours=-5))
        oid = git_repo.commit(
            "subject\n\nbody line", {"a.org": "x"}, when=datetime(2024, 3, 1, 5, 0, tzinfo=tz)
        )

        commit = GitRepository(git_repo.repo_path).commit(oid)

        assert commit.message == "subject\n\nbody line"
        assert commit.is_root
        assert commit.author.when.utcoffset() == timedelta(hours=-5)
        assert commit.author.when == datetime(2024, 3, 1, 10, 0, tzinfo=UTC)

    def test_merge_commit_has_both_parents(self, git_repo):
        git_repo.commit("base", {"a.org": "1"}, when=T1)
        git_repo.checkout("side", create=True)
        side = git_repo.commit("side", {"b.org": "1"}, when=T2)
        git_repo.checkout("main")
        main = git_repo.commit("main", {"a.org": "2"}, when=T3)
        merge = git_repo.merge("side", "merge side", when=T4)

        commit = GitRepository(git_repo.repo_path).commit(merge)

        assert commit.is_merge
        assert commit.parents == (main, side)

    def test_resolve_revision(self, git_repo):
        oid = git_repo.commit("first", {"a.org": "1"}, when=T1)

        repository = GitRepository(git_repo.repo_path)

        assert repository.resolve("HEAD") == oid
        assert repository.resolve("main") == oid

    def test_unknown_revision_raises_repository_error(self, git_repo):
        git_repo.commit("first", {"a.org": "1"}, when=T1)

        with pytest.raises(RepositoryError) as exc_info:
            GitRepository(git_repo.repo_path).resolve("no-such-branch")

        assert str(exc_info.value).startswith("internal git error:")

    def test_missing_object_raises_repository_error(self, git_repo):
        git_repo.commit("first", {"a.org": "1"}, when=T1)

        with pytest.raises(RepositoryError):
            GitRepository(git_repo.repo_path).commit("f" * 40)


class TestGitRepositoryDiff:
    def test_root_tree_lists_every_file_as_created(self, git_repo):
        oid = git_repo.commit("first", {"a.org": "1", "dir/b.org": "2"}, when=T1)
        repository = GitRepository(git_repo.repo_path)

        changes = repository.diff(None, repository.commit(oid).tree)

        assert sorted(changes, key=lambda c: c.path) == [
            PathChange("a.org", ChangeKind.CREATED),
            PathChange("dir/b.org", ChangeKind.CREATED),
        ]

    def test_classifies_created_deleted_and_modified(self, git_repo):
        first = git_repo.commit("first", {"keep.org": "1", "drop.org": "x"}, when=T1)
        git_repo.remove(["drop.org"])
        second = git_repo.commit("second", {"keep.org": "2", "new dir/new.org": "n"}, when=T2)
        repository = GitRepository(git_repo.repo_path)

        changes = repository.diff(repository.commit(first).tree, repository.commit(second).tree)

        assert set(changes) == {
            PathChange("keep.org", ChangeKind.MODIFIED),
            PathChange("drop.org", ChangeKind.DELETED),
            PathChange("new dir/new.org", ChangeKind.CREATED),
        }

    def test_unicode_paths_are_decoded(self, git_repo):
        oid = git_repo.commit("first", {"café/ünïcode.org": "x"}, when=T1)
        repository = GitRepository(git_repo.repo_path)

        changes = repository.diff(None, repository.commit(oid).tree)

        assert changes == [PathChange("café/ünïcode.org", ChangeKind.CREATED)]

    @pytest.mark.skipif(sys.platform != "linux", reason="needs byte-oriented filenames")
    def test_non_utf8_path_raises(self, git_repo):
        oid = git_repo.commit("first", {b"caf\xe9.org": "x"}, when=T1)
        repository = GitRepository(git_repo.repo_path)

        with pytest.raises(NonUTF8PathError):
            repository.diff(None, repository.commit(oid).tree)

        with pytest.raises(AggregationError):
            ProvenanceAggregator(repository).aggregate(oid)


class TestGitRepositoryWalk:
    def test_ancestors_include_start_and_all_parents(self, git_repo):
        c1 = git_repo.commit("c1", {"a.org": "1"}, when=T1)
        c2 = git_repo.commit("c2", {"a.org": "2"}, when=T2)
        c3 = git_repo.commit("c3", {"a.org": "3"}, when=T3)

        walk = list(GitRepository(git_repo.repo_path).ancestors_from(c3))

        assert sorted(walk) == sorted([c1, c2, c3])

    def test_hidden_history_is_excluded(self, git_repo):
        git_repo.commit("c1", {"a.org": "1"}, when=T1)
        c2 = git_repo.commit("c2", {"a.org": "2"}, when=T2)
        c3 = git_repo.commit("c3", {"a.org": "3"}, when=T3)

        walk = list(GitRepository(git_repo.repo_path).ancestors_from(c3, hide=[c2]))

        assert walk == [c3]


class TestGitRepositoryIdentity:
    def test_identity_without_mailmap_is_unchanged(self, git_repo):
        git_repo.commit("c1", {"a.org": "1"}, when=T1)

        identity = GitRepository(git_repo.repo_path).resolve_identity("Alice", "alice@example.com")

        assert identity.name == "Alice"
        assert identity.email == "alice@example.com"

    def test_mailmap_unifies_aliases(self, git_repo):
        git_repo.commit(
            "mailmap",
            {".mailmap": "Alice Liddell <alice@example.com> <alice@old.example.com>\n"},
            when=T1,
        )
        repository = GitRepository(git_repo.repo_path)

        old = repository.resolve_identity("alice", "alice@old.example.com")
        new = repository.resolve_identity("Alice Liddell", "alice@example.com")

        assert old == new
        assert str(old) == "Alice Liddell"

    def test_identity_lookups_are_cached(self, git_repo):
        git_repo.commit("c1", {"a.org": "1"}, when=T1)
        repository = GitRepository(git_repo.repo_path)

        first = repository.resolve_identity("Alice", "alice@example.com")
        (git_repo.repo_path / ".mailmap").write_text("Someone Else <alice@example.com>\n")

        assert repository.resolve_identity("Alice", "alice@example.com") is first


class TestGitRepositorySignatures:
    def test_unsigned_commit_does_not_verify(self, git_repo):
        oid = git_repo.commit("c1", {"a.org": "1"}, when=T1)

        assert GitRepository(git_repo.repo_path).verify_signature(oid) is False


class TestBareRepository:
    def test_reads_history_from_bare_clone(self, git_repo, tmp_path):
        oid = git_repo.commit("c1", {"a.org": "1"}, author=ALICE, when=T1)
        bare = GitRepositoryBuilder(tmp_path / "site.git")
        bare.repo_path.mkdir()
        bare.git("clone", "--quiet", "--bare", str(git_repo.repo_path), ".")

        table = ProvenanceAggregator(GitRepository(bare.repo_path)).aggregate(oid)

        assert table["a.org"].creator.name == "Alice"
