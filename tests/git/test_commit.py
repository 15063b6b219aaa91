"""Tests for gitfixture.git.commit module."""

import io
import os
from datetime import datetime, timezone

import pytest

from gitfixture.git.branch import reconcile
from gitfixture.git.commit import CommitOutcome, Signature, stage_and_commit, write_files
from gitfixture.git.errors import CommitError
from tests.remotes import git


class TestSignature:
    def test_env_for_role(self):
        when = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        env = Signature("Fixture", "fixture@example.com", when).env("AUTHOR")
        assert env == {
            "GIT_AUTHOR_NAME": "Fixture",
            "GIT_AUTHOR_EMAIL": "fixture@example.com",
            "GIT_AUTHOR_DATE": "2024-01-02T03:04:05+00:00",
        }

    def test_defaults(self):
        signature = Signature()
        assert (signature.name, signature.email) == ("git", "test@example.com")
        assert signature.when.tzinfo is not None


class TestWriteFiles:
    def test_creates_parent_directories(self, repo):
        written = write_files(repo, {"clusters/e2e/app.yaml": "kind: App\n"})
        assert written == [os.path.join("clusters", "e2e", "app.yaml")]
        with open(os.path.join(repo.path, "clusters", "e2e", "app.yaml")) as f:
            assert f.read() == "kind: App\n"

    def test_reads_streams(self, repo):
        write_files(repo, {"a.bin": io.BytesIO(b"\x00\x01"), "b.txt": io.StringIO("text")})
        with open(os.path.join(repo.path, "a.bin"), "rb") as f:
            assert f.read() == b"\x00\x01"
        with open(os.path.join(repo.path, "b.txt")) as f:
            assert f.read() == "text"

    @pytest.mark.parametrize("path", ["../outside.txt", "/etc/passwd", ".git/config", "", "a/../../b"])
    def test_rejects_paths_outside_working_tree(self, repo, path):
        with pytest.raises(CommitError) as exc_info:
            write_files(repo, {path: "x"})
        assert exc_info.value.step == "write files"

    def test_bad_entry_leaves_tree_untouched(self, repo):
        """A rejected path anywhere in the set means no file is written."""
        files = {"a.txt": "a\n", "init.txt": "changed\n", "../outside.txt": "x"}
        with pytest.raises(CommitError):
            write_files(repo, files)
        assert not os.path.exists(os.path.join(repo.path, "a.txt"))
        assert git("-C", repo.path, "status", "--porcelain") == ""


class TestStageAndCommit:
    """Test suite for stage_and_commit()."""

    def test_commits_changed_files(self, repo):
        parent = repo.head()
        author = Signature("Fixture", "fixture@example.com")
        result = stage_and_commit(repo, "main", {"a.txt": "hello\n"}, author, "add a")
        assert result.outcome is CommitOutcome.COMMITTED
        assert result.record.parent == parent
        assert result.record.sha == repo.head()
        assert git("-C", repo.path, "log", "-1", "--format=%an <%ae>|%cn|%s") == "Fixture <fixture@example.com>|Fixture|add a"

    def test_second_call_is_nothing_to_commit(self, repo):
        """Committing the same files twice produces a single commit."""
        files = {"a.txt": "hello\n"}
        first = stage_and_commit(repo, "main", files)
        second = stage_and_commit(repo, "main", files)
        assert first.committed
        assert second.outcome is CommitOutcome.NOTHING_TO_COMMIT
        assert second.record is None
        assert repo.head() == first.record.sha

    def test_unchanged_existing_file_is_nothing_to_commit(self, repo):
        head = repo.head()
        result = stage_and_commit(repo, "main", {"init.txt": "init\n"})
        assert not result.committed
        assert repo.head() == head

    def test_empty_file_set_is_nothing_to_commit(self, repo):
        assert stage_and_commit(repo, "main", {}).outcome is CommitOutcome.NOTHING_TO_COMMIT

    def test_root_commit_on_empty_remote(self, empty_remote, clone_factory):
        repo = clone_factory(empty_remote)
        reconcile(repo, "feature")
        result = stage_and_commit(repo, "feature", {"a.txt": "hello\n"})
        assert result.committed
        assert result.record.parent is None

    def test_wrong_branch_is_rejected(self, repo):
        with pytest.raises(CommitError, match="expected 'other'") as exc_info:
            stage_and_commit(repo, "other", {"a.txt": "x"})
        assert exc_info.value.step == "commit"
        assert not os.path.exists(os.path.join(repo.path, "a.txt"))

    def test_commit_hooks_are_skipped(self, repo):
        hook = os.path.join(repo.path, ".git", "hooks", "pre-commit")
        with open(hook, "w") as f:
            f.write("#!/bin/sh\nexit 1\n")
        os.chmod(hook, 0o755)
        assert stage_and_commit(repo, "main", {"a.txt": "x"}).committed
