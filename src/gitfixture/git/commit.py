"""Stage in-memory files into a working copy and commit them.

stage_and_commit() writes a FileSet into the working copy and commits only when
the result differs from HEAD. Running it twice with the same files produces a
single commit; the second call reports NOTHING_TO_COMMIT instead of failing,
which keeps fixture setup idempotent.
"""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import IO

from gitfixture.git.branch import current
from gitfixture.git.errors import CommitError, GitCommandError
from gitfixture.git.repository import Repository

logger = logging.getLogger("gitfixture.git.commit")

FileContent = bytes | str | IO[bytes] | IO[str]
FileSet = Mapping[str, FileContent]

DEFAULT_MESSAGE = "Update fixture files"


@dataclass(frozen=True)
class Signature:
    """Author, committer or tagger identity.

    Attributes:
        name (str): Display name.
        email (str): Email address.
        when (datetime): Timestamp. Defaults to now, in UTC.
    """

    name: str = "git"
    email: str = "test@example.com"
    when: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def env(self, role: str) -> dict[str, str]:
        """Environment variables that make git use this identity.

        Args:
            role (str): "AUTHOR" or "COMMITTER". Tags take the tagger from
                the committer variables.
        """
        when = self.when if self.when.tzinfo else self.when.replace(tzinfo=timezone.utc)
        return {
            f"GIT_{role}_NAME": self.name,
            f"GIT_{role}_EMAIL": self.email,
            f"GIT_{role}_DATE": when.isoformat(timespec="seconds"),
        }


class CommitOutcome(Enum):
    """What stage_and_commit() did."""

    COMMITTED = "committed"
    NOTHING_TO_COMMIT = "nothing-to-commit"


@dataclass(frozen=True)
class CommitRecord:
    """A commit created by stage_and_commit().

    Attributes:
        sha (str): The new commit.
        author (Signature): Author and committer identity.
        message (str): Commit message.
        parent (str | None): Previous branch tip, None for a root commit.
    """

    sha: str
    author: Signature
    message: str
    parent: str | None


@dataclass(frozen=True)
class CommitResult:
    outcome: CommitOutcome
    record: CommitRecord | None = None

    @property
    def committed(self) -> bool:
        return self.outcome is CommitOutcome.COMMITTED


def _read_content(content: FileContent) -> bytes:
    if isinstance(content, bytes):
        return content
    if isinstance(content, str):
        return content.encode("utf-8")
    data = content.read()
    return data.encode("utf-8") if isinstance(data, str) else data


def _target_path(root: str, relative: str) -> str:
    if not relative or os.path.isabs(relative):
        raise CommitError(f"file path must be relative: {relative!r}", step="write files")
    target = os.path.realpath(os.path.join(root, relative))
    if os.path.commonpath([root, target]) != root or target == root:
        raise CommitError(f"file path escapes the repository: {relative!r}", step="write files")
    if os.path.relpath(target, root).split(os.sep)[0] == ".git":
        raise CommitError(f"file path is inside .git: {relative!r}", step="write files")
    return target


def write_files(repo: Repository, files: FileSet) -> list[str]:
    """Write a FileSet under the repository root, creating parent directories.

    Every path is validated and every stream read before the first file is
    written, so a bad entry leaves the working tree untouched.

    Returns:
        list[str]: The written paths, relative to the repository root.

    Raises:
        CommitError: If a path is invalid or a file cannot be read or written.
    """
    pending = []
    for relative, content in files.items():
        target = _target_path(repo.path, relative)
        try:
            data = _read_content(content)
        except OSError as e:
            raise CommitError(f"could not read content for {relative}: {e}", step="write files") from e
        pending.append((relative, target, data))

    written = []
    for relative, target, data in pending:
        try:
            os.makedirs(os.path.dirname(target), exist_ok=True)
            with open(target, "wb") as f:
                f.write(data)
        except OSError as e:
            raise CommitError(f"could not write {relative}: {e}", step="write files") from e
        written.append(os.path.relpath(target, repo.path))
        logger.debug(f"Wrote {relative} ({len(data)} bytes)")
    return written


def stage_and_commit(
    repo: Repository,
    branch: str,
    files: FileSet,
    author: Signature | None = None,
    message: str = DEFAULT_MESSAGE,
) -> CommitResult:
    """Write files into the working copy and commit them if anything changed.

    Args:
        repo (Repository): The working copy, already on branch.
        branch (str): Branch the commit must land on.
        files (FileSet): Relative path to content (bytes, str or a readable stream).
        author (Signature | None): Author and committer. Defaults to Signature().
        message (str): Commit message.

    Returns:
        CommitResult: COMMITTED with the new CommitRecord, or NOTHING_TO_COMMIT
        when the working copy already matches.

    Raises:
        CommitError: If the working copy is on another branch, or writing,
            staging or committing fails.
    """
    on_branch = current(repo)
    if on_branch != branch:
        raise CommitError(f"working copy is on '{on_branch}', expected '{branch}'", step="commit")

    paths = write_files(repo, files)
    if not paths:
        return CommitResult(CommitOutcome.NOTHING_TO_COMMIT)
    try:
        repo.git(["add", "--", *paths])
        # without a HEAD this compares against the empty tree
        staged = repo.git(["diff", "--cached", "--name-only"])
    except GitCommandError as e:
        raise CommitError(e.stderr, step="stage files") from e

    if not staged:
        logger.info(f"Nothing to commit on {branch!r}")
        return CommitResult(CommitOutcome.NOTHING_TO_COMMIT)

    author = author or Signature()
    parent = repo.head()
    try:
        repo.git(
            ["-c", "commit.gpgsign=false", "commit", "--no-verify", "--quiet", "-m", message],
            env={**author.env("AUTHOR"), **author.env("COMMITTER")},
        )
    except GitCommandError as e:
        raise CommitError(e.stderr, step="commit") from e

    record = CommitRecord(sha=repo.head(), author=author, message=message, parent=parent)
    logger.info(f"Committed {record.sha} on {branch!r}: {len(staged.splitlines())} file(s) changed")
    return CommitResult(CommitOutcome.COMMITTED, record)
