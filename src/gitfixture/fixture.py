"""Fixture-setup flows built on the git engine.

These are the calls an end-to-end test makes: clone a remote into a fresh
temporary working copy, commit a set of generated files to a branch and push
them, and pin a well-known tag to a branch tip.
"""

import logging
import shutil
import tempfile

from gitfixture.git.auth import AuthHandle
from gitfixture.git.branch import reconcile
from gitfixture.git.commit import DEFAULT_MESSAGE, CommitResult, FileSet, Signature, stage_and_commit
from gitfixture.git.errors import GitFixtureError
from gitfixture.git.push import push
from gitfixture.git.repository import Repository
from gitfixture.git.tags import TagRef, recreate_tag

logger = logging.getLogger("gitfixture.fixture")


def get_repository(
    remote_url: str,
    branch: str,
    auth: AuthHandle | None = None,
    *,
    base_dir: str | None = None,
    timeout: float | None = None,
) -> Repository:
    """Clone remote_url into a new temporary directory.

    The directory is named ``*-repository`` under base_dir (or the system temp
    directory). Removing it is the caller's job once this returns; on failure
    it is removed here.

    Args:
        remote_url (str): URL of the remote.
        branch (str): Branch to check out if the remote has it.
        auth (AuthHandle | None): Authentication handle.
        base_dir (str | None): Parent directory for the working copy.
        timeout (float | None): Default timeout for network operations.

    Returns:
        Repository: The cloned working copy.
    """
    path = tempfile.mkdtemp(suffix="-repository", dir=base_dir)
    try:
        return Repository.open_or_clone(path, remote_url, auth, branch_hint=branch, timeout=timeout)
    except GitFixtureError:
        shutil.rmtree(path, ignore_errors=True)
        raise


def commit_and_push_all(
    repo: Repository,
    files: FileSet,
    branch: str,
    *,
    author: Signature | None = None,
    message: str = DEFAULT_MESSAGE,
) -> CommitResult:
    """Land on branch, commit files if they changed, and push.

    Nothing is pushed when the files already match the branch.

    Returns:
        CommitResult: The commit outcome.

    Raises:
        GitFixtureError: From whichever step fails; the step is in the message.
    """
    reconcile(repo, branch)
    result = stage_and_commit(repo, branch, files, author, message)
    if not result.committed:
        logger.info(f"{branch!r} already has the fixture files, skipping push")
        return result
    push(repo)
    return result


def create_tag_and_push(repo: Repository, branch: str, tag: str, tagger: Signature | None = None) -> TagRef:
    """Recreate tag at the tip of the local branch and publish it.

    Raises:
        TagError: From the failing step of the recreation.
    """
    return recreate_tag(repo, tag, f"refs/heads/{branch}", tagger)
