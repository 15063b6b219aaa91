"""Delete-then-recreate annotated tags against the remote.

The harness reuses a small set of well-known tag names (version markers) across
runs, so a tag is recreated rather than created: the old tag is removed locally
and on the remote, a new annotated tag is made at the target commit, and all
tags are pushed. Tags are identified by name only.
"""

import logging
from dataclasses import dataclass

from gitfixture.git.commit import Signature
from gitfixture.git.errors import (
    CloneError,
    GitCommandError,
    PushError,
    RefNotFoundError,
    ReferenceResolutionError,
    TagCreateError,
    TagDeleteError,
    TagPublishError,
    is_expected_absence,
)
from gitfixture.git.push import TAGS_REFSPEC, delete_refspec, push
from gitfixture.git.repository import Repository

logger = logging.getLogger("gitfixture.git.tags")

TAG_MESSAGE = "create tag"


@dataclass(frozen=True)
class TagRef:
    """An annotated tag created by recreate_tag().

    Attributes:
        name (str): Short tag name, e.g. "v1".
        target (str): Commit the tag points at.
        tagger (Signature): Tagger identity.
        message (str): Tag message.
    """

    name: str
    target: str
    tagger: Signature
    message: str

    @property
    def ref(self) -> str:
        return f"refs/tags/{self.name}"


def delete_local_tag(repo: Repository, name: str) -> bool:
    """Delete tag name from the local repository.

    Returns:
        bool: True if a tag was deleted, False if there was none.

    Raises:
        TagDeleteError: If the tag exists but could not be deleted.
    """
    try:
        if not repo.ref_exists(f"refs/tags/{name}"):
            logger.debug(f"No local tag {name!r} to delete")
            return False
        repo.git(["tag", "--delete", name])
    except GitCommandError as e:
        if is_expected_absence(e):
            return False
        raise TagDeleteError(e.stderr, step="delete local tag") from e
    except ReferenceResolutionError as e:
        raise TagDeleteError(str(e), step="delete local tag") from e
    logger.info(f"Deleted local tag {name!r}")
    return True


def delete_remote_tag(repo: Repository, name: str) -> bool:
    """Delete tag name on the remote; a remote without the tag is success.

    Returns:
        bool: True if the remote had the tag, False otherwise.

    Raises:
        TagDeleteError: If the remote refused or could not be reached.
        GitTimeoutError: If a network operation times out.
    """
    ref = f"refs/tags/{name}"
    try:
        if ref not in repo.remote_refs(ref, step="delete remote tag"):
            logger.debug(f"No remote tag {name!r} to delete")
            return False
        push(repo, [delete_refspec(ref)])
    except (CloneError, PushError) as e:
        raise TagDeleteError(str(e), step="delete remote tag") from e
    logger.info(f"Deleted remote tag {name!r}")
    return True


def recreate_tag(
    repo: Repository,
    name: str,
    target: str,
    tagger: Signature | None = None,
    message: str = TAG_MESSAGE,
) -> TagRef:
    """Replace tag name, locally and on the remote, with a new annotated tag.

    Args:
        repo (Repository): The working copy.
        name (str): Short tag name.
        target (str): Commit-ish to tag (a hash, branch or ref).
        tagger (Signature | None): Tagger identity. Defaults to Signature().
        message (str): Tag message. Defaults to "create tag".

    Returns:
        TagRef: The tag that now exists locally and on the remote.

    Raises:
        TagDeleteError: If the old tag could not be removed (step "delete local
            tag" or "delete remote tag").
        TagCreateError: If the target does not resolve or the tag cannot be made.
        TagPublishError: If pushing the tags fails.
        GitTimeoutError: If a push times out.
    """
    tagger = tagger or Signature()

    delete_local_tag(repo, name)
    delete_remote_tag(repo, name)

    try:
        commit = repo.resolve(target)
        repo.git(
            ["-c", "tag.gpgSign=false", "tag", "--annotate", "-m", message, name, commit],
            env=tagger.env("COMMITTER"),
        )
    except GitCommandError as e:
        raise TagCreateError(e.stderr, step="create tag") from e
    except (RefNotFoundError, ReferenceResolutionError) as e:
        raise TagCreateError(str(e), step="create tag") from e
    logger.info(f"Created tag {name!r} at {commit}")

    try:
        push(repo, [TAGS_REFSPEC])
    except PushError as e:
        raise TagPublishError(str(e), step="publish tag") from e

    return TagRef(name=name, target=commit, tagger=tagger, message=message)
