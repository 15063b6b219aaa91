"""Push refs from a working copy to its remote.

An already up-to-date remote is success, including deleting a ref the remote
does not have. Every other failure surfaces as PushError; timeouts surface as
GitTimeoutError and are never retried here.
"""

import logging
import re
from enum import Enum

from gitfixture.git.branch import current
from gitfixture.git.errors import Failure, PushError, classify
from gitfixture.git.repository import REMOTE_NAME, Repository

logger = logging.getLogger("gitfixture.git.push")

TAGS_REFSPEC = "refs/tags/*:refs/tags/*"

# git push --porcelain: "<flag>\t<from>:<to>\t<summary>"
_PORCELAIN_LINE = re.compile(r"^(?P<flag>[ +\-*=!])\t(?P<refspec>[^\t]*)\t(?P<summary>.*)$")


class PushResult(Enum):
    """Outcome of a successful push."""

    PUSHED = "pushed"
    UP_TO_DATE = "up-to-date"


def delete_refspec(ref: str) -> str:
    """Return the refspec that deletes ref on the remote."""
    return f":{ref}"


def _is_delete(refspec: str) -> bool:
    return refspec.lstrip("+").startswith(":")


def push(
    repo: Repository,
    refspecs: list[str] | None = None,
    *,
    force: bool = False,
    timeout: float | None = None,
) -> PushResult:
    """Push to origin.

    Args:
        repo (Repository): The working copy.
        refspecs (list[str] | None): Refspecs to push. When omitted the current
            branch is pushed and its upstream recorded.
        force (bool): Allow non-fast-forward updates. Defaults to False.
        timeout (float | None): Seconds before the push is killed. Defaults to
            the repository timeout.

    Returns:
        PushResult: PUSHED if any ref changed on the remote, UP_TO_DATE otherwise.

    Raises:
        PushError: If the push is rejected or the transport fails.
        GitTimeoutError: If the push times out.
    """
    cmd = ["push", "--porcelain"]
    if force:
        cmd.append("--force")
    if refspecs:
        cmd += [REMOTE_NAME, *refspecs]
    else:
        branch = current(repo)
        if branch == "HEAD":
            raise PushError("cannot push a detached HEAD without refspecs", step="push")
        if repo.head() is None:
            raise PushError(f"branch '{branch}' has no commits to push", step="push")
        cmd += ["--set-upstream", REMOTE_NAME, branch]
        refspecs = [branch]

    result = repo.git_result(cmd, timeout=timeout)
    statuses = []
    for line in result.stdout.splitlines():
        match = _PORCELAIN_LINE.match(line)
        if match:
            statuses.append(match)
    rejected = [m for m in statuses if m.group("flag") == "!"]

    if result.returncode != 0 or rejected:
        details = "\n".join(
            [result.stderr.strip()] + [f"{m.group('refspec')} {m.group('summary')}" for m in rejected]
        ).strip()
        if all(_is_delete(r) for r in refspecs) and classify(details) is Failure.EXPECTED_ABSENCE:
            logger.info(f"Nothing to delete on {REMOTE_NAME}: {', '.join(refspecs)}")
            return PushResult.UP_TO_DATE
        logger.error(f"Push of {refspecs} failed: {details}")
        raise PushError(details or f"git push exited {result.returncode}", step="push")

    if all(m.group("flag") == "=" for m in statuses):
        logger.info(f"{REMOTE_NAME} already up to date: {', '.join(refspecs)}")
        return PushResult.UP_TO_DATE
    logger.info(f"Pushed {', '.join(refspecs)} to {REMOTE_NAME}")
    return PushResult.PUSHED
