"""Git branch utilities.

This module lands a working copy on a named branch. The decision of what to do
is a pure function of whether the branch exists on the remote and locally:

    remote  local   action
    yes     yes     check out the local branch
    yes     no      create a local branch at the remote tip, then check it out
    no      yes     check out the local branch
    no      no      create the branch at the current HEAD

Checkout always forces the working tree to the target tip, discarding any
uncommitted changes in the working copy.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from gitfixture.git.errors import GitCommandError, ReferenceResolutionError
from gitfixture.git.repository import REMOTE_NAME, Repository

logger = logging.getLogger("gitfixture.git.branch")


class Action(Enum):
    """What reconcile() does to land on a branch."""

    CHECKOUT = "checkout"
    TRACK_REMOTE = "track-remote"
    CREATE = "create"


@dataclass(frozen=True)
class BranchState:
    """Existence of a branch on the remote and in the local ref store.

    Computed fresh on every reconcile call and never cached, since other flows
    may push to the same remote between calls.
    """

    remote_exists: bool
    local_exists: bool

    @property
    def action(self) -> Action:
        return decide(self.remote_exists, self.local_exists)


@dataclass(frozen=True)
class ReconcileOutcome:
    """Result of reconcile().

    Attributes:
        branch (str): The branch now checked out.
        action (Action): What was done to get there.
        tip (str | None): Commit the branch points at, None on an unborn branch.
    """

    branch: str
    action: Action
    tip: str | None


def decide(remote_exists: bool, local_exists: bool) -> Action:
    """Choose the reconcile action from branch existence.

    Args:
        remote_exists (bool): The branch exists on the remote.
        local_exists (bool): The branch exists locally.

    Returns:
        Action: CHECKOUT when the local branch exists, TRACK_REMOTE when only
        the remote branch exists, CREATE when neither does.
    """
    if local_exists:
        return Action.CHECKOUT
    if remote_exists:
        return Action.TRACK_REMOTE
    return Action.CREATE


def current(repo: Repository) -> str:
    """Get the name of the current git branch.

    Works on an unborn branch (a fresh clone of an empty remote).

    Returns:
        str: The current branch name, or "HEAD" if in detached HEAD state.
    """
    try:
        return repo.git(["symbolic-ref", "--quiet", "--short", "HEAD"])
    except GitCommandError:
        return "HEAD"


def branch_state(repo: Repository, branch_name: str) -> BranchState:
    """Look up whether branch_name exists on the remote and locally.

    Remote existence is read from the remote-tracking ref, so callers that
    need the live remote state fetch first.

    Raises:
        ReferenceResolutionError: If a lookup fails for a reason other than absence.
    """
    return BranchState(
        remote_exists=repo.ref_exists(f"refs/remotes/{REMOTE_NAME}/{branch_name}"),
        local_exists=repo.ref_exists(f"refs/heads/{branch_name}"),
    )


def reconcile(repo: Repository, branch_name: str, *, fetch: bool = True) -> ReconcileOutcome:
    """Check out branch_name, creating it when necessary.

    Args:
        repo (Repository): The working copy.
        branch_name (str): Branch to land on.
        fetch (bool): Refresh remote-tracking refs before deciding. Defaults to True.

    Returns:
        ReconcileOutcome: The branch, the action taken and the resulting tip.

    Raises:
        ReferenceResolutionError: If a ref lookup or the checkout itself fails.
        CloneError: If the fetch fails.
        GitTimeoutError: If the fetch times out.
    """
    if fetch:
        repo.fetch()
    state = branch_state(repo, branch_name)
    action = state.action
    logger.debug(f"Branch {branch_name!r}: {state} -> {action.value}")

    try:
        if action is Action.TRACK_REMOTE:
            repo.git(["branch", "--track", branch_name, f"{REMOTE_NAME}/{branch_name}"])
            repo.git(["checkout", "--force", branch_name])
        elif action is Action.CREATE:
            # an unborn HEAD has no tree to force onto
            force = ["--force"] if repo.head() else []
            repo.git(["checkout", *force, "-b", branch_name])
        else:
            repo.git(["checkout", "--force", branch_name])
    except GitCommandError as e:
        raise ReferenceResolutionError(
            f"could not check out branch '{branch_name}': {e.stderr}", step="reconcile"
        ) from e

    tip = repo.head()
    logger.info(f"Checked out {branch_name!r} ({action.value}) at {tip or 'unborn HEAD'}")
    return ReconcileOutcome(branch=branch_name, action=action, tip=tip)
