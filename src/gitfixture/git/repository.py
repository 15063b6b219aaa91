"""Working-copy handle bound to one remote.

A Repository owns a single working-copy directory cloned from one remote URL.
It is the only part of the engine that exposes raw filesystem paths, and the
only place git commands are bound to a working directory, auth environment and
default timeout.
"""

import logging
import os

from gitfixture.git.auth import AuthHandle, LocalAuth
from gitfixture.git.core import execute, run
from gitfixture.git.errors import (
    CloneError,
    GitCommandError,
    RefNotFoundError,
    ReferenceResolutionError,
    is_expected_absence,
)

logger = logging.getLogger("gitfixture.git.repository")

REMOTE_NAME = "origin"


class Repository:
    """A cloned working copy of a fixture remote.

    Operations against one Repository must be serialized by the caller; there
    is no internal locking.

    Attributes:
        path (str): Absolute path of the working copy.
        remote_url (str): URL of the ``origin`` remote.
        auth (AuthHandle): Authentication used for network operations.
        timeout (float | None): Default timeout in seconds for network operations.
    """

    def __init__(self, path: str, remote_url: str, auth: AuthHandle | None = None, timeout: float | None = None) -> None:
        self.path = os.path.realpath(path)
        self.remote_url = remote_url
        self.auth = auth or LocalAuth()
        self.timeout = timeout

    def __repr__(self) -> str:
        return f"Repository(path={self.path!r})"

    # -- Construction ----------------------------------------------------------

    @classmethod
    def open_or_clone(
        cls,
        local_path: str,
        remote_url: str,
        auth: AuthHandle | None = None,
        branch_hint: str | None = None,
        timeout: float | None = None,
    ) -> "Repository":
        """Open an existing working copy or clone the remote into local_path.

        The clone fetches every branch and checks out branch_hint when the
        remote has it, otherwise the remote's default branch. Cloning an empty
        remote yields a working copy with an unborn HEAD.

        Args:
            local_path (str): Directory for the working copy. Created if missing.
            remote_url (str): URL of the remote.
            auth (AuthHandle | None): Authentication handle. Defaults to LocalAuth.
            branch_hint (str | None): Branch to check out if it exists remotely.
            timeout (float | None): Default timeout for network operations.

        Returns:
            Repository: The opened or freshly cloned working copy.

        Raises:
            CloneError: If the remote cannot be reached or the clone fails, or
                local_path holds a repository for a different remote.
            RefNotFoundError: If the remote has branches but neither the hint
                nor a default branch resolves.
            GitTimeoutError: If a network operation times out.
        """
        repo = cls(local_path, remote_url, auth, timeout)
        if os.path.isdir(os.path.join(repo.path, ".git")):
            existing = repo.git(["remote", "get-url", REMOTE_NAME])
            if existing != remote_url:
                raise CloneError(f"{repo.path} is a clone of {existing}, not {remote_url}", step="clone")
            logger.info(f"Opened existing working copy: {repo.path}")
            return repo

        heads = repo.remote_refs("refs/heads/*", remote=remote_url, step="clone")
        cmd = ["clone", "--no-single-branch"]
        if branch_hint and f"refs/heads/{branch_hint}" in heads:
            cmd += ["--branch", branch_hint]
        elif branch_hint:
            logger.info(f"Branch {branch_hint!r} not on remote, cloning default branch")
        os.makedirs(repo.path, exist_ok=True)
        try:
            execute(cmd + [remote_url, repo.path], env=repo.auth.connection_env(), timeout=repo.timeout)
        except GitCommandError as e:
            raise CloneError(e.stderr, step="clone") from e

        if heads and repo.head() is None:
            raise RefNotFoundError(
                f"neither branch {branch_hint!r} nor a default branch resolves on {remote_url}",
                step="clone",
            )
        logger.info(f"Cloned {remote_url} into {repo.path} ({repo.head() or 'empty'})")
        return repo

    # -- Commands --------------------------------------------------------------

    def git(self, args: list[str], *, timeout: float | None = None, env: dict[str, str] | None = None) -> str:
        """Run a git command inside the working copy and return its stdout.

        The auth environment is always applied. timeout falls back to the
        repository default.

        Raises:
            GitCommandError: If the command fails.
            GitTimeoutError: If the command times out.
        """
        return execute(
            ["-C", self.path, *args],
            env={**self.auth.connection_env(), **(env or {})},
            timeout=timeout if timeout is not None else self.timeout,
        )

    def git_result(self, args: list[str], *, timeout: float | None = None, env: dict[str, str] | None = None):
        """Run a git command inside the working copy without raising on failure.

        Returns:
            subprocess.CompletedProcess: The finished process.
        """
        return run(
            ["-C", self.path, *args],
            env={**self.auth.connection_env(), **(env or {})},
            timeout=timeout if timeout is not None else self.timeout,
            check=False,
        )

    # -- Inspection ------------------------------------------------------------

    def head(self) -> str | None:
        """Return the commit HEAD points at, or None when HEAD is unborn."""
        result = self.git_result(["rev-parse", "--verify", "--quiet", "HEAD^{commit}"])
        if result.returncode != 0:
            return None
        return result.stdout.strip()

    def ref_exists(self, ref: str) -> bool:
        """Return True if a fully qualified ref exists in the local ref store.

        Args:
            ref (str): A full ref name such as ``refs/heads/main``.

        Raises:
            ReferenceResolutionError: If the lookup fails for a reason other
                than the ref being absent.
        """
        result = self.git_result(["show-ref", "--verify", "--quiet", ref])
        if result.returncode == 0:
            return True
        stderr = result.stderr.strip()
        # --quiet suppresses the "not a valid ref" message; absence is a bare exit 1
        if result.returncode == 1 and not stderr:
            logger.debug(f"Ref not found: {ref}")
            return False
        raise ReferenceResolutionError(f"could not look up '{ref}': {stderr}", step="resolve ref")

    def resolve(self, rev: str) -> str:
        """Resolve a revision to a commit hash.

        Raises:
            RefNotFoundError: If the revision does not exist.
            ReferenceResolutionError: If the lookup fails for another reason.
        """
        try:
            return self.git(["rev-parse", "--verify", f"{rev}^{{commit}}"])
        except GitCommandError as e:
            if is_expected_absence(e):
                raise RefNotFoundError(f"revision '{rev}' not found", step="resolve ref") from e
            raise ReferenceResolutionError(f"could not resolve '{rev}': {e.stderr}", step="resolve ref") from e

    def fetch(self, timeout: float | None = None) -> None:
        """Refresh remote-tracking branches from origin, pruning deleted ones.

        Raises:
            CloneError: If the fetch fails.
            GitTimeoutError: If the fetch times out.
        """
        try:
            self.git(["fetch", "--prune", REMOTE_NAME], timeout=timeout)
        except GitCommandError as e:
            raise CloneError(e.stderr, step="fetch") from e
        logger.debug(f"Fetched {REMOTE_NAME} into {self.path}")

    def remote_refs(self, pattern: str | None = None, *, remote: str = REMOTE_NAME, step: str = "ls-remote") -> dict[str, str]:
        """List refs on the remote as a mapping of ref name to object id.

        Annotated tags are reported at the tag object, not the peeled commit.

        Args:
            pattern (str | None): Optional ref pattern such as ``refs/tags/*``.
            remote (str): Remote name or URL. Defaults to origin.
            step (str): Step name used in errors.

        Raises:
            CloneError: If the remote cannot be listed.
            GitTimeoutError: If listing times out.
        """
        cmd = ["ls-remote", remote]
        if pattern:
            cmd.append(pattern)
        try:
            if remote == REMOTE_NAME:
                output = self.git(cmd)
            else:
                # runs before the working copy exists during clone
                output = execute(cmd, env=self.auth.connection_env(), timeout=self.timeout)
        except GitCommandError as e:
            raise CloneError(e.stderr, step=step) from e
        refs = {}
        for line in output.splitlines():
            sha, _, name = line.partition("\t")
            if name and not name.endswith("^{}"):
                refs[name] = sha
        return refs
