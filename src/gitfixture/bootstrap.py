"""Bootstrap command for the deployment pipeline under test.

The bootstrap CLI itself is an external collaborator. This module only builds
its command line from the remote URL and the auth handle already resolved for
the fixture, and runs it with a timeout.
"""

import logging
import subprocess
from collections.abc import Sequence

from gitfixture.git.auth import AuthHandle
from gitfixture.git.core import redact
from gitfixture.git.errors import GitFixtureError

logger = logging.getLogger("gitfixture.bootstrap")

BOOTSTRAP_TIMEOUT = 15 * 60
DEFAULT_PATH = "clusters/e2e"
DEFAULT_COMPONENTS_EXTRA = ("image-reflector-controller", "image-automation-controller")


class CommandError(GitFixtureError):
    """Raised when an external command exits with non-zero status.

    Attributes:
        output (str): Combined stdout and stderr of the command.
    """

    def __init__(self, message: str, output: str = "") -> None:
        self.output = output
        super().__init__(message, step="bootstrap")


class CommandTimeoutError(GitFixtureError, TimeoutError):
    """Raised when an external command does not finish within its timeout."""


def bootstrap_command(
    repo_url: str,
    auth: AuthHandle,
    kubeconfig_path: str,
    *,
    path: str = DEFAULT_PATH,
    components_extra: Sequence[str] = DEFAULT_COMPONENTS_EXTRA,
    executable: str = "flux",
) -> list[str]:
    """Build the argv for ``flux bootstrap git``.

    Args:
        repo_url (str): URL of the fleet repository.
        auth (AuthHandle): Handle supplying the transport-specific arguments.
        kubeconfig_path (str): Path of the cluster kubeconfig.
        path (str): Repository path the cluster syncs from.
        components_extra (Sequence[str]): Optional components to install.
        executable (str): Bootstrap binary name.

    Returns:
        list[str]: The command line.
    """
    cmd = [executable, "bootstrap", "git", f"--url={repo_url}", *auth.bootstrap_args()]
    cmd += [f"--kubeconfig={kubeconfig_path}", f"--path={path}"]
    if components_extra:
        cmd.append(f"--components-extra={','.join(components_extra)}")
    return cmd


def run_command(
    cmd: Sequence[str],
    timeout: float = BOOTSTRAP_TIMEOUT,
    cwd: str = ".",
    input: str | None = "y\n",
) -> str:
    """Run an external command and return its combined output.

    The default input answers the confirmation prompt bootstrap shows for SSH
    remotes.

    Raises:
        CommandError: If the command exits non-zero or cannot be started.
        CommandTimeoutError: If it does not finish within timeout seconds.
    """
    logger.info(f"Running: {' '.join(redact(list(cmd)))}")
    try:
        result = subprocess.run(
            list(cmd),
            cwd=cwd,
            input=input,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        raise CommandTimeoutError(f"{cmd[0]} timed out after {timeout}s", step="bootstrap")
    except OSError as e:
        raise CommandError(f"could not run {cmd[0]}: {e}") from e
    if result.returncode != 0:
        logger.error(f"{cmd[0]} exited {result.returncode}")
        raise CommandError(f"{cmd[0]} exited {result.returncode}: {result.stdout.strip()}", result.stdout)
    return result.stdout
