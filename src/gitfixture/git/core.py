"""Core git command execution utilities.

This module provides low-level utilities for executing git commands via subprocess.
It handles command execution, output capture, timeouts, and error handling for git
operations. Every other module in gitfixture.git goes through run() or execute().
"""

import logging
import os
import re
import signal
import subprocess
from collections.abc import Mapping

from gitfixture.git.errors import GitCommandError, GitTimeoutError

logger = logging.getLogger("gitfixture.git.core")

# Keeps git from waiting on a terminal prompt, and keeps its messages in
# English so failures can be classified.
NON_INTERACTIVE_ENV = {
    "GIT_TERMINAL_PROMPT": "0",
    "LC_ALL": "C",
    "LANGUAGE": "",
}

_URL_CREDENTIALS = re.compile(r"(://)[^/@\s]+@")


def redact(args: list[str]) -> list[str]:
    """Return a copy of a command line that is safe to log.

    Strips userinfo from URLs and masks values of ``--password=`` style flags.

    Args:
        args (list[str]): The command line.

    Returns:
        list[str]: The command line with credentials replaced by ``***``.
    """
    redacted = []
    for arg in args:
        arg = _URL_CREDENTIALS.sub(r"\1***@", arg)
        if arg.startswith("--password="):
            arg = "--password=***"
        redacted.append(arg)
    return redacted


def _kill_process_group(proc: subprocess.Popen) -> None:
    """Kill a timed-out git and everything in its session, then reap it."""
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except ProcessLookupError:
        logger.debug(f"Process group {proc.pid} already gone")
    proc.communicate()


def run(
    cmd: list[str],
    *,
    cwd: str | None = None,
    env: Mapping[str, str] | None = None,
    timeout: float | None = None,
    check: bool = True,
) -> subprocess.CompletedProcess:
    """Run a git command and return the completed process.

    Automatically prepends "git" if not already present.

    Args:
        cmd (list[str]): The command to run, with or without the "git" prefix.
        cwd (str | None): Working directory for the command.
        env (Mapping[str, str] | None): Extra environment variables, layered over
            the current environment and the non-interactive defaults.
        timeout (float | None): Seconds before the command is killed, together
            with every process it started (transport helpers, ssh, hooks).
        check (bool): Raise GitCommandError on a non-zero exit. Defaults to True.

    Returns:
        subprocess.CompletedProcess: The finished process with text stdout/stderr.

    Raises:
        GitCommandError: If check is True and the command exits non-zero.
        GitTimeoutError: If the command exceeds the timeout.
    """
    if cmd[0] != "git":
        cmd = ["git"] + cmd
    full_env = {**os.environ, **NON_INTERACTIVE_ENV, **(env or {})}
    logger.debug(f"Executing: {redact(cmd)} (cwd={cwd}, timeout={timeout})")
    proc = subprocess.Popen(
        cmd,
        cwd=cwd,
        env=full_env,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        start_new_session=True,
    )
    try:
        stdout, stderr = proc.communicate(timeout=timeout)
    except subprocess.TimeoutExpired:
        _kill_process_group(proc)
        logger.warning(f"Timed out after {timeout}s: {redact(cmd)}")
        raise GitTimeoutError(f"git {cmd[1] if len(cmd) > 1 else ''} timed out after {timeout}s")
    result = subprocess.CompletedProcess(cmd, proc.returncode, stdout, stderr)
    if check and result.returncode != 0:
        stderr = result.stderr.strip() or result.stdout.strip()
        raise GitCommandError(stderr, args_list=redact(cmd), returncode=result.returncode)
    return result


def execute(
    cmd: list[str],
    *,
    cwd: str | None = None,
    env: Mapping[str, str] | None = None,
    timeout: float | None = None,
) -> str:
    """Execute a git command and return its stdout.

    Automatically prepends "git" if not already present, so both
    ``execute(["status"])`` and ``execute(["git", "status"])`` work.

    Args:
        cmd (list[str]): The command to execute. The "git" prefix is optional.
        cwd (str | None): Working directory for the command.
        env (Mapping[str, str] | None): Extra environment variables.
        timeout (float | None): Seconds before the command is killed.

    Returns:
        str: The stripped stdout output from the command.

    Raises:
        GitCommandError: If the command exits with a non-zero return code.
        GitTimeoutError: If the command exceeds the timeout.
    """
    return run(cmd, cwd=cwd, env=env, timeout=timeout).stdout.strip()
