"""Error types for the git fixture engine.

Every failure raised by the engine derives from GitFixtureError and names the
fixture-setup step that failed, so a harness can report which step broke.

This module also holds the single classifier that separates "the ref is not
there" failures (expected, they drive control flow) from everything else
(fatal, propagated to the caller).
"""

import re
from enum import Enum


class GitFixtureError(Exception):
    """Base class for all git fixture errors.

    Attributes:
        step (str | None): Name of the fixture-setup step that failed.
    """

    def __init__(self, message: str, *, step: str | None = None) -> None:
        self.step = step
        if step:
            message = f"{step}: {message}"
        super().__init__(message)


class GitCommandError(GitFixtureError):
    """Raised when a git command exits with non-zero status.

    Attributes:
        args_list (list[str]): The git command that failed (credentials redacted).
        returncode (int): Exit status of the command.
        stderr (str): Stripped stderr output of the command.
    """

    def __init__(self, stderr: str, *, args_list: list[str] | None = None, returncode: int = 1) -> None:
        self.args_list = args_list or []
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(stderr)


class GitTimeoutError(GitFixtureError, TimeoutError):
    """Raised when a git command does not finish within its timeout.

    The subprocess is killed before this is raised. The engine never retries.
    """


class AuthConfigError(GitFixtureError):
    """Raised when credential material cannot be turned into an auth handle."""


class CloneError(GitFixtureError):
    """Raised when cloning the remote fails (network, auth, bad URL)."""


class RefNotFoundError(GitFixtureError):
    """Raised when a reference does not exist.

    Reconciliation absorbs this as a normal input; it is only fatal when
    raised out of clone (neither the branch hint nor a default branch
    resolves).
    """


class ReferenceResolutionError(GitFixtureError):
    """Raised when a reference lookup fails for a reason other than absence."""


class CommitError(GitFixtureError):
    """Raised when writing, staging or committing fixture files fails."""


class PushError(GitFixtureError):
    """Raised when a push fails for any reason other than an up-to-date remote."""


class TagError(GitFixtureError):
    """Base class for failures during tag recreation.

    The step attribute identifies which part of the delete-then-recreate
    sequence failed.
    """


class TagDeleteError(TagError):
    """Raised when an existing tag could not be removed locally or remotely."""


class TagCreateError(TagError):
    """Raised when the new annotated tag could not be created."""


class TagPublishError(TagError):
    """Raised when the new tag could not be pushed to the remote."""


class Failure(Enum):
    """Classification of a failed git command."""

    EXPECTED_ABSENCE = "expected-absence"
    FATAL = "fatal"


# Messages git prints when the thing being looked up or deleted is simply
# not there. Anything else is treated as fatal.
ABSENCE_PATTERNS: list[str] = [
    "not a valid ref",
    "unknown revision",
    "bad revision",
    "needed a single revision",
    "not a valid object name",
    "remote ref does not exist",
    "no such ref",
    "couldn't find remote ref",
]

# Matched before the absence patterns: a broken ref store can also produce
# "not a valid object name" style output.
CORRUPTION_PATTERNS: list[str] = [
    "is corrupt",
    "bad object",
    "broken",
    "invalid sha1 pointer",
    "unable to read",
    "could not read",
    "not a git repository",
]

# Ref, tag and path names git echoes back. Removed before matching so a branch
# called "fix-broken-build" cannot look like corruption.
_NAMES = re.compile(r"'[^'\n]*'|\"[^\"\n]*\"|(?<=couldn't find remote ref )\S+")


def classify(stderr: str) -> Failure:
    """Classify a failed git command by its stderr output.

    Only git's own message text is matched; quoted names are ignored.

    Args:
        stderr (str): The stderr of the failed command.

    Returns:
        Failure: EXPECTED_ABSENCE when the output says the ref or tag does
        not exist, FATAL otherwise.
    """
    text = _NAMES.sub("''", stderr.lower())
    for pattern in CORRUPTION_PATTERNS:
        if pattern in text:
            return Failure.FATAL
    if "tag '" in text and "not found" in text:
        return Failure.EXPECTED_ABSENCE
    for pattern in ABSENCE_PATTERNS:
        if pattern in text:
            return Failure.EXPECTED_ABSENCE
    return Failure.FATAL


def is_expected_absence(error: GitCommandError) -> bool:
    """Return True when a failed git command only reports a missing ref."""
    return classify(error.stderr) is Failure.EXPECTED_ABSENCE
