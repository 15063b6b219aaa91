"""Git fixture synchronization engine.

This package lands a working copy on a branch, commits generated files only when
they differ from HEAD, pushes, and recreates tags against a remote.

Exports:
    resolve: Build an AuthHandle for a transport kind and credentials.
    Repository: Working copy bound to one remote.
    reconcile: Check out a branch, creating it from the remote or HEAD if needed.
    stage_and_commit: Write files and commit them if anything changed.
    push: Push the current branch or explicit refspecs.
    recreate_tag: Delete and recreate an annotated tag locally and remotely.
    GitFixtureError: Base class of every engine error.
"""

from gitfixture.git.auth import Credentials, TransportKind, resolve
from gitfixture.git.branch import Action, ReconcileOutcome, current, decide, reconcile
from gitfixture.git.commit import CommitOutcome, CommitResult, Signature, stage_and_commit
from gitfixture.git.core import execute
from gitfixture.git.errors import (
    AuthConfigError,
    CloneError,
    CommitError,
    GitCommandError,
    GitFixtureError,
    GitTimeoutError,
    PushError,
    RefNotFoundError,
    ReferenceResolutionError,
    TagCreateError,
    TagDeleteError,
    TagError,
    TagPublishError,
)
from gitfixture.git.push import PushResult, push
from gitfixture.git.repository import Repository
from gitfixture.git.tags import TagRef, recreate_tag

__all__ = [
    "Action",
    "AuthConfigError",
    "CloneError",
    "CommitError",
    "CommitOutcome",
    "CommitResult",
    "Credentials",
    "GitCommandError",
    "GitFixtureError",
    "GitTimeoutError",
    "PushError",
    "PushResult",
    "ReconcileOutcome",
    "RefNotFoundError",
    "ReferenceResolutionError",
    "Repository",
    "Signature",
    "TagCreateError",
    "TagDeleteError",
    "TagError",
    "TagPublishError",
    "TagRef",
    "TransportKind",
    "current",
    "decide",
    "execute",
    "push",
    "reconcile",
    "recreate_tag",
    "resolve",
    "stage_and_commit",
]
