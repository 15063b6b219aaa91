"""gitfixture: disposable git-backed fixtures for end-to-end tests.

gitfixture lands a working copy on a branch, commits generated files only when
they change, pushes them, and recreates well-known tags, so pipeline tests have
a deterministic, idempotent repository to observe.
"""

from gitfixture.config import FixtureConfig, load_config
from gitfixture.fixture import commit_and_push_all, create_tag_and_push, get_repository
from gitfixture.git import GitFixtureError, Repository, Signature, resolve
from gitfixture.readiness import wait_until

__all__ = [
    "FixtureConfig",
    "GitFixtureError",
    "Repository",
    "Signature",
    "commit_and_push_all",
    "create_tag_and_push",
    "get_repository",
    "load_config",
    "resolve",
    "wait_until",
]
