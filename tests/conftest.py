"""Shared pytest fixtures.

Every test runs git with the user's global and system configuration hidden, so
settings like init.defaultBranch or commit signing on the developer's machine
cannot change results. Remotes are bare repositories on the local filesystem,
reached with the local transport.
"""

import os

import pytest

from gitfixture.git.repository import Repository
from tests.remotes import init_bare, push_files


@pytest.fixture(autouse=True)
def isolated_git_config(monkeypatch, tmp_path_factory):
    """Point git at an empty global config and disable the system config."""
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", os.devnull)
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    for name in ("GIT_DIR", "GIT_WORK_TREE", "GIT_INDEX_FILE"):
        monkeypatch.delenv(name, raising=False)
    for name in list(os.environ):
        if name.startswith("GITFIXTURE_"):
            monkeypatch.delenv(name)


@pytest.fixture
def empty_remote(tmp_path):
    """Create a bare remote with no commits.

    Returns:
        str: Path of the bare repository, usable as a remote URL.
    """
    return init_bare(str(tmp_path / "empty.git"))


@pytest.fixture
def seeded_remote(tmp_path):
    """Create a bare remote whose main branch has one commit containing init.txt.

    Returns:
        str: Path of the bare repository, usable as a remote URL.
    """
    remote = init_bare(str(tmp_path / "remote.git"))
    push_files(remote, "main", {"init.txt": "init\n"}, message="init")
    return remote


@pytest.fixture
def clone_factory(tmp_path):
    """Factory fixture that clones a remote into a fresh directory.

    Returns:
        Callable[..., Repository]: clone(remote, branch_hint="main").
    """
    counter = iter(range(1000))

    def clone(remote, branch_hint="main"):
        path = tmp_path / f"clone-{next(counter)}"
        return Repository.open_or_clone(str(path), remote, branch_hint=branch_hint, timeout=60)

    return clone


@pytest.fixture
def repo(seeded_remote, clone_factory):
    """A working copy of seeded_remote on main."""
    return clone_factory(seeded_remote)
