"""Pytest fixtures for ghbackport tests."""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
from hypothesis import Phase, Verbosity, settings

from ghbackport.core.models import Repository

_TEST_BASE_DIR = Path(tempfile.mkdtemp(prefix="ghbackport-tests-"))
os.environ["GHBACKPORT_CONFIG_DIR"] = str(_TEST_BASE_DIR / "config")
os.environ["GHBACKPORT_WORKTREE_BASE"] = str(_TEST_BASE_DIR / "worktrees")

if TYPE_CHECKING:
    from collections.abc import Generator

    from tests.helpers.fakes import FakeCommitReplayer, InMemoryGitHubHost


settings.register_profile(
    "ci",
    max_examples=100,
    deadline=None,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
)
settings.register_profile(
    "dev",
    max_examples=20,
    deadline=500,
)
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    deadline=None,
)
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "dev"))


@pytest.fixture(autouse=True)
def _clean_test_dirs() -> Generator[None, None, None]:
    """Ensure config files and worktrees don't leak between tests."""
    yield
    shutil.rmtree(Path(os.environ["GHBACKPORT_CONFIG_DIR"]), ignore_errors=True)
    shutil.rmtree(Path(os.environ["GHBACKPORT_WORKTREE_BASE"]), ignore_errors=True)


@pytest.fixture
def repo() -> Repository:
    return Repository(owner="acme", name="widgets")


@pytest.fixture
def host(repo: Repository) -> InMemoryGitHubHost:
    """In-memory host seeded with main/dev branches and pull request #7 into dev."""
    from tests.helpers.fakes import InMemoryGitHubHost

    fake = InMemoryGitHubHost(repo)
    fake.add_branch("main", ["m0"])
    fake.add_branch("dev", ["m0", "d1"])
    fake.add_branch("feature", ["m0", "d1", "c1", "c2", "c3"])
    fake.add_pull_request(
        7,
        title="Fix widget alignment",
        body="Aligns widgets.",
        base="dev",
        head="feature",
        commits=["c1", "c2", "c3"],
    )
    return fake


@pytest.fixture
def replayer(host: InMemoryGitHubHost) -> FakeCommitReplayer:
    from tests.helpers.fakes import FakeCommitReplayer

    return FakeCommitReplayer(host)
