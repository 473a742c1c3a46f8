"""Fixtures for smoke tests that drive a real git executable."""

from __future__ import annotations

import shutil
from typing import TYPE_CHECKING

import pytest

from tests.helpers.git_repo import init_origin

if TYPE_CHECKING:
    from pathlib import Path

    from tests.helpers.git_repo import OriginFixture


@pytest.fixture(autouse=True)
def _isolated_git(tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch) -> None:
    """Give git a fixed identity and no user or system config."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")

    gitconfig = tmp_path_factory.mktemp("gitconfig") / "config"
    gitconfig.write_text(
        "[user]\n\tname = Backport Tests\n\temail = backport@example.com\n"
        "[init]\n\tdefaultBranch = main\n"
        "[advice]\n\tdetachedHead = false\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(gitconfig))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Backport Tests")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "backport@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Backport Tests")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "backport@example.com")
    monkeypatch.setenv("GIT_TERMINAL_PROMPT", "0")


@pytest.fixture
def origin(tmp_path: Path) -> OriginFixture:
    return init_origin(tmp_path)
