"""Smoke tests for replaying commits with a real git clone."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from ghbackport.core.adapters.git.cherry_pick import GitCherryPickReplayer
from ghbackport.core.adapters.git.operations import GitCommandError
from ghbackport.core.errors import CherryPickError
from ghbackport.core.models import Repository
from tests.helpers.git_repo import git

if TYPE_CHECKING:
    from pathlib import Path

    from tests.helpers.git_repo import OriginFixture

pytestmark = pytest.mark.requires_git

_REPO = Repository(owner="acme", name="widgets")


def _create_remote_branch(origin: OriginFixture, branch: str, start: str) -> None:
    git(origin.origin, "update-ref", f"refs/heads/{branch}", origin.tip(start))


async def test_commits_are_replayed_in_order_and_pushed(
    origin: OriginFixture, tmp_path: Path
) -> None:
    work = origin.clone(tmp_path / "work")
    shas = origin.push_branch("feature", "main", {"a.txt": "a\n", "b.txt": "b\n"})
    _create_remote_branch(origin, "backport-1-to-main", "main")
    worktrees = tmp_path / "worktrees"
    replayer = GitCherryPickReplayer(work, worktree_base=worktrees)

    head_sha = await replayer.cherry_pick(_REPO, shas, "backport-1-to-main")

    assert origin.tip("backport-1-to-main") == head_sha
    subjects = git(origin.origin, "log", "--format=%s", "--reverse", "main..backport-1-to-main")
    assert subjects.splitlines() == ["Update a.txt", "Update b.txt"]
    assert git(origin.origin, "show", "backport-1-to-main:b.txt") == "b"
    assert list(worktrees.iterdir()) == []
    assert len(git(work, "worktree", "list").splitlines()) == 1


async def test_local_clone_checkout_is_left_untouched(
    origin: OriginFixture, tmp_path: Path
) -> None:
    work = origin.clone(tmp_path / "work")
    shas = origin.push_branch("feature", "main", {"a.txt": "a\n"})
    _create_remote_branch(origin, "backport-1-to-main", "main")
    head_before = git(work, "rev-parse", "HEAD")

    await GitCherryPickReplayer(work).cherry_pick(_REPO, shas, "backport-1-to-main")

    assert git(work, "rev-parse", "HEAD") == head_before
    assert git(work, "status", "--porcelain") == ""
    assert not (work / "a.txt").exists()


async def test_conflict_aborts_without_pushing(origin: OriginFixture, tmp_path: Path) -> None:
    origin.push_branch("release", "main", {"widget.py": "three\n"})
    origin.push_branch("base-widget", "main", {"widget.py": "one\n"})
    shas = origin.push_branch("feature", "base-widget", {"widget.py": "two\n"})
    _create_remote_branch(origin, "backport-1-to-release", "release")
    tip_before = origin.tip("backport-1-to-release")
    work = origin.clone(tmp_path / "work")
    worktrees = tmp_path / "worktrees"

    with pytest.raises(CherryPickError) as exc_info:
        await GitCherryPickReplayer(work, worktree_base=worktrees).cherry_pick(
            _REPO, shas, "backport-1-to-release"
        )

    assert exc_info.value.commit == shas[0]
    assert exc_info.value.files == ("widget.py",)
    assert origin.tip("backport-1-to-release") == tip_before
    assert list(worktrees.iterdir()) == []


async def test_missing_head_branch_fails_before_any_worktree_is_created(
    origin: OriginFixture, tmp_path: Path
) -> None:
    work = origin.clone(tmp_path / "work")
    shas = origin.push_branch("feature", "main", {"a.txt": "a\n"})
    worktrees = tmp_path / "worktrees"

    with pytest.raises(GitCommandError, match="PROCESS_NONZERO_EXIT"):
        await GitCherryPickReplayer(work, worktree_base=worktrees).cherry_pick(
            _REPO, shas, "backport-1-to-main"
        )

    assert not worktrees.exists()
