"""Command-level tests for the git cherry-pick replayer using a scripted runner."""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeAlias

import pytest

from ghbackport.core.adapters.git.cherry_pick import GitCherryPickReplayer
from ghbackport.core.adapters.git.operations import (
    GitCommandError,
    GitCommandResult,
    GitCommandRunner,
    is_git_repository,
)
from ghbackport.core.errors import CherryPickError
from ghbackport.core.models import Repository

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from pathlib import Path

_REPO = Repository(owner="acme", name="widgets")

Responder: TypeAlias = "Callable[[tuple[str, ...]], GitCommandResult | None]"


class ScriptedGitRunner(GitCommandRunner):
    """Record git invocations and answer them from a responder."""

    def __init__(self, responder: Responder | None = None) -> None:
        self.calls: list[tuple[str, ...]] = []
        self._responder = responder

    async def run(self, cwd: Path, args: Sequence[str], *, check: bool = True) -> GitCommandResult:
        command = tuple(args)
        self.calls.append(command)
        answer = self._responder(command) if self._responder else None
        result = answer or GitCommandResult(returncode=0, stdout="", stderr="")
        if check and result.returncode != 0:
            raise GitCommandError(f"[PROCESS_NONZERO_EXIT] git {' '.join(command)}")
        return result

    def subcommands(self) -> list[str]:
        return [call[0] for call in self.calls]


def _tip(command: tuple[str, ...]) -> GitCommandResult | None:
    if command[:2] == ("rev-parse", "HEAD"):
        return GitCommandResult(returncode=0, stdout="f00d\n", stderr="")
    return None


async def test_replays_commits_in_order_and_cleans_up(tmp_path: Path) -> None:
    runner = ScriptedGitRunner(_tip)
    replayer = GitCherryPickReplayer(
        tmp_path / "clone", remote="upstream", worktree_base=tmp_path / "wt", runner=runner
    )

    head_sha = await replayer.cherry_pick(_REPO, ["c1", "c2"], "backport-7-to-main")

    assert head_sha == "f00d"
    assert runner.calls[0] == (
        "fetch",
        "--no-tags",
        "upstream",
        "+refs/heads/backport-7-to-main:refs/remotes/upstream/backport-7-to-main",
    )
    picks = [call[-1] for call in runner.calls if call[0] == "cherry-pick"]
    assert picks == ["c1", "c2"]
    assert ("push", "upstream", "HEAD:refs/heads/backport-7-to-main") in runner.calls
    assert runner.subcommands()[-2:] == ["worktree", "worktree"]
    assert runner.calls[-1] == ("worktree", "prune")
    assert list((tmp_path / "wt").iterdir()) == []


async def test_fetches_only_commits_missing_locally(tmp_path: Path) -> None:
    def responder(command: tuple[str, ...]) -> GitCommandResult | None:
        if command[:2] == ("cat-file", "-e"):
            present = command[2].startswith("c1")
            return GitCommandResult(returncode=0 if present else 1, stdout="", stderr="")
        return _tip(command)

    runner = ScriptedGitRunner(responder)
    replayer = GitCherryPickReplayer(tmp_path, worktree_base=tmp_path / "wt", runner=runner)

    await replayer.cherry_pick(_REPO, ["c1", "c2", "c3"], "head")

    assert ("fetch", "--no-tags", "origin", "c2", "c3") in runner.calls


async def test_conflict_aborts_and_reports_files(tmp_path: Path) -> None:
    def responder(command: tuple[str, ...]) -> GitCommandResult | None:
        if command[0] == "cherry-pick" and command[-1] == "c2":
            return GitCommandResult(returncode=1, stdout="", stderr="error: could not apply c2\n")
        if command[0] == "diff":
            return GitCommandResult(returncode=0, stdout="widget.py\n", stderr="")
        return None

    runner = ScriptedGitRunner(responder)
    replayer = GitCherryPickReplayer(tmp_path, worktree_base=tmp_path / "wt", runner=runner)

    with pytest.raises(CherryPickError) as exc_info:
        await replayer.cherry_pick(_REPO, ["c1", "c2", "c3"], "head")

    assert exc_info.value.commit == "c2"
    assert exc_info.value.files == ("widget.py",)
    assert exc_info.value.detail == "error: could not apply c2"
    assert ("cherry-pick", "--abort") in runner.calls
    assert not any(call[0] == "push" for call in runner.calls)
    assert not any(call[-1] == "c3" for call in runner.calls if call[0] == "cherry-pick")
    assert runner.calls[-1] == ("worktree", "prune")


async def test_conflict_files_fall_back_to_porcelain_status(tmp_path: Path) -> None:
    def responder(command: tuple[str, ...]) -> GitCommandResult | None:
        if command[0] == "cherry-pick" and command[-1] == "c1":
            return GitCommandResult(returncode=1, stdout="", stderr="")
        if command[0] == "status":
            return GitCommandResult(returncode=0, stdout="UU a.py\nM  b.py\nAA c.py\n", stderr="")
        return None

    runner = ScriptedGitRunner(responder)
    replayer = GitCherryPickReplayer(tmp_path, worktree_base=tmp_path / "wt", runner=runner)

    with pytest.raises(CherryPickError) as exc_info:
        await replayer.cherry_pick(_REPO, ["c1"], "head")

    assert exc_info.value.files == ("a.py", "c.py")
    assert exc_info.value.detail is None


class TestIsGitRepository:
    def test_work_tree_root(self, tmp_path: Path) -> None:
        (tmp_path / ".git").mkdir()

        assert is_git_repository(tmp_path)

    def test_bare_repository(self, tmp_path: Path) -> None:
        (tmp_path / "HEAD").write_text("ref: refs/heads/main\n")
        (tmp_path / "objects").mkdir()

        assert is_git_repository(tmp_path)

    def test_plain_directory(self, tmp_path: Path) -> None:
        assert not is_git_repository(tmp_path)
