"""Git command execution shared by the git adapters."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from ghbackport.core.adapters.process import (
    ProcessExecutionError,
    ProcessRetryPolicy,
    run_exec_capture,
    run_exec_checked,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

# Unmerged states reported by `git status --porcelain`.
_UNMERGED_PREFIXES = ("UU ", "AA ", "DD ", "AU ", "UA ", "DU ", "UD ")
_CHECKED_RETRY_POLICY = ProcessRetryPolicy(max_attempts=2, delay_seconds=0.1)


class GitCommandError(RuntimeError):
    """A checked git command failed; the message carries the process error code."""


@dataclass(frozen=True)
class GitCommandResult:
    returncode: int
    stdout: str
    stderr: str


class GitCommandRunner:
    """Run ``git`` in a working directory.

    With ``check`` set, a failing command raises ``GitCommandError``; otherwise
    the exit status is returned for the caller to inspect.
    """

    async def run(self, cwd: Path, args: Sequence[str], *, check: bool = True) -> GitCommandResult:
        try:
            if check:
                result = await run_exec_checked(
                    "git", *args, cwd=cwd, retry_policy=_CHECKED_RETRY_POLICY
                )
            else:
                result = await run_exec_capture("git", *args, cwd=cwd)
        except ProcessExecutionError as exc:
            raise GitCommandError(str(exc)) from exc
        except OSError as exc:
            raise GitCommandError(f"could not run git in {cwd}: {exc}") from exc

        return GitCommandResult(
            returncode=result.returncode,
            stdout=result.stdout_text(),
            stderr=result.stderr_text(),
        )


class GitAdapterBase:
    """Shared plumbing for adapters that shell out to git."""

    def __init__(self, runner: GitCommandRunner | None = None) -> None:
        self._runner = runner or GitCommandRunner()

    async def _run_git(
        self,
        cwd: Path,
        args: Sequence[str],
        *,
        check: bool = True,
    ) -> tuple[str, str]:
        result = await self._runner.run(cwd, args, check=check)
        return result.stdout, result.stderr

    async def _run_git_result(self, cwd: Path, args: Sequence[str]) -> tuple[int, str, str]:
        result = await self._runner.run(cwd, args, check=False)
        return result.returncode, result.stdout, result.stderr

    async def _has_commit(self, repo_path: Path, sha: str) -> bool:
        returncode, _, _ = await self._run_git_result(
            repo_path, ["cat-file", "-e", f"{sha}^{{commit}}"]
        )
        return returncode == 0

    async def _collect_conflict_files(self, worktree_path: Path) -> list[str]:
        """List paths left unmerged by a failed cherry-pick."""
        stdout, _ = await self._run_git(
            worktree_path, ["diff", "--name-only", "--diff-filter=U"], check=False
        )
        files = [line.strip() for line in stdout.splitlines() if line.strip()]
        if files:
            return files

        status, _ = await self._run_git(worktree_path, ["status", "--porcelain"], check=False)
        return [line[3:].strip() for line in status.splitlines() if line.startswith(_UNMERGED_PREFIXES)]


def is_git_repository(path: Path) -> bool:
    """Return True if ``path`` is a work tree root or a bare repository."""
    if (path / ".git").exists():
        return True
    return (path / "HEAD").is_file() and (path / "objects").is_dir()


__all__ = [
    "GitAdapterBase",
    "GitCommandError",
    "GitCommandResult",
    "GitCommandRunner",
    "is_git_repository",
]
