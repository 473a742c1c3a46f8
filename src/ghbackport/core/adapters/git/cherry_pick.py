"""Cherry-pick commits onto a remote branch from a local clone."""

from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

from ghbackport.core.adapters.git.operations import GitAdapterBase, GitCommandRunner
from ghbackport.core.errors import CherryPickError
from ghbackport.core.paths import get_worktree_base_dir

if TYPE_CHECKING:
    from collections.abc import Sequence

    from ghbackport.core.models import Repository

logger = logging.getLogger(__name__)


class GitCherryPickReplayer(GitAdapterBase):
    """Replay commits onto a branch of ``remote`` using a throwaway worktree.

    The clone at ``repo_path`` only provides the object store. Its own branches
    and working tree are never touched.
    """

    def __init__(
        self,
        repo_path: str | Path,
        *,
        remote: str = "origin",
        worktree_base: str | Path | None = None,
        runner: GitCommandRunner | None = None,
    ) -> None:
        super().__init__(runner)
        self._repo_path = Path(repo_path)
        self._remote = remote
        self._worktree_base = Path(worktree_base) if worktree_base else None

    @property
    def remote_tracking_prefix(self) -> str:
        return f"refs/remotes/{self._remote}"

    async def cherry_pick(self, repo: Repository, commits: Sequence[str], head: str) -> str:
        """Apply ``commits`` in order on top of ``head`` and push the result."""
        head_ref = f"{self.remote_tracking_prefix}/{head}"
        logger.debug("cherry-picking %d commit(s) of %s onto %s", len(commits), repo, head)

        await self._run_git(
            self._repo_path,
            ["fetch", "--no-tags", self._remote, f"+refs/heads/{head}:{head_ref}"],
        )
        await self._fetch_missing_commits(commits)

        base_dir = self._worktree_base or get_worktree_base_dir()
        base_dir.mkdir(parents=True, exist_ok=True)
        scratch_dir = Path(tempfile.mkdtemp(prefix="cherry-pick-", dir=base_dir))
        worktree_path = scratch_dir / "worktree"
        try:
            await self._run_git(
                self._repo_path,
                ["worktree", "add", "--detach", str(worktree_path), head_ref],
            )
            for commit in commits:
                await self._apply(worktree_path, commit)

            await self._run_git(worktree_path, ["push", self._remote, f"HEAD:refs/heads/{head}"])
            stdout, _ = await self._run_git(worktree_path, ["rev-parse", "HEAD"])
            return stdout.strip()
        finally:
            await self._remove_worktree(worktree_path)
            shutil.rmtree(scratch_dir, ignore_errors=True)

    async def _fetch_missing_commits(self, commits: Sequence[str]) -> None:
        missing = [commit for commit in commits if not await self._has_commit(self._repo_path, commit)]
        if not missing:
            return
        logger.debug("fetching %d commit(s) missing from %s", len(missing), self._repo_path)
        await self._run_git(self._repo_path, ["fetch", "--no-tags", self._remote, *missing])

    async def _apply(self, worktree_path: Path, commit: str) -> None:
        returncode, stdout, stderr = await self._run_git_result(
            worktree_path,
            ["cherry-pick", "--keep-redundant-commits", commit],
        )
        if returncode == 0:
            return

        files = await self._collect_conflict_files(worktree_path)
        await self._run_git(worktree_path, ["cherry-pick", "--abort"], check=False)
        detail = stderr.strip() or stdout.strip() or None
        raise CherryPickError(commit=commit, files=files, detail=detail)

    async def _remove_worktree(self, worktree_path: Path) -> None:
        await self._run_git(
            self._repo_path,
            ["worktree", "remove", "--force", str(worktree_path)],
            check=False,
        )
        await self._run_git(self._repo_path, ["worktree", "prune"], check=False)


__all__ = ["GitCherryPickReplayer"]
