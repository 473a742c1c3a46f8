"""Port definitions for the collaborators of the backport core."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Sequence

    from ghbackport.core.models import PullRequest, Repository


class GitHubHost(Protocol):
    """Port for the branch and pull request endpoints of the code host.

    Implementations raise ``NotFoundError``, ``ConflictError`` or
    ``TransportError`` from ``ghbackport.core.errors``.
    """

    async def fetch_ref_sha(self, repo: Repository, ref: str) -> str:
        """Return the commit a branch points to."""
        ...

    async def fetch_pull_request_commits(self, repo: Repository, number: int) -> list[str]:
        """Return the commits of a pull request, oldest first."""
        ...

    async def create_ref(self, repo: Repository, ref: str, sha: str) -> None:
        """Create branch ``ref`` pointing at ``sha``."""
        ...

    async def delete_ref(self, repo: Repository, ref: str) -> None:
        """Delete branch ``ref``."""
        ...

    async def fetch_pull_request(self, repo: Repository, number: int) -> PullRequest:
        """Return pull request metadata."""
        ...

    async def create_pull_request(
        self,
        repo: Repository,
        *,
        base: str,
        head: str,
        title: str,
        body: str,
    ) -> int:
        """Open a pull request and return its number."""
        ...


class CommitReplayer(Protocol):
    """Port for applying commits, in order, on top of a branch."""

    async def cherry_pick(self, repo: Repository, commits: Sequence[str], head: str) -> str:
        """Apply ``commits`` onto ``head`` and return the new tip."""
        ...


class InterceptHook(Protocol):
    """Testing seam invoked after the working branch exists and before cherry-picking."""

    async def __call__(self, *, commits: Sequence[str]) -> None: ...


__all__ = ["CommitReplayer", "GitHubHost", "InterceptHook"]
