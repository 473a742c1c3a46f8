"""Classified errors raised by backport operations and their adapters."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, ClassVar, Final

if TYPE_CHECKING:
    from collections.abc import Sequence

NOT_FOUND: Final = "NOT_FOUND"
CONFLICT: Final = "CONFLICT"
REPLAY_FAILED: Final = "REPLAY_FAILED"
ROLLBACK_FAILED: Final = "ROLLBACK_FAILED"
TRANSPORT_FAILED: Final = "TRANSPORT_FAILED"
CHERRY_PICK_FAILED: Final = "CHERRY_PICK_FAILED"
COMMITS_INCOMPLETE: Final = "COMMITS_INCOMPLETE"


class BackportError(RuntimeError):
    """Base class for every failure surfaced to backport callers.

    ``code`` is machine-readable. ``rollback_error`` is set when the branch
    cleanup that followed this error failed too.
    """

    code: ClassVar[str] = "BACKPORT_FAILED"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
        self.rollback_error: RollbackError | None = None


class NotFoundError(BackportError):
    """A branch or pull request does not exist."""

    code: ClassVar[str] = NOT_FOUND


class ConflictError(BackportError):
    """Creating a branch or pull request collided with existing state."""

    code: ClassVar[str] = CONFLICT


class TransportError(BackportError):
    """Connectivity, authentication or rate-limit failure talking to the host."""

    code: ClassVar[str] = TRANSPORT_FAILED

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class IncompleteCommitsError(BackportError):
    """The host listed fewer or more commits than the pull request holds."""

    code: ClassVar[str] = COMMITS_INCOMPLETE

    def __init__(self, *, number: int, listed: int, expected: int) -> None:
        self.number = number
        self.listed = listed
        self.expected = expected
        super().__init__(
            f"Pull request #{number} has {expected} commits but {listed} were listed"
        )


class ReplayError(BackportError):
    """Commits could not be applied on top of the target branch."""

    code: ClassVar[str] = REPLAY_FAILED

    def __init__(self, *, commits: Sequence[str], base: str) -> None:
        self.commits = tuple(commits)
        self.base = base
        super().__init__(
            f"Commits {json.dumps(list(self.commits))} could not be cherry-picked on top of {base}"
        )


class RollbackError(BackportError):
    """Deleting the working branch after a failure did not succeed."""

    code: ClassVar[str] = ROLLBACK_FAILED

    def __init__(self, *, head: str, cause: BaseException) -> None:
        self.head = head
        self.cause = cause
        super().__init__(f"Could not delete branch {head} during rollback: {cause}")


class CherryPickError(BackportError):
    """A single commit could not be cherry-picked cleanly."""

    code: ClassVar[str] = CHERRY_PICK_FAILED

    def __init__(
        self,
        *,
        commit: str,
        files: Sequence[str] = (),
        detail: str | None = None,
    ) -> None:
        self.commit = commit
        self.files = tuple(files)
        self.detail = detail
        message = f"Cherry-pick of {commit} failed"
        if self.files:
            message = f"{message} with conflicts in {', '.join(self.files)}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


__all__ = [
    "CHERRY_PICK_FAILED",
    "COMMITS_INCOMPLETE",
    "CONFLICT",
    "NOT_FOUND",
    "REPLAY_FAILED",
    "ROLLBACK_FAILED",
    "TRANSPORT_FAILED",
    "BackportError",
    "CherryPickError",
    "ConflictError",
    "IncompleteCommitsError",
    "NotFoundError",
    "ReplayError",
    "RollbackError",
    "TransportError",
]
