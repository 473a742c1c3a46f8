"""Backport the commits of a pull request onto another branch.

The operation is all-or-nothing from the caller's point of view: once the
working branch has been created, any later failure deletes it again before
the error is re-raised. Failures before that point leave nothing behind.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from ghbackport.core.errors import BackportError, NotFoundError, ReplayError, RollbackError
from ghbackport.core.events import (
    BackportStarted,
    CommitsCherryPicked,
    LoggingDiagnosticSink,
    PullRequestCreated,
    ReferenceCreated,
    ReferenceRollbackFailed,
    ReferenceRolledBack,
    new_operation_id,
)
from ghbackport.core.models import BackportStage, ResolvedBackport

if TYPE_CHECKING:
    from collections.abc import Sequence

    from ghbackport.core.events import DiagnosticSink
    from ghbackport.core.models import BackportRequest, Repository
    from ghbackport.core.ports import CommitReplayer, GitHubHost, InterceptHook

logger = logging.getLogger(__name__)


def default_body(number: int) -> str:
    return f"Backport #{number}."


def default_head(number: int, base: str) -> str:
    return f"backport-{number}-to-{base}"


def default_title(base: str, original_title: str) -> str:
    return f"[Backport to {base}] {original_title}"


async def resolve_backport_defaults(
    request: BackportRequest,
    *,
    repo: Repository,
    host: GitHubHost,
) -> ResolvedBackport:
    """Fill in body, head and title.

    The source pull request is only read when no title was given.
    """
    number = request.pull_request_number
    title = request.title
    if title is None:
        original = await host.fetch_pull_request(repo, number)
        title = default_title(request.base, original.title)

    return ResolvedBackport(
        base=request.base,
        head=request.head if request.head is not None else default_head(number, request.base),
        body=request.body if request.body is not None else default_body(number),
        title=title,
    )


class _BackportRun:
    """One invocation of the backport state machine."""

    def __init__(
        self,
        *,
        repo: Repository,
        host: GitHubHost,
        replayer: CommitReplayer,
        intercept: InterceptHook | None,
        diagnostics: DiagnosticSink,
    ) -> None:
        self.repo = repo
        self.host = host
        self.replayer = replayer
        self.intercept = intercept
        self.diagnostics = diagnostics
        self.operation_id = new_operation_id()
        self.stage = BackportStage.RESOLVING_DEFAULTS

    def _enter(self, stage: BackportStage) -> None:
        logger.debug("[%s] %s -> %s", self.operation_id, self.stage, stage)
        self.stage = stage

    async def run(self, request: BackportRequest) -> int:
        try:
            resolved = await resolve_backport_defaults(request, repo=self.repo, host=self.host)
            self.diagnostics.emit(
                BackportStarted(
                    operation_id=self.operation_id,
                    repo=self.repo.full_name,
                    pull_request_number=request.pull_request_number,
                    base=resolved.base,
                    head=resolved.head,
                    title=resolved.title,
                    body=resolved.body,
                )
            )

            self._enter(BackportStage.RESOLVING_BASE)
            base_sha = await self.host.fetch_ref_sha(self.repo, resolved.base)

            self._enter(BackportStage.FETCHING_COMMITS)
            commits = await self.host.fetch_pull_request_commits(
                self.repo, request.pull_request_number
            )

            self._enter(BackportStage.CREATING_REFERENCE)
            await self.host.create_ref(self.repo, resolved.head, base_sha)
            self.diagnostics.emit(
                ReferenceCreated(operation_id=self.operation_id, ref=resolved.head, sha=base_sha)
            )

            number = await self._publish(resolved, commits)
        except Exception as exc:
            exc.add_note(f"backport of #{request.pull_request_number} failed while {self.stage}")
            raise

        self._enter(BackportStage.COMPLETED)
        return number

    async def _publish(self, resolved: ResolvedBackport, commits: Sequence[str]) -> int:
        """Fill the working branch and open the pull request, rolling back on failure."""
        try:
            if self.intercept is not None:
                self._enter(BackportStage.INTERCEPTING)
                await self.intercept(commits=commits)

            self._enter(BackportStage.CHERRY_PICKING)
            head_sha = await self._cherry_pick(resolved, commits)
            self.diagnostics.emit(
                CommitsCherryPicked(
                    operation_id=self.operation_id,
                    head=resolved.head,
                    commits=tuple(commits),
                    head_sha=head_sha,
                )
            )

            self._enter(BackportStage.CREATING_PULL_REQUEST)
            number = await self.host.create_pull_request(
                self.repo,
                base=resolved.base,
                head=resolved.head,
                title=resolved.title,
                body=resolved.body,
            )
        except Exception as exc:
            await self._roll_back(resolved.head, exc)
            raise
        except asyncio.CancelledError as exc:
            # The branch is deleted even if the caller cancels again meanwhile.
            await asyncio.shield(self._roll_back(resolved.head, exc))
            raise

        self.diagnostics.emit(
            PullRequestCreated(
                operation_id=self.operation_id,
                number=number,
                base=resolved.base,
                head=resolved.head,
            )
        )
        return number

    async def _cherry_pick(self, resolved: ResolvedBackport, commits: Sequence[str]) -> str:
        try:
            return await self.replayer.cherry_pick(self.repo, commits, resolved.head)
        except Exception as exc:
            logger.debug("[%s] commits could not be cherry-picked: %s", self.operation_id, exc)
            raise ReplayError(commits=commits, base=resolved.base) from exc

    async def _roll_back(self, head: str, error: BaseException) -> None:
        """Delete the working branch. Never raises; a cleanup failure is attached to ``error``."""
        failed_stage = self.stage
        self._enter(BackportStage.ROLLING_BACK)
        reason = f"{type(error).__name__} while {failed_stage}"
        try:
            await self.host.delete_ref(self.repo, head)
        except NotFoundError:
            self.diagnostics.emit(
                ReferenceRolledBack(
                    operation_id=self.operation_id,
                    ref=head,
                    reason=reason,
                    already_absent=True,
                )
            )
        except Exception as rollback_exc:
            rollback_error = RollbackError(head=head, cause=rollback_exc)
            rollback_error.__cause__ = rollback_exc
            logger.warning("[%s] %s", self.operation_id, rollback_error)
            self.diagnostics.emit(
                ReferenceRollbackFailed(
                    operation_id=self.operation_id,
                    ref=head,
                    reason=reason,
                    error=str(rollback_exc),
                )
            )
            error.add_note(str(rollback_error))
            if isinstance(error, BackportError):
                error.rollback_error = rollback_error
        else:
            self.diagnostics.emit(
                ReferenceRolledBack(operation_id=self.operation_id, ref=head, reason=reason)
            )
        finally:
            self.stage = failed_stage


async def backport_pull_request(
    request: BackportRequest,
    *,
    repo: Repository,
    host: GitHubHost,
    replayer: CommitReplayer,
    intercept: InterceptHook | None = None,
    diagnostics: DiagnosticSink | None = None,
) -> int:
    """Backport a pull request onto ``request.base`` and return the new pull request number.

    Args:
        request: Target branch, source pull request number and optional overrides.
        repo: Repository holding both pull requests.
        host: Branch and pull request endpoints of the code host.
        replayer: Applies the source commits onto the working branch.
        intercept: Testing seam awaited with the fetched commits after the
            working branch is created and before cherry-picking starts.
        diagnostics: Receives step events. Defaults to a logging sink.

    Raises:
        NotFoundError: The base branch or the source pull request does not exist.
        ConflictError: The working branch or the pull request already exists.
        ReplayError: The commits could not be cherry-picked onto the base branch.
        TransportError: The host could not be reached or refused the request.
    """
    run = _BackportRun(
        repo=repo,
        host=host,
        replayer=replayer,
        intercept=intercept,
        diagnostics=diagnostics or LoggingDiagnosticSink(),
    )
    return await run.run(request)


__all__ = [
    "backport_pull_request",
    "default_body",
    "default_head",
    "default_title",
    "resolve_backport_defaults",
]
