"""GitHub REST client implemented on top of ``gh api``."""

from __future__ import annotations

import json
import logging
import re
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from ghbackport.core.adapters.process import ProcessResult, ProcessRetryPolicy, run_exec_capture
from ghbackport.core.config import DEFAULT_GH_TIMEOUT_SECONDS
from ghbackport.core.errors import (
    BackportError,
    ConflictError,
    IncompleteCommitsError,
    NotFoundError,
    TransportError,
)
from ghbackport.core.models import PullRequest

if TYPE_CHECKING:
    from ghbackport.core.models import Repository

logger = logging.getLogger(__name__)

_HTTP_STATUS_PATTERN = re.compile(r"\(HTTP (\d{3})\)")


def _response_message(stdout: str) -> str | None:
    try:
        payload = json.loads(stdout)
    except (json.JSONDecodeError, ValueError):
        return None
    if not isinstance(payload, dict):
        return None
    message = payload.get("message")
    if not isinstance(message, str):
        return None
    errors = payload.get("errors")
    if isinstance(errors, list):
        details = [
            item.get("message") for item in errors if isinstance(item, dict) and item.get("message")
        ]
        if details:
            return f"{message} ({'; '.join(details)})"
    return message


def classify_gh_api_failure(result: ProcessResult, *, action: str) -> BackportError:
    """Map a failed ``gh api`` call to a classified error.

    gh reports the HTTP status on stderr as ``gh: <reason> (HTTP <status>)`` and
    prints the response body on stdout.
    """
    stderr = result.stderr_text().strip()
    status_match = _HTTP_STATUS_PATTERN.search(stderr)
    status = int(status_match[1]) if status_match else None
    detail = _response_message(result.stdout_text()) or stderr or f"gh exited with {result.returncode}"
    message = f"{action}: {detail}"

    match status:
        case 404:
            return NotFoundError(message)
        # GitHub answers 422 when deleting a reference that is already gone.
        case 422 if "does not exist" in detail.lower():
            return NotFoundError(message)
        case 409 | 422:
            return ConflictError(message)
        case _:
            return TransportError(message, status=status)


def _branch_path(ref: str) -> str:
    return quote(ref, safe="/")


class GhApiClient:
    """Branch and pull request endpoints reached through the gh CLI."""

    def __init__(
        self,
        gh_path: str = "gh",
        *,
        hostname: str = "github.com",
        timeout: float = DEFAULT_GH_TIMEOUT_SECONDS,
    ) -> None:
        self._gh_path = gh_path
        self._hostname = hostname
        self._timeout = timeout

    async def _api(self, *args: str, action: str) -> str:
        command_args = ("api", "--hostname", self._hostname, *args)
        try:
            result = await run_exec_capture(
                self._gh_path,
                *command_args,
                timeout=self._timeout,
                retry_policy=ProcessRetryPolicy(max_attempts=1),
            )
        except TimeoutError as exc:
            raise TransportError(f"{action}: gh api timed out after {self._timeout}s") from exc
        except OSError as exc:
            raise TransportError(f"{action}: {exc}") from exc

        if result.returncode != 0:
            error = classify_gh_api_failure(result, action=action)
            logger.debug("gh api failed [%s]: %s", error.code, error)
            raise error
        return result.stdout_text()

    async def _api_json(self, *args: str, action: str) -> dict[str, Any]:
        stdout = await self._api(*args, action=action)
        try:
            payload = json.loads(stdout)
        except json.JSONDecodeError as exc:
            raise TransportError(f"{action}: invalid JSON response: {exc}") from exc
        if not isinstance(payload, dict):
            raise TransportError(f"{action}: unexpected response {type(payload).__name__}")
        return payload

    async def fetch_ref_sha(self, repo: Repository, ref: str) -> str:
        payload = await self._api_json(
            f"repos/{repo.full_name}/git/ref/heads/{_branch_path(ref)}",
            action=f"Could not resolve branch {ref} in {repo}",
        )
        target = payload.get("object")
        sha = target.get("sha") if isinstance(target, dict) else None
        if not isinstance(sha, str) or not sha:
            raise TransportError(f"Branch {ref} in {repo} has no commit sha")
        return sha

    async def fetch_pull_request_commits(self, repo: Repository, number: int) -> list[str]:
        """List the commits of a pull request, oldest first.

        The commits endpoint stops at 250 entries, so the listing is checked
        against the count reported on the pull request itself.
        """
        pull_request = await self.fetch_pull_request(repo, number)
        stdout = await self._api(
            "--paginate",
            f"repos/{repo.full_name}/pulls/{number}/commits?per_page=100",
            "--jq",
            ".[].sha",
            action=f"Could not list commits of {repo}#{number}",
        )
        commits = [line.strip() for line in stdout.splitlines() if line.strip()]
        expected = pull_request.commit_count
        if expected is not None and len(commits) != expected:
            raise IncompleteCommitsError(number=number, listed=len(commits), expected=expected)
        return commits

    async def create_ref(self, repo: Repository, ref: str, sha: str) -> None:
        await self._api(
            "--method",
            "POST",
            f"repos/{repo.full_name}/git/refs",
            "-f",
            f"ref=refs/heads/{ref}",
            "-f",
            f"sha={sha}",
            action=f"Could not create branch {ref} at {sha} in {repo}",
        )

    async def delete_ref(self, repo: Repository, ref: str) -> None:
        await self._api(
            "--method",
            "DELETE",
            f"repos/{repo.full_name}/git/refs/heads/{_branch_path(ref)}",
            action=f"Could not delete branch {ref} in {repo}",
        )

    async def fetch_pull_request(self, repo: Repository, number: int) -> PullRequest:
        payload = await self._api_json(
            f"repos/{repo.full_name}/pulls/{number}",
            action=f"Could not fetch {repo}#{number}",
        )
        return parse_pull_request(payload)

    async def create_pull_request(
        self,
        repo: Repository,
        *,
        base: str,
        head: str,
        title: str,
        body: str,
    ) -> int:
        payload = await self._api_json(
            "--method",
            "POST",
            f"repos/{repo.full_name}/pulls",
            "-f",
            f"base={base}",
            "-f",
            f"head={head}",
            "-f",
            f"title={title}",
            "-f",
            f"body={body}",
            action=f"Could not open pull request {head} -> {base} in {repo}",
        )
        number = payload.get("number")
        if not isinstance(number, int):
            raise TransportError(f"Pull request for {head} in {repo} was created without a number")
        return number


def parse_pull_request(payload: dict[str, Any]) -> PullRequest:
    """Parse a REST pull request payload."""
    number = payload.get("number")
    if not isinstance(number, int):
        raise TransportError("Pull request payload has no number")
    base = payload.get("base")
    head = payload.get("head")
    commit_count = payload.get("commits")
    return PullRequest(
        number=number,
        title=payload.get("title") or "",
        body=payload.get("body") or "",
        base_ref=base.get("ref", "") if isinstance(base, dict) else "",
        head_ref=head.get("ref", "") if isinstance(head, dict) else "",
        url=payload.get("html_url") or "",
        commit_count=commit_count if isinstance(commit_count, int) else None,
    )


__all__ = ["GhApiClient", "classify_gh_api_failure", "parse_pull_request"]
