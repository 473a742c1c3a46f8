"""Preflight checks for the gh CLI and detection of the repository behind a clone.

Nothing here raises: each check reports problems as a ``PreflightError`` with a
code and a hint so the CLI can stop before touching any branch.
"""

from __future__ import annotations

import json
import re
import shutil
from dataclasses import dataclass
from typing import Any, Final
from urllib.parse import urlparse

from ghbackport.core.adapters.process import run_exec_capture

GH_CLI_NOT_AVAILABLE: Final = "GH_CLI_NOT_AVAILABLE"
GH_AUTH_REQUIRED: Final = "GH_AUTH_REQUIRED"
GH_REPO_ACCESS_DENIED: Final = "GH_REPO_ACCESS_DENIED"
GH_REPO_METADATA_INVALID: Final = "GH_REPO_METADATA_INVALID"
GH_HOST_MISMATCH: Final = "GH_HOST_MISMATCH"
GH_REMOTE_MISMATCH: Final = "GH_REMOTE_MISMATCH"

_VERSION_TIMEOUT_SECONDS = 10
_QUERY_TIMEOUT_SECONDS = 30
_REPO_VIEW_FIELDS = "name,owner,url"
_ACCESS_DENIED_MARKERS = ("not found", "permission", "access")
# user@host:owner/name.git
_SCP_REMOTE_PATTERN = re.compile(r"^(?:[\w.-]+@)?(?P<host>[\w.-]+):(?P<path>[^/].*)$")


@dataclass(frozen=True, slots=True)
class GhCliInfo:
    """Where gh lives and which version answered ``gh --version``."""

    available: bool
    path: str | None
    version: str | None


@dataclass(frozen=True, slots=True)
class GhAuthStatus:
    authenticated: bool
    username: str | None
    error: str | None


@dataclass(frozen=True, slots=True)
class GhRepoView:
    """Repository a local clone points to, as reported by ``gh repo view``."""

    host: str
    owner: str
    name: str
    full_name: str


@dataclass(frozen=True, slots=True)
class PreflightError:
    code: str
    message: str
    hint: str


def _parse_version(output: str) -> str | None:
    # "gh version 2.40.0 (2023-12-07)"
    first_line = output.strip().splitlines()[0] if output.strip() else ""
    words = first_line.split()
    return words[2] if len(words) > 2 else None


async def resolve_gh_cli(gh_path: str | None = None) -> GhCliInfo:
    """Locate gh (``gh_path`` or PATH) and confirm it runs."""
    executable = gh_path or shutil.which("gh")
    if executable is None:
        return GhCliInfo(available=False, path=None, version=None)

    try:
        result = await run_exec_capture(executable, "--version", timeout=_VERSION_TIMEOUT_SECONDS)
    except (TimeoutError, OSError):
        return GhCliInfo(available=False, path=executable, version=None)
    if not result.ok:
        return GhCliInfo(available=False, path=executable, version=None)
    return GhCliInfo(available=True, path=executable, version=_parse_version(result.stdout_text()))


def parse_auth_username(output: str) -> str | None:
    """Extract the account name from ``gh auth status`` output."""
    # "✓ Logged in to github.com account octocat (keyring)"
    for line in output.splitlines():
        if "Logged in to" not in line or "account" not in line:
            continue
        tokens = line.split("account", 1)[1].split()
        if tokens:
            return tokens[0].rstrip("(").strip()
    return None


async def run_gh_auth_status(gh_path: str, hostname: str = "github.com") -> GhAuthStatus:
    try:
        result = await run_exec_capture(
            gh_path,
            "auth",
            "status",
            "--hostname",
            hostname,
            timeout=_QUERY_TIMEOUT_SECONDS,
        )
    except TimeoutError:
        return GhAuthStatus(authenticated=False, username=None, error="Auth check timed out")
    except OSError as exc:
        return GhAuthStatus(authenticated=False, username=None, error=str(exc))

    if not result.ok:
        error = result.stderr_text().strip() or "Authentication required"
        return GhAuthStatus(authenticated=False, username=None, error=error)
    # gh prints the status on stderr in some versions and stdout in others.
    username = parse_auth_username(result.stdout_text() + result.stderr_text())
    return GhAuthStatus(authenticated=True, username=username, error=None)


async def run_gh_repo_view(gh_path: str, repo_path: str) -> tuple[dict[str, Any] | None, str | None]:
    """Return ``(metadata, None)`` for the repository of ``repo_path`` or ``(None, error)``."""
    try:
        result = await run_exec_capture(
            gh_path,
            "repo",
            "view",
            "--json",
            _REPO_VIEW_FIELDS,
            cwd=repo_path,
            timeout=_QUERY_TIMEOUT_SECONDS,
        )
    except TimeoutError:
        return None, "Repo view timed out"
    except OSError as exc:
        return None, str(exc)

    if not result.ok:
        return None, result.stderr_text().strip() or "Failed to get repo info"
    try:
        return json.loads(result.stdout_text()), None
    except json.JSONDecodeError as exc:
        return None, f"Invalid JSON response: {exc}"


def parse_gh_repo_view(raw: dict[str, Any]) -> GhRepoView | PreflightError:
    """Normalize ``gh repo view --json`` output."""
    match raw:
        case {"owner": {"login": str(owner)}, "name": str(name)} if owner and name:
            pass
        case _:
            return PreflightError(
                code=GH_REPO_METADATA_INVALID,
                message="Missing owner or name in repo metadata",
                hint="Check that the repository exists and that you can read it.",
            )

    url = raw.get("url")
    host = (urlparse(url).netloc if isinstance(url, str) else "") or "github.com"
    return GhRepoView(
        host=host,
        owner=owner,
        name=name,
        full_name=f"{owner}/{name}",
    )


def _repo_view_failure(error: str | None) -> PreflightError:
    lowered = (error or "").lower()
    if any(marker in lowered for marker in _ACCESS_DENIED_MARKERS):
        return PreflightError(
            code=GH_REPO_ACCESS_DENIED,
            message=error or "Cannot access repository",
            hint="Verify you have access to this repository on GitHub",
        )
    return PreflightError(
        code=GH_REPO_METADATA_INVALID,
        message=error or "Failed to get repository metadata",
        hint="Pass --repo owner/name or run from a clone linked to GitHub",
    )


async def run_preflight_checks(
    repo_path: str,
    *,
    gh_path: str | None = None,
    hostname: str = "github.com",
    detect_repo: bool = True,
) -> tuple[GhCliInfo | None, GhRepoView | None, PreflightError | None]:
    """Check gh is installed and authenticated, then optionally detect the repository.

    Returns ``(cli_info, repo_view, None)`` on success, where ``repo_view`` is
    None when ``detect_repo`` is False, or ``(None, None, error)`` on failure.
    """
    cli_info = await resolve_gh_cli(gh_path)
    if not cli_info.available or cli_info.path is None:
        return None, None, PreflightError(
            code=GH_CLI_NOT_AVAILABLE,
            message="GitHub CLI (gh) is not installed or not in PATH",
            hint="Install gh from https://cli.github.com/ or set github.gh_path in the config",
        )

    auth = await run_gh_auth_status(cli_info.path, hostname)
    if not auth.authenticated:
        return None, None, PreflightError(
            code=GH_AUTH_REQUIRED,
            message=auth.error or f"Not authenticated with {hostname}",
            hint=f"Run `gh auth login --hostname {hostname}` to authenticate",
        )

    if not detect_repo:
        return cli_info, None, None

    raw, error = await run_gh_repo_view(cli_info.path, repo_path)
    if raw is None:
        return None, None, _repo_view_failure(error)
    view = parse_gh_repo_view(raw)
    if isinstance(view, PreflightError):
        return None, None, view
    return cli_info, view, None


def check_repo_view_host(view: GhRepoView, hostname: str) -> PreflightError | None:
    """Reject a detected repository that lives on a host other than ``hostname``."""
    if view.host.lower() == hostname.lower():
        return None
    return PreflightError(
        code=GH_HOST_MISMATCH,
        message=f"{view.full_name} is hosted on {view.host}, not {hostname}",
        hint=f'Set github.hostname = "{view.host}" in the config',
    )


def parse_remote_url(url: str) -> tuple[str, str] | None:
    """Return ``(host, owner/name)`` for a GitHub style remote URL, or None."""
    url = url.strip()
    if "://" in url:
        parsed = urlparse(url)
        host, path = parsed.hostname or "", parsed.path
    else:
        match = _SCP_REMOTE_PATTERN.match(url)
        if match is None:
            return None
        host, path = match["host"], match["path"]

    parts = path.strip("/").removesuffix(".git").split("/")
    if not host or len(parts) != 2 or not all(parts):
        return None
    host = host.lower()
    # SSH over the HTTPS port.
    if host == "ssh.github.com":
        host = "github.com"
    return host, "/".join(parts)


async def check_remote_repository(
    repo_path: str,
    *,
    remote: str,
    hostname: str,
    full_name: str,
) -> PreflightError | None:
    """Check that ``remote`` of the clone at ``repo_path`` is ``full_name`` on ``hostname``.

    The working branch is created through the API but filled by pushing to
    this remote, so both must address the same repository.
    """
    hint = f"Point --repo-path at a clone of {full_name} or set git.remote to its remote"
    try:
        result = await run_exec_capture(
            "git",
            "remote",
            "get-url",
            remote,
            cwd=repo_path,
            timeout=_QUERY_TIMEOUT_SECONDS,
        )
    except (TimeoutError, OSError) as exc:
        return PreflightError(
            code=GH_REMOTE_MISMATCH,
            message=f"Could not read remote {remote}: {exc}",
            hint=hint,
        )

    if not result.ok:
        return PreflightError(
            code=GH_REMOTE_MISMATCH,
            message=result.stderr_text().strip() or f"No remote named {remote}",
            hint=hint,
        )
    url = result.stdout_text().strip()
    target = parse_remote_url(url)
    expected = (hostname.lower(), full_name.lower())
    if target is None or (target[0], target[1].lower()) != expected:
        return PreflightError(
            code=GH_REMOTE_MISMATCH,
            message=f"Remote {remote} points to {url}, not {hostname}/{full_name}",
            hint=hint,
        )
    return None


__all__ = [
    "GH_AUTH_REQUIRED",
    "GH_CLI_NOT_AVAILABLE",
    "GH_HOST_MISMATCH",
    "GH_REMOTE_MISMATCH",
    "GH_REPO_ACCESS_DENIED",
    "GH_REPO_METADATA_INVALID",
    "GhAuthStatus",
    "GhCliInfo",
    "GhRepoView",
    "PreflightError",
    "check_remote_repository",
    "check_repo_view_host",
    "parse_auth_username",
    "parse_gh_repo_view",
    "parse_remote_url",
    "resolve_gh_cli",
    "run_gh_auth_status",
    "run_gh_repo_view",
    "run_preflight_checks",
]
