"""The ``backport`` command."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import click
from pydantic import ValidationError

from ghbackport.cli.log_setup import configure_logging
from ghbackport.core.adapters.git.cherry_pick import GitCherryPickReplayer
from ghbackport.core.adapters.git.operations import is_git_repository
from ghbackport.core.adapters.github.api_client import GhApiClient
from ghbackport.core.adapters.github.gh_cli import (
    PreflightError,
    check_remote_repository,
    check_repo_view_host,
    run_preflight_checks,
)
from ghbackport.core.backport import backport_pull_request
from ghbackport.core.config import BackportConfig
from ghbackport.core.errors import BackportError
from ghbackport.core.models import BackportRequest, Repository
from ghbackport.core.paths import get_config_path

EXIT_BACKPORT_FAILED = 1
EXIT_PREFLIGHT_FAILED = 2


async def _run_backport(
    request: BackportRequest,
    *,
    repo: Repository | None,
    repo_path: Path,
    settings: BackportConfig,
) -> tuple[tuple[Repository, int] | None, PreflightError | None]:
    cli_info, repo_view, error = await run_preflight_checks(
        str(repo_path),
        gh_path=settings.github.gh_path,
        hostname=settings.github.hostname,
        detect_repo=repo is None,
    )
    if error is not None:
        return None, error
    assert cli_info is not None and cli_info.path is not None

    if repo is None:
        assert repo_view is not None
        host_error = check_repo_view_host(repo_view, settings.github.hostname)
        if host_error is not None:
            return None, host_error
        repo = Repository(owner=repo_view.owner, name=repo_view.name)

    remote_error = await check_remote_repository(
        str(repo_path),
        remote=settings.git.remote,
        hostname=settings.github.hostname,
        full_name=repo.full_name,
    )
    if remote_error is not None:
        return None, remote_error

    host = GhApiClient(
        cli_info.path,
        hostname=settings.github.hostname,
        timeout=settings.github.timeout_seconds,
    )
    replayer = GitCherryPickReplayer(
        repo_path,
        remote=settings.git.remote,
        worktree_base=settings.git.worktree_base,
    )
    number = await backport_pull_request(request, repo=repo, host=host, replayer=replayer)
    return (repo, number), None


def _report_failure(exc: BackportError) -> None:
    click.secho(f"[{exc.code}] {exc}", fg="red", bold=True, err=True)
    for note in getattr(exc, "__notes__", ()):
        click.echo(f"  {note}", err=True)
    if exc.__cause__ is not None:
        click.echo(f"  Cause:     {exc.__cause__}", err=True)


@click.command()
@click.argument("pull_request", type=click.IntRange(min=1))
@click.option("--base", "-b", required=True, help="Branch to backport onto.")
@click.option(
    "--repo",
    "-R",
    "repo_name",
    default=None,
    help="Repository as owner/name (default: detected with `gh repo view`).",
)
@click.option("--head", default=None, help="Branch to create (default: backport-<PR>-to-<BASE>).")
@click.option("--title", default=None, help="Title of the backport pull request.")
@click.option("--body", default=None, help="Body of the backport pull request.")
@click.option(
    "--repo-path",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=Path("."),
    show_default=True,
    help="Local clone used to cherry-pick the commits.",
)
@click.option("--verbose", "-v", is_flag=True, help="Log every step.")
def backport(
    pull_request: int,
    base: str,
    repo_name: str | None,
    head: str | None,
    title: str | None,
    body: str | None,
    repo_path: Path,
    verbose: bool,
) -> None:
    """Backport pull request PULL_REQUEST onto branch BASE."""
    try:
        settings = BackportConfig.load()
    except (OSError, ValueError, ValidationError) as exc:
        click.secho(f"Invalid config at {get_config_path()}: {exc}", fg="red", err=True)
        sys.exit(EXIT_PREFLIGHT_FAILED)

    configure_logging(logging.DEBUG if verbose else settings.logging.level_number)

    try:
        repo = Repository.parse(repo_name) if repo_name else None
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="--repo") from exc

    repo_path = repo_path.resolve()
    if not is_git_repository(repo_path):
        click.secho(f"Not a git repository: {repo_path}", fg="red", err=True)
        click.echo("  Hint:      pass --repo-path pointing at a clone of the repository", err=True)
        sys.exit(EXIT_PREFLIGHT_FAILED)

    request = BackportRequest(
        base=base,
        pull_request_number=pull_request,
        body=body,
        head=head,
        title=title,
    )
    try:
        outcome, error = asyncio.run(
            _run_backport(request, repo=repo, repo_path=repo_path, settings=settings)
        )
    except BackportError as exc:
        _report_failure(exc)
        sys.exit(EXIT_BACKPORT_FAILED)

    if error is not None:
        click.secho(f"[{error.code}] {error.message}", fg="red", err=True)
        click.echo(f"  Hint:      {error.hint}", err=True)
        sys.exit(EXIT_PREFLIGHT_FAILED)

    assert outcome is not None
    created_repo, number = outcome
    click.secho(f"Created backport pull request #{number}", fg="green", bold=True)
    click.echo(f"  URL:       https://{settings.github.hostname}/{created_repo}/pull/{number}")
