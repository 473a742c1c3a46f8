"""End-to-end backports against a bare repository standing in for GitHub."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from ghbackport.core.adapters.git.cherry_pick import GitCherryPickReplayer
from ghbackport.core.backport import backport_pull_request
from ghbackport.core.errors import CherryPickError, NotFoundError, ReplayError
from ghbackport.core.events import RecordingDiagnosticSink
from ghbackport.core.models import BackportRequest, Repository
from tests.helpers.git_host import BareRepoGitHubHost
from tests.helpers.git_repo import branch_exists, git

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from tests.helpers.git_repo import OriginFixture

pytestmark = pytest.mark.requires_git

_REPO = Repository(owner="acme", name="widgets")


async def test_pull_request_is_backported_onto_release_branch(
    origin: OriginFixture, tmp_path: Path
) -> None:
    origin.push_branch("release", "main", {"CHANGELOG.md": "1.0\n"})
    origin.push_branch("feature", "main", {"a.txt": "a\n", "b.txt": "b\n", "c.txt": "c\n"})
    host = BareRepoGitHubHost(origin.origin)
    number = host.open_pull_request(title="Add letters", base="main", head="feature")
    work = origin.clone(tmp_path / "work")
    sink = RecordingDiagnosticSink()

    created = await backport_pull_request(
        BackportRequest(base="release", pull_request_number=number),
        repo=_REPO,
        host=host,
        replayer=GitCherryPickReplayer(work),
        diagnostics=sink,
    )

    pull_request = host.pull_requests[created]
    assert pull_request.base_ref == "release"
    assert pull_request.head_ref == f"backport-{number}-to-release"
    assert pull_request.title == "[Backport to release] Add letters"
    subjects = git(
        origin.origin, "log", "--format=%s", "--reverse", f"release..{pull_request.head_ref}"
    )
    assert subjects.splitlines() == ["Update a.txt", "Update b.txt", "Update c.txt"]
    assert sink.kinds[-1] == "PullRequestCreated"


async def test_conflicting_backport_leaves_no_branch_behind(
    origin: OriginFixture, tmp_path: Path
) -> None:
    origin.push_branch("release", "main", {"widget.py": "three\n"})
    origin.push_branch("base-widget", "main", {"widget.py": "one\n"})
    origin.push_branch("feature", "base-widget", {"a.txt": "a\n", "widget.py": "two\n"})
    host = BareRepoGitHubHost(origin.origin)
    number = host.open_pull_request(title="Tweak widget", base="base-widget", head="feature")
    work = origin.clone(tmp_path / "work")
    head = f"backport-{number}-to-release"
    seen_branch: list[bool] = []

    async def intercept(*, commits: Sequence[str]) -> None:
        seen_branch.append(branch_exists(origin.origin, head))

    with pytest.raises(ReplayError) as exc_info:
        await backport_pull_request(
            BackportRequest(base="release", pull_request_number=number),
            repo=_REPO,
            host=host,
            replayer=GitCherryPickReplayer(work),
            intercept=intercept,
        )

    assert seen_branch == [True]
    assert not branch_exists(origin.origin, head)
    assert isinstance(exc_info.value.__cause__, CherryPickError)
    assert exc_info.value.__cause__.files == ("widget.py",)
    assert list(host.pull_requests) == [number]


async def test_missing_base_branch_creates_nothing(origin: OriginFixture, tmp_path: Path) -> None:
    origin.push_branch("feature", "main", {"a.txt": "a\n"})
    host = BareRepoGitHubHost(origin.origin)
    number = host.open_pull_request(title="Add a", base="main", head="feature")
    refs_before = git(origin.origin, "for-each-ref", "--format=%(refname)")

    with pytest.raises(NotFoundError, match="Could not resolve branch release-9"):
        await backport_pull_request(
            BackportRequest(base="release-9", pull_request_number=number),
            repo=_REPO,
            host=host,
            replayer=GitCherryPickReplayer(origin.clone(tmp_path / "work")),
        )

    assert git(origin.origin, "for-each-ref", "--format=%(refname)") == refs_before
