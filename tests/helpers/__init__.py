"""Test helpers package."""

from tests.helpers.fakes import FakeCommitReplayer, FakePullRequest, InMemoryGitHubHost

__all__ = [
    "FakeCommitReplayer",
    "FakePullRequest",
    "InMemoryGitHubHost",
]
