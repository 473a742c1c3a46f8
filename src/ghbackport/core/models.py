"""Value objects shared by the backport core and its adapters."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum

_REPO_PATTERN = re.compile(r"^(?P<owner>[A-Za-z0-9_.-]+)/(?P<name>[A-Za-z0-9_.-]+)$")


@dataclass(frozen=True, slots=True)
class Repository:
    """A GitHub repository addressed as ``owner/name``."""

    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @classmethod
    def parse(cls, value: str) -> Repository:
        """Parse ``owner/name``, tolerating a trailing ``.git``."""
        candidate = value.strip().removesuffix(".git")
        match = _REPO_PATTERN.match(candidate)
        if match is None:
            raise ValueError(f"Repository must look like owner/name, got {value!r}")
        return cls(owner=match["owner"], name=match["name"])

    def __str__(self) -> str:
        return self.full_name


@dataclass(frozen=True, slots=True)
class PullRequest:
    """Pull request metadata as reported by the host."""

    number: int
    title: str
    body: str
    base_ref: str
    head_ref: str
    url: str = ""
    commit_count: int | None = None


@dataclass(frozen=True, slots=True)
class BackportRequest:
    """Parameters of one backport operation.

    ``body``, ``head`` and ``title`` fall back to derived defaults when None.
    """

    base: str
    pull_request_number: int
    body: str | None = None
    head: str | None = None
    title: str | None = None


@dataclass(frozen=True, slots=True)
class ResolvedBackport:
    """A backport request with every default filled in."""

    base: str
    head: str
    body: str
    title: str


class BackportStage(StrEnum):
    """States of the backport state machine, in execution order."""

    RESOLVING_DEFAULTS = "resolving_defaults"
    RESOLVING_BASE = "resolving_base"
    FETCHING_COMMITS = "fetching_commits"
    CREATING_REFERENCE = "creating_reference"
    INTERCEPTING = "intercepting"
    CHERRY_PICKING = "cherry_picking"
    CREATING_PULL_REQUEST = "creating_pull_request"
    ROLLING_BACK = "rolling_back"
    COMPLETED = "completed"


__all__ = [
    "BackportRequest",
    "BackportStage",
    "PullRequest",
    "Repository",
    "ResolvedBackport",
]
