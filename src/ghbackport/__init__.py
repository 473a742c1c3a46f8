"""Backport GitHub pull requests onto other branches."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from ghbackport.core.backport import backport_pull_request
from ghbackport.core.errors import (
    BackportError,
    CherryPickError,
    ConflictError,
    IncompleteCommitsError,
    NotFoundError,
    ReplayError,
    RollbackError,
    TransportError,
)
from ghbackport.core.models import BackportRequest, PullRequest, Repository

try:
    __version__ = version("ghbackport")
except PackageNotFoundError:
    # Source tree without installed metadata.
    __version__ = "dev"

__all__ = [
    "__version__",
    "BackportError",
    "BackportRequest",
    "CherryPickError",
    "ConflictError",
    "IncompleteCommitsError",
    "NotFoundError",
    "PullRequest",
    "ReplayError",
    "Repository",
    "RollbackError",
    "TransportError",
    "backport_pull_request",
]
