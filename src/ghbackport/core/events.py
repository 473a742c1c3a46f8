"""Diagnostic events emitted while a backport runs, and sinks that receive them."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Protocol, TypeVar
from uuid import uuid4

if TYPE_CHECKING:
    from collections.abc import Sequence

E = TypeVar("E")


def _new_event_id() -> str:
    return uuid4().hex


def new_operation_id() -> str:
    """Return a short id used to attribute events to one backport invocation."""
    return uuid4().hex[:12]


def _now() -> datetime:
    return datetime.now(UTC)


class DiagnosticEvent(Protocol):
    """Base protocol for all diagnostic events."""

    @property
    def operation_id(self) -> str: ...

    @property
    def event_id(self) -> str: ...

    @property
    def occurred_at(self) -> datetime: ...


class DiagnosticSink(Protocol):
    """Receives events for operational visibility. Never affects control flow."""

    def emit(self, event: DiagnosticEvent) -> None: ...


@dataclass(frozen=True)
class BackportStarted:
    operation_id: str
    repo: str
    pull_request_number: int
    base: str
    head: str
    title: str
    body: str
    event_id: str = field(default_factory=_new_event_id)
    occurred_at: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class ReferenceCreated:
    operation_id: str
    ref: str
    sha: str
    event_id: str = field(default_factory=_new_event_id)
    occurred_at: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class CommitsCherryPicked:
    operation_id: str
    head: str
    commits: tuple[str, ...]
    head_sha: str
    event_id: str = field(default_factory=_new_event_id)
    occurred_at: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class PullRequestCreated:
    operation_id: str
    number: int
    base: str
    head: str
    event_id: str = field(default_factory=_new_event_id)
    occurred_at: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class ReferenceRolledBack:
    operation_id: str
    ref: str
    reason: str
    already_absent: bool = False
    event_id: str = field(default_factory=_new_event_id)
    occurred_at: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class ReferenceRollbackFailed:
    operation_id: str
    ref: str
    reason: str
    error: str
    event_id: str = field(default_factory=_new_event_id)
    occurred_at: datetime = field(default_factory=_now)


def describe_event(event: DiagnosticEvent) -> str:
    """Render an event as a single human-readable line."""
    match event:
        case BackportStarted():
            return (
                f"starting backport of {event.repo}#{event.pull_request_number} "
                f"onto {event.base} as {event.head}"
            )
        case ReferenceCreated():
            return f"reference {event.ref} created at {event.sha}"
        case CommitsCherryPicked():
            return f"{len(event.commits)} commit(s) cherry-picked onto {event.head}: {event.head_sha}"
        case PullRequestCreated():
            return f"pull request #{event.number} created ({event.head} -> {event.base})"
        case ReferenceRolledBack():
            suffix = " (already absent)" if event.already_absent else ""
            return f"reference {event.ref} rolled back after {event.reason}{suffix}"
        case ReferenceRollbackFailed():
            return f"rollback of {event.ref} failed after {event.reason}: {event.error}"
        case _:
            return type(event).__name__


class LoggingDiagnosticSink:
    """Forward events to a stdlib logger, prefixed with their operation id."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger("ghbackport.backport")

    def emit(self, event: DiagnosticEvent) -> None:
        level = logging.WARNING if isinstance(event, ReferenceRollbackFailed) else logging.DEBUG
        self._logger.log(level, "[%s] %s", event.operation_id, describe_event(event))


class RecordingDiagnosticSink:
    """Keep events in memory, in emission order."""

    def __init__(self) -> None:
        self.events: list[DiagnosticEvent] = []

    def emit(self, event: DiagnosticEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: type[E]) -> list[E]:
        return [event for event in self.events if isinstance(event, event_type)]

    @property
    def kinds(self) -> Sequence[str]:
        return [type(event).__name__ for event in self.events]


__all__ = [
    "BackportStarted",
    "CommitsCherryPicked",
    "DiagnosticEvent",
    "DiagnosticSink",
    "LoggingDiagnosticSink",
    "PullRequestCreated",
    "RecordingDiagnosticSink",
    "ReferenceCreated",
    "ReferenceRollbackFailed",
    "ReferenceRolledBack",
    "describe_event",
    "new_operation_id",
]
