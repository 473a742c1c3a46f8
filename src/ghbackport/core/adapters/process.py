"""Subprocess adapter shared by the git and gh adapters.

Every external tool ghbackport drives (``git`` and ``gh``) goes through
``run_exec_capture``. Callers that treat a non-zero exit as a failure use
``run_exec_checked`` and get a ``ProcessExecutionError`` carrying a stable code.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path

logger = logging.getLogger(__name__)

PROCESS_TIMEOUT: Final = "PROCESS_TIMEOUT"
PROCESS_OS_ERROR: Final = "PROCESS_OS_ERROR"
PROCESS_NONZERO_EXIT: Final = "PROCESS_NONZERO_EXIT"


@dataclass(frozen=True)
class ProcessRetryPolicy:
    """How many times to start a command again after it could not run to completion.

    A non-zero exit is an answer from the tool, never a reason to retry.
    """

    max_attempts: int = 1
    delay_seconds: float = 0.0
    retry_on_timeout: bool = True
    retry_on_oserror: bool = True

    def normalized(self) -> ProcessRetryPolicy:
        return ProcessRetryPolicy(
            max_attempts=max(1, self.max_attempts),
            delay_seconds=max(0.0, self.delay_seconds),
            retry_on_timeout=self.retry_on_timeout,
            retry_on_oserror=self.retry_on_oserror,
        )

    def allows_retry(self, failure: BaseException, attempt: int) -> bool:
        if attempt >= self.max_attempts:
            return False
        match failure:
            case TimeoutError():
                return self.retry_on_timeout
            case OSError():
                return self.retry_on_oserror
            case _:
                return False


@dataclass(frozen=True)
class ProcessResult:
    """Exit status and raw output of a finished command."""

    returncode: int
    stdout: bytes
    stderr: bytes

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def stdout_text(self) -> str:
        return self.stdout.decode("utf-8", errors="replace")

    def stderr_text(self) -> str:
        return self.stderr.decode("utf-8", errors="replace")


class ProcessExecutionError(RuntimeError):
    """A command that timed out, could not start, or exited non-zero.

    ``code`` is one of ``PROCESS_TIMEOUT``, ``PROCESS_OS_ERROR`` or
    ``PROCESS_NONZERO_EXIT``.
    """

    def __init__(
        self,
        code: str,
        command: tuple[str, ...],
        *,
        returncode: int | None = None,
        timed_out: bool = False,
        attempts: int = 1,
        stdout: str | None = None,
        stderr: str | None = None,
        detail: str | None = None,
    ) -> None:
        self.code = code
        self.command = command
        self.returncode = returncode
        self.timed_out = timed_out
        self.attempts = attempts
        self.stdout = stdout
        self.stderr = stderr
        self.detail = detail
        super().__init__(str(self))

    @classmethod
    def from_result(
        cls,
        command: tuple[str, ...],
        result: ProcessResult,
        *,
        attempts: int,
    ) -> ProcessExecutionError:
        stderr = result.stderr_text().strip() or None
        stdout = result.stdout_text().strip() or None
        return cls(
            PROCESS_NONZERO_EXIT,
            command,
            returncode=result.returncode,
            attempts=attempts,
            stdout=stdout,
            stderr=stderr,
            detail=stderr or stdout or "process exited with a non-zero status",
        )

    def __str__(self) -> str:
        headline = f"[{self.code}] {' '.join(self.command)}"
        qualifiers = []
        if self.returncode is not None:
            qualifiers.append(f"(rc={self.returncode})")
        if self.timed_out:
            qualifiers.append("(timed out)")
        if self.attempts > 1:
            qualifiers.append(f"after {self.attempts} attempts")
        if qualifiers:
            headline = f"{headline} {' '.join(qualifiers)}"

        detail = self.detail or self.stderr or self.stdout
        return f"{headline}: {detail}" if detail else headline


async def spawn_exec(
    executable: str,
    *args: str,
    cwd: str | Path | None = None,
    env: Mapping[str, str] | None = None,
) -> asyncio.subprocess.Process:
    """Start ``executable`` with no stdin and piped stdout/stderr."""
    return await asyncio.create_subprocess_exec(
        executable,
        *args,
        cwd=None if cwd is None else str(cwd),
        env=None if env is None else dict(env),
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )


async def _communicate(
    process: asyncio.subprocess.Process,
    *,
    timeout: float | None = None,
) -> tuple[bytes, bytes]:
    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except TimeoutError:
        # Reap the killed child.
        with contextlib.suppress(ProcessLookupError):
            process.kill()
        with contextlib.suppress(ProcessLookupError):
            await process.communicate()
        raise
    return stdout or b"", stderr or b""


async def _run_once(
    executable: str,
    args: tuple[str, ...],
    *,
    cwd: str | Path | None,
    env: Mapping[str, str] | None,
    timeout: float | None,
) -> ProcessResult:
    process = await spawn_exec(executable, *args, cwd=cwd, env=env)
    stdout, stderr = await _communicate(process, timeout=timeout)
    returncode = process.returncode
    return ProcessResult(
        returncode=1 if returncode is None else returncode,
        stdout=stdout,
        stderr=stderr,
    )


async def _run_with_retries(
    executable: str,
    args: tuple[str, ...],
    *,
    cwd: str | Path | None,
    env: Mapping[str, str] | None,
    timeout: float | None,
    policy: ProcessRetryPolicy,
) -> tuple[ProcessResult, int]:
    attempt = 1
    while True:
        try:
            return await _run_once(executable, args, cwd=cwd, env=env, timeout=timeout), attempt
        except (TimeoutError, OSError) as exc:
            if not policy.allows_retry(exc, attempt):
                raise
            logger.debug(
                "%s %s failed on attempt %d (%s), retrying",
                executable,
                args[0] if args else "",
                attempt,
                type(exc).__name__,
            )
        attempt += 1
        if policy.delay_seconds:
            await asyncio.sleep(policy.delay_seconds)


async def run_exec_capture(
    executable: str,
    *args: str,
    cwd: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    timeout: float | None = None,
    retry_policy: ProcessRetryPolicy | None = None,
) -> ProcessResult:
    """Run a command and return its result whatever the exit status.

    Raises:
        TimeoutError: The last attempt exceeded ``timeout``.
        OSError: The last attempt could not start the executable.
    """
    policy = (retry_policy or ProcessRetryPolicy()).normalized()
    started = time.perf_counter()
    result, _ = await _run_with_retries(
        executable, args, cwd=cwd, env=env, timeout=timeout, policy=policy
    )
    logger.debug(
        "%s %s -> rc=%d in %.1fms",
        executable,
        " ".join(args[:3]),
        result.returncode,
        (time.perf_counter() - started) * 1000.0,
    )
    return result


async def run_exec_checked(
    executable: str,
    *args: str,
    cwd: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    timeout: float | None = None,
    retry_policy: ProcessRetryPolicy | None = None,
) -> ProcessResult:
    """Run a command and raise ``ProcessExecutionError`` unless it exits zero."""
    policy = (retry_policy or ProcessRetryPolicy()).normalized()
    command = (executable, *args)
    try:
        result, attempts = await _run_with_retries(
            executable, args, cwd=cwd, env=env, timeout=timeout, policy=policy
        )
    except TimeoutError as exc:
        raise ProcessExecutionError(
            PROCESS_TIMEOUT,
            command,
            timed_out=True,
            attempts=policy.max_attempts if policy.retry_on_timeout else 1,
            detail=f"no exit within {timeout}s",
        ) from exc
    except OSError as exc:
        raise ProcessExecutionError(
            PROCESS_OS_ERROR,
            command,
            attempts=policy.max_attempts if policy.retry_on_oserror else 1,
            detail=str(exc),
        ) from exc

    if not result.ok:
        raise ProcessExecutionError.from_result(command, result, attempts=attempts)
    return result


__all__ = [
    "PROCESS_NONZERO_EXIT",
    "PROCESS_OS_ERROR",
    "PROCESS_TIMEOUT",
    "ProcessExecutionError",
    "ProcessResult",
    "ProcessRetryPolicy",
    "run_exec_capture",
    "run_exec_checked",
    "spawn_exec",
]
