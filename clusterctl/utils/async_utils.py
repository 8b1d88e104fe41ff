"""Async helpers for subprocess execution and bounded fan-out.

Use `run_subprocess()` / `run_shell()` instead of `subprocess.run()` inside
coroutines, and `gather_bounded()` to probe many nodes without opening an
unbounded number of SSH sessions at once.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


# =============================================================================
# Subprocess Execution
# =============================================================================


class SubprocessError(Exception):
    """Error raised when a subprocess cannot be run or exits non-zero with check=True."""

    def __init__(
        self,
        message: str,
        returncode: int | None = None,
        stdout: str = "",
        stderr: str = "",
    ):
        super().__init__(message)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


class SubprocessTimeoutError(SubprocessError):
    """Error raised when a subprocess exceeds its timeout."""


@dataclass
class SubprocessResult:
    """Captured result of one subprocess run."""

    returncode: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.returncode == 0


async def _communicate(
    proc: asyncio.subprocess.Process,
    timeout: float,
    label: str,
) -> SubprocessResult:
    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        raise SubprocessTimeoutError(f"{label} timed out after {timeout}s", returncode=-1)

    return SubprocessResult(
        returncode=proc.returncode or 0,
        stdout=stdout_bytes.decode("utf-8", errors="replace") if stdout_bytes else "",
        stderr=stderr_bytes.decode("utf-8", errors="replace") if stderr_bytes else "",
    )


async def run_subprocess(
    cmd: Sequence[str],
    *,
    timeout: float = 60.0,
    check: bool = False,
    env: Mapping[str, str] | None = None,
) -> SubprocessResult:
    """Run an argv command without blocking the event loop.

    Raises:
        SubprocessTimeoutError: If the process exceeds the timeout (it is killed).
        SubprocessError: If check=True and the process exits non-zero.
        OSError: If the executable cannot be started.
    """
    proc = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        env=dict(env) if env is not None else None,
    )
    result = await _communicate(proc, timeout, cmd[0])

    if check and not result.success:
        raise SubprocessError(
            f"Command {cmd[0]} failed with exit code {result.returncode}: {result.stderr}",
            returncode=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr,
        )
    return result


async def run_shell(
    cmd: str,
    *,
    timeout: float = 60.0,
    check: bool = False,
    env: Mapping[str, str] | None = None,
) -> SubprocessResult:
    """Run a shell command string locally. Only pass trusted command text."""
    proc = await asyncio.create_subprocess_shell(
        cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        env=dict(env) if env is not None else None,
    )
    result = await _communicate(proc, timeout, "Shell command")

    if check and not result.success:
        raise SubprocessError(
            f"Shell command failed with exit code {result.returncode}: {result.stderr}",
            returncode=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr,
        )
    return result


# =============================================================================
# Bounded Fan-out
# =============================================================================


async def gather_bounded(
    items: Iterable[T],
    func: Callable[[T], Awaitable[R]],
    limit: int,
) -> list[R]:
    """Apply ``func`` to every item with at most ``limit`` calls in flight.

    Results come back in input order regardless of completion order.
    Exceptions propagate; callers that must never lose a result should
    catch inside ``func``.
    """
    semaphore = asyncio.Semaphore(max(1, limit))

    async def _run(item: T) -> R:
        async with semaphore:
            return await func(item)

    return list(await asyncio.gather(*(_run(item) for item in items)))
