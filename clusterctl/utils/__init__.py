"""Utility modules for clusterctl.

Modules:
    async_utils: Async subprocess execution and bounded fan-out
    exceptions: Exception type tuples for narrow exception catching
"""

from __future__ import annotations

from clusterctl.utils.async_utils import (
    SubprocessError,
    SubprocessResult,
    SubprocessTimeoutError,
    gather_bounded,
    run_shell,
    run_subprocess,
)
from clusterctl.utils.exceptions import (
    FS_ERRORS,
    NETWORK_ERRORS,
    PARSE_ERRORS,
    PROCESS_ERRORS,
    log_and_continue,
)

__all__ = [
    "SubprocessError",
    "SubprocessResult",
    "SubprocessTimeoutError",
    "gather_bounded",
    "run_shell",
    "run_subprocess",
    "FS_ERRORS",
    "NETWORK_ERRORS",
    "PARSE_ERRORS",
    "PROCESS_ERRORS",
    "log_and_continue",
]
