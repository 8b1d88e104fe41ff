"""Cluster Lock - advisory flock that serializes lifecycle actions.

Two concurrent start/stop invocations against the same cluster interleave
control scripts and leave daemons half-started. Every lifecycle action
runs on the coordinator, so an exclusive ``flock`` on a lock file there is
enough to serialize them. The descriptor stays open until ``release``; the
kernel drops the lock when the holder exits or dies, so there is no stale
lease to break. The holder record written into the file is only read back
to name the holder in the error message.

Usage:
    from clusterctl.coordination.cluster_lock import ClusterLock

    with ClusterLock(settings.lock_file, operation="start"):
        ...  # raises ClusterLockError if another invocation holds the lock
"""

from __future__ import annotations

import fcntl
import getpass
import json
import logging
import os
import socket
import time
from pathlib import Path
from typing import IO, Any

from clusterctl.core.errors import ClusterLockError
from clusterctl.utils.exceptions import FS_ERRORS, PARSE_ERRORS

__all__ = ["ClusterLock", "read_lease"]

logger = logging.getLogger(__name__)


def read_lease(path: Path) -> dict[str, Any] | None:
    """Holder record from the lock file, or None when there is none to read."""
    try:
        with open(path, "r") as f:
            text = f.read()
    except FileNotFoundError:
        return None
    except FS_ERRORS as e:
        logger.warning(f"[ClusterLock] Unreadable lock file {path}: {e}")
        return None
    if not text.strip():
        return None
    try:
        data = json.loads(text)
    except (*PARSE_ERRORS, json.JSONDecodeError):
        return None
    return data if isinstance(data, dict) else None


class ClusterLock:
    """Exclusive, non-blocking flock held for the duration of an action."""

    def __init__(self, path: Path, operation: str = "lifecycle", clock=time.time):
        self.path = Path(path).expanduser()
        self.operation = operation
        self._clock = clock
        self._file_handle: IO[str] | None = None

    @property
    def held(self) -> bool:
        return self._file_handle is not None

    def _lease_record(self) -> dict[str, Any]:
        return {
            "pid": os.getpid(),
            "host": socket.gethostname(),
            "user": getpass.getuser(),
            "operation": self.operation,
            "acquired_at": self._clock(),
        }

    def acquire(self) -> None:
        """Take the lock without blocking.

        Raises:
            ClusterLockError: If another invocation holds the lock or the
                lock file cannot be opened.
        """
        if self.held:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            handle = open(self.path, "a+")
        except FS_ERRORS as e:
            raise ClusterLockError(f"Cannot open lock file {self.path}: {e}") from e

        try:
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError:
            # Held by another invocation; the record may still be mid-write
            handle.close()
            holder = read_lease(self.path)
            if holder:
                message = (
                    f"Cluster is locked by {holder.get('user', '?')}@{holder.get('host', '?')} "
                    f"(pid {holder.get('pid', '?')}, operation {holder.get('operation', '?')})"
                )
            else:
                message = f"Cluster is locked by another invocation ({self.path})"
            raise ClusterLockError(message, holder=holder or {})

        try:
            handle.seek(0)
            handle.truncate()
            json.dump(self._lease_record(), handle)
            handle.flush()
        except FS_ERRORS as e:
            # Record is diagnostic only; the flock is what serializes
            logger.warning(f"[ClusterLock] Could not write holder record to {self.path}: {e}")

        self._file_handle = handle
        logger.debug(f"[ClusterLock] Acquired {self.path} for {self.operation}")

    def release(self) -> None:
        if self._file_handle is None:
            return
        try:
            self._file_handle.seek(0)
            self._file_handle.truncate()
            fcntl.flock(self._file_handle.fileno(), fcntl.LOCK_UN)
            self._file_handle.close()
        except OSError as e:
            logger.warning(f"[ClusterLock] Error releasing {self.path}: {e}")
        finally:
            self._file_handle = None
        logger.debug(f"[ClusterLock] Released {self.path}")

    def __enter__(self) -> ClusterLock:
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
