"""Parsers for process listings, native status reports and resource commands.

Every function is pure and tolerant: unparseable input yields ``None`` (or
an empty result), never an exception, so a surprising report degrades to
"unknown" instead of aborting a diagnostic run.
"""

from __future__ import annotations

import re

from clusterctl.models.cluster import FsckStatus, ServiceRole

_LIVE_DATANODES_RE = re.compile(r"Live datanodes\s*\((\d+)\)", re.IGNORECASE)
_SAFEMODE_RE = re.compile(r"Safe mode is (ON|OFF)", re.IGNORECASE)
_FSCK_STATUS_RE = re.compile(r"(?:Status:\s*|is\s+)(HEALTHY|CORRUPT)\b")
_FSCK_COUNT_RE = re.compile(r"(Missing|Corrupt|Under-replicated) blocks:\s*(\d+)", re.IGNORECASE)
_LOAD_RE = re.compile(r"load averages?:\s*([\d.]+),?\s+([\d.]+),?\s+([\d.]+)")
_SERVICE_STATE_RE = re.compile(r"^\s*(active|standby|observer)\s*$", re.IGNORECASE | re.MULTILINE)


# =============================================================================
# Process listings
# =============================================================================


def parse_process_list(output: str) -> set[str]:
    """Process names from ``jps`` (or ``jps -l``) output.

    Names are exact tokens: ``SecondaryNameNode`` is not ``NameNode``.
    """
    names: set[str] = set()
    for line in output.splitlines():
        parts = line.split()
        if len(parts) < 2 or not parts[0].isdigit():
            continue
        name = parts[1].rsplit(".", 1)[-1]
        if name and name != "Jps":
            names.add(name)
    return names


def roles_from_processes(names: set[str]) -> dict[ServiceRole, bool]:
    return {role: role.signature in names for role in ServiceRole}


# =============================================================================
# Storage layer reports
# =============================================================================


def parse_live_datanodes(report: str) -> int | None:
    """Live worker count from ``hdfs dfsadmin -report``."""
    match = _LIVE_DATANODES_RE.search(report)
    return int(match.group(1)) if match else None


def parse_safemode(output: str) -> bool | None:
    """True when ``hdfs dfsadmin -safemode get`` reports ON."""
    match = _SAFEMODE_RE.search(output)
    if not match:
        return None
    return match.group(1).upper() == "ON"


def classify_fsck(output: str) -> tuple[FsckStatus, dict[str, int]]:
    """Classify ``hdfs fsck /`` output and extract block counters."""
    counts = {
        name.lower(): int(value)
        for name, value in _FSCK_COUNT_RE.findall(output)
    }
    match = _FSCK_STATUS_RE.search(output)
    if match:
        status = FsckStatus.HEALTHY if match.group(1) == "HEALTHY" else FsckStatus.CORRUPT
    else:
        status = FsckStatus.UNKNOWN

    if status == FsckStatus.HEALTHY and (counts.get("corrupt", 0) or counts.get("missing", 0)):
        status = FsckStatus.CORRUPT
    return status, counts


# =============================================================================
# Resource layer reports
# =============================================================================


def count_running_nodemanagers(output: str) -> int:
    """Number of RUNNING nodes in ``yarn node -list`` output."""
    return sum(1 for line in output.splitlines() if "RUNNING" in line.split())


def parse_service_state(output: str) -> str | None:
    """HA state from ``yarn rmadmin -getServiceState``."""
    match = _SERVICE_STATE_RE.search(output)
    return match.group(1).lower() if match else None


# =============================================================================
# Node resources
# =============================================================================


def parse_disk_percent(df_output: str, mount: str = "/") -> float | None:
    """Use% of ``mount`` from ``df`` output."""
    for line in df_output.splitlines()[1:]:
        parts = line.split()
        if len(parts) >= 2 and parts[-1] == mount and parts[-2].endswith("%"):
            try:
                return float(parts[-2].rstrip("%"))
            except ValueError:
                return None
    return None


def parse_memory_percent(free_output: str) -> float | None:
    """Used/total memory percentage from ``free`` output."""
    for line in free_output.splitlines():
        if not line.lower().startswith("mem:"):
            continue
        parts = line.split()
        try:
            total = float(parts[1])
            used = float(parts[2])
        except (IndexError, ValueError):
            return None
        if total <= 0:
            return None
        return round(used / total * 100.0, 1)
    return None


def parse_load_average(uptime_output: str) -> tuple[float, float, float] | None:
    match = _LOAD_RE.search(uptime_output)
    if not match:
        return None
    return (float(match.group(1)), float(match.group(2)), float(match.group(3)))
