"""Topology Resolver - builds the immutable ClusterTopology.

Purely local parsing: the installed worker-list file (one hostname per
line, blank lines and ``#`` comments ignored) and ``dfs.replication`` from
``hdfs-site.xml``. No network access happens here.

Usage:
    from clusterctl.config.topology import resolve_topology

    topology = resolve_topology(env)
    for worker in topology.workers:
        ...
"""

from __future__ import annotations

import logging
import socket
import xml.etree.ElementTree as ET
from pathlib import Path

from clusterctl.config.preconditions import ClusterEnvironment
from clusterctl.core.errors import TopologyError
from clusterctl.models.cluster import ClusterTopology
from clusterctl.utils.exceptions import FS_ERRORS

logger = logging.getLogger(__name__)

DEFAULT_REPLICATION = 3
REPLICATION_PROPERTY = "dfs.replication"


def parse_worker_list(text: str) -> list[str]:
    """Parse worker-list content into hostnames, preserving order."""
    workers: list[str] = []
    seen: set[str] = set()
    for raw in text.splitlines():
        line = raw.split("#", 1)[0].strip()
        if not line:
            continue
        if line in seen:
            logger.warning(f"[Topology] Duplicate worker entry ignored: {line}")
            continue
        seen.add(line)
        workers.append(line)
    return workers


def load_workers(path: Path) -> list[str]:
    """Read the worker-list file.

    Raises:
        TopologyError: If the file is missing, unreadable or lists no workers.
    """
    if not path.exists():
        raise TopologyError(f"Worker list not found: {path}")
    try:
        text = path.read_text()
    except FS_ERRORS as e:
        raise TopologyError(f"Cannot read worker list {path}: {e}") from e

    workers = parse_worker_list(text)
    if not workers:
        raise TopologyError(f"Worker list {path} contains no workers")
    return workers


def read_replication(path: Path) -> int:
    """Read ``dfs.replication`` from an hdfs-site.xml file.

    A missing file or property yields the storage default.

    Raises:
        TopologyError: If the file is malformed or the value is not a positive integer.
    """
    if not path.exists():
        logger.debug(f"[Topology] {path} not found, assuming replication {DEFAULT_REPLICATION}")
        return DEFAULT_REPLICATION
    try:
        root = ET.parse(path).getroot()
    except ET.ParseError as e:
        raise TopologyError(f"Malformed {path.name}: {e}") from e
    except FS_ERRORS as e:
        raise TopologyError(f"Cannot read {path}: {e}") from e

    for prop in root.iter("property"):
        if (prop.findtext("name") or "").strip() != REPLICATION_PROPERTY:
            continue
        value = (prop.findtext("value") or "").strip()
        try:
            replication = int(value)
        except ValueError:
            raise TopologyError(f"{REPLICATION_PROPERTY} is not an integer: {value!r}") from None
        if replication < 1:
            raise TopologyError(f"{REPLICATION_PROPERTY} must be positive, got {replication}")
        return replication

    return DEFAULT_REPLICATION


def resolve_topology(env: ClusterEnvironment) -> ClusterTopology:
    """Build the topology for this invocation."""
    workers = load_workers(env.workers_file)
    replication = read_replication(env.hdfs_site)
    coordinator = env.settings.coordinator or socket.gethostname()

    topology = ClusterTopology(
        coordinator=coordinator,
        workers=tuple(workers),
        configured_replication=replication,
    )
    logger.info(
        f"[Topology] Coordinator {coordinator}, {len(workers)} worker(s), replication {replication}"
    )
    return topology
