"""Value objects shared by the prober, reporter and lifecycle controller.

All of these are request-scoped: built at the start of one invocation and
discarded at exit. Ground truth always comes from re-probing live nodes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from clusterctl.core.errors import (
    ClusterCtlError,
    PartialClusterError,
    SSHTrustError,
    UnreachableNodeError,
)

__all__ = [
    "ServiceRole",
    "ServiceLayer",
    "LayerState",
    "LayerSelection",
    "FsckStatus",
    "ClusterTopology",
    "ResourceSnapshot",
    "NodeHealthReport",
    "LayerSummary",
    "LayerDetail",
    "ClusterHealthReport",
    "classify_layer_state",
]


# =============================================================================
# Roles and Layers
# =============================================================================


class ServiceRole(str, Enum):
    """Daemon roles; the value is the process name reported by ``jps``."""

    STORAGE_MASTER = "NameNode"
    STORAGE_WORKER = "DataNode"
    RESOURCE_MASTER = "ResourceManager"
    RESOURCE_WORKER = "NodeManager"

    @property
    def signature(self) -> str:
        return self.value

    @property
    def is_master(self) -> bool:
        return self in (ServiceRole.STORAGE_MASTER, ServiceRole.RESOURCE_MASTER)


class ServiceLayer(str, Enum):
    """A master role on the coordinator plus a worker role on every worker."""

    STORAGE = "storage"
    RESOURCE = "resource"

    @property
    def master_role(self) -> ServiceRole:
        if self is ServiceLayer.STORAGE:
            return ServiceRole.STORAGE_MASTER
        return ServiceRole.RESOURCE_MASTER

    @property
    def worker_role(self) -> ServiceRole:
        if self is ServiceLayer.STORAGE:
            return ServiceRole.STORAGE_WORKER
        return ServiceRole.RESOURCE_WORKER

    @property
    def start_script(self) -> str:
        return "start-dfs.sh" if self is ServiceLayer.STORAGE else "start-yarn.sh"

    @property
    def stop_script(self) -> str:
        return "stop-dfs.sh" if self is ServiceLayer.STORAGE else "stop-yarn.sh"

    @property
    def display_name(self) -> str:
        return "HDFS" if self is ServiceLayer.STORAGE else "YARN"


class LayerState(str, Enum):
    """Observed state of a layer; derived, never stored."""

    STOPPED = "stopped"
    RUNNING = "running"
    PARTIALLY_RUNNING = "partially_running"
    UNKNOWN = "unknown"


class LayerSelection(str, Enum):
    """Which layers a lifecycle or diagnostic operation acts on."""

    ALL = "all"
    STORAGE = "storage"
    RESOURCE = "resource"

    @property
    def layers(self) -> tuple[ServiceLayer, ...]:
        """Selected layers in startup (dependency) order."""
        if self is LayerSelection.STORAGE:
            return (ServiceLayer.STORAGE,)
        if self is LayerSelection.RESOURCE:
            return (ServiceLayer.RESOURCE,)
        return (ServiceLayer.STORAGE, ServiceLayer.RESOURCE)

    @property
    def stop_order(self) -> tuple[ServiceLayer, ...]:
        """Resource-management is torn down before storage."""
        return tuple(reversed(self.layers))

    @classmethod
    def from_component(cls, component: str) -> LayerSelection:
        """Map the check tool's component names (hdfs, dfs, yarn, all)."""
        key = component.strip().lower()
        if key in ("hdfs", "dfs", "storage"):
            return cls.STORAGE
        if key in ("yarn", "resource"):
            return cls.RESOURCE
        if key == "all":
            return cls.ALL
        raise ValueError(f"Unknown component: {component}")


class FsckStatus(str, Enum):
    """Classification of the filesystem check summary."""

    HEALTHY = "healthy"
    CORRUPT = "corrupt"
    UNKNOWN = "unknown"


def classify_layer_state(master_present: bool | None, live: int, total: int) -> LayerState:
    """Derive a layer's state from its master and worker observations.

    The coordinator's master observation is authoritative: an absent master
    means STOPPED regardless of worker state.
    """
    if master_present is None:
        return LayerState.UNKNOWN
    if not master_present:
        return LayerState.STOPPED
    if total > 0 and live >= total:
        return LayerState.RUNNING
    return LayerState.PARTIALLY_RUNNING


# =============================================================================
# Topology
# =============================================================================


@dataclass(frozen=True)
class ClusterTopology:
    """Static cluster shape, rebuilt from the worker-list file every run."""

    coordinator: str
    workers: tuple[str, ...]
    configured_replication: int = 3

    @property
    def total_workers(self) -> int:
        return len(self.workers)

    @property
    def all_nodes(self) -> tuple[str, ...]:
        """Coordinator first, then workers, without duplicates."""
        return (self.coordinator,) + tuple(w for w in self.workers if w != self.coordinator)


# =============================================================================
# Per-node Reports
# =============================================================================


@dataclass
class ResourceSnapshot:
    """Resource utilization gathered by detailed probes."""

    disk_percent: float | None = None
    memory_percent: float | None = None
    load_average: tuple[float, float, float] | None = None
    disk_report: str = ""
    memory_report: str = ""
    uptime_report: str = ""
    listings: dict[str, str] = field(default_factory=dict)
    log_tail: str = ""


@dataclass
class NodeHealthReport:
    """Result of probing one node. Produced fresh per probe call."""

    node: str
    reachable: bool = False
    ssh_trusted: bool = False
    roles_present: dict[ServiceRole, bool] = field(
        default_factory=lambda: {role: False for role in ServiceRole}
    )
    is_coordinator: bool = False
    roles_observed: bool = False
    process_list: str = ""
    resources: ResourceSnapshot | None = None
    errors: list[str] = field(default_factory=list)
    probed_at: datetime = field(default_factory=datetime.now)

    @property
    def disk_usage(self) -> float | None:
        return self.resources.disk_percent if self.resources else None

    @property
    def mem_usage(self) -> float | None:
        return self.resources.memory_percent if self.resources else None

    @property
    def load(self) -> tuple[float, float, float] | None:
        return self.resources.load_average if self.resources else None

    @property
    def healthy(self) -> bool:
        return self.reachable and self.ssh_trusted and not self.errors

    def has_role(self, role: ServiceRole) -> bool:
        return bool(self.roles_present.get(role, False))

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "node": self.node,
            "reachable": self.reachable,
            "ssh_trusted": self.ssh_trusted,
            "is_coordinator": self.is_coordinator,
            "roles_observed": self.roles_observed,
            "roles_present": {role.value: present for role, present in self.roles_present.items()},
            "errors": list(self.errors),
        }
        if self.resources is not None:
            data["disk_usage"] = self.resources.disk_percent
            data["mem_usage"] = self.resources.memory_percent
            data["load"] = list(self.resources.load_average) if self.resources.load_average else None
        return data


# =============================================================================
# Cluster Reports
# =============================================================================


@dataclass(frozen=True)
class LayerSummary:
    """Live/total accounting for one layer."""

    layer: ServiceLayer
    state: LayerState
    live_workers: int
    total_workers: int
    source: str = "probed"  # "probed" (worker fan-out) or "reported" (native report)

    def __post_init__(self) -> None:
        # Native reports can list more live workers than the worker file names
        if self.live_workers > self.total_workers:
            object.__setattr__(self, "live_workers", self.total_workers)
        if self.live_workers < 0:
            object.__setattr__(self, "live_workers", 0)

    @property
    def deficit(self) -> int:
        return self.total_workers - self.live_workers


@dataclass
class LayerDetail:
    """Drill-down for one layer: native command output and derived metrics."""

    layer: ServiceLayer
    master_running: bool
    outputs: dict[str, str] = field(default_factory=dict)
    reported_live: int | None = None
    safemode: bool | None = None
    fsck_status: FsckStatus | None = None
    fsck_counts: dict[str, int] = field(default_factory=dict)
    service_state: str | None = None
    worker_presence: dict[str, bool] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)


@dataclass
class ClusterHealthReport:
    """Aggregated health picture of the cluster."""

    topology: ClusterTopology
    per_node: dict[str, NodeHealthReport] = field(default_factory=dict)
    layers: dict[ServiceLayer, LayerSummary] = field(default_factory=dict)
    details: dict[ServiceLayer, LayerDetail] = field(default_factory=dict)
    web_endpoints: dict[str, bool | None] = field(default_factory=dict)
    web_urls: dict[str, str] = field(default_factory=dict)
    mode: str = "full"
    generated_at: datetime = field(default_factory=datetime.now)

    @property
    def layer_states(self) -> dict[ServiceLayer, LayerState]:
        return {layer: summary.state for layer, summary in self.layers.items()}

    @property
    def counts_workers(self) -> bool:
        """False for a single-node report, which observes one node only."""
        return self.mode != "node"

    @property
    def total_worker_count(self) -> int | None:
        if not self.counts_workers:
            return None
        return self.topology.total_workers

    @property
    def live_worker_count(self) -> int | None:
        """Workers on which every summarized layer's worker role is live."""
        if not self.counts_workers:
            return None
        if self.mode == "basic" or not self.per_node:
            if not self.layers:
                return 0
            return min(summary.live_workers for summary in self.layers.values())
        live = 0
        for worker in self.topology.workers:
            report = self.per_node.get(worker)
            if report is None:
                continue
            layers = self.layers.keys() or ServiceLayer
            if all(report.has_role(layer.worker_role) for layer in layers):
                live += 1
        return live

    @property
    def deficit(self) -> int | None:
        if not self.counts_workers:
            return None
        return self.total_worker_count - self.live_worker_count

    @property
    def coordinator_report(self) -> NodeHealthReport | None:
        return self.per_node.get(self.topology.coordinator)

    def worker_reports(self) -> list[NodeHealthReport]:
        """Worker reports in topology order."""
        return [self.per_node[w] for w in self.topology.workers if w in self.per_node]

    def ordered_reports(self) -> list[NodeHealthReport]:
        """Coordinator, then workers, then any node probed outside the topology."""
        known = [self.per_node[n] for n in self.topology.all_nodes if n in self.per_node]
        extra = [r for n, r in self.per_node.items() if n not in self.topology.all_nodes]
        return known + extra

    def issues(self) -> list[ClusterCtlError]:
        """Warning-level findings, accumulated across every probed node."""
        found: list[ClusterCtlError] = []
        for report in self.ordered_reports():
            if report.is_coordinator:
                continue
            if not report.reachable:
                found.append(UnreachableNodeError(report.node, "; ".join(report.errors)))
            elif not report.ssh_trusted:
                found.append(SSHTrustError(report.node, "; ".join(report.errors)))
        for summary in self.layers.values():
            if summary.state == LayerState.PARTIALLY_RUNNING and summary.deficit > 0:
                found.append(PartialClusterError(summary.layer, summary.live_workers, summary.total_workers))
        return found

    def to_dict(self) -> dict[str, Any]:
        return {
            "generated_at": self.generated_at.isoformat(),
            "mode": self.mode,
            "coordinator": self.topology.coordinator,
            "configured_replication": self.topology.configured_replication,
            "live_worker_count": self.live_worker_count,
            "total_worker_count": self.total_worker_count,
            "deficit": self.deficit,
            "layers": {
                layer.value: {
                    "state": summary.state.value,
                    "live_workers": summary.live_workers,
                    "total_workers": summary.total_workers,
                    "deficit": summary.deficit,
                    "source": summary.source,
                }
                for layer, summary in self.layers.items()
            },
            "nodes": [r.to_dict() for r in self.ordered_reports()],
            "web_endpoints": dict(self.web_endpoints),
            "web_urls": dict(self.web_urls),
        }
