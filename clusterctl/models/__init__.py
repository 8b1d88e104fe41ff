"""Request-scoped cluster value objects."""

from clusterctl.models.cluster import (
    ClusterHealthReport,
    ClusterTopology,
    FsckStatus,
    LayerDetail,
    LayerSelection,
    LayerState,
    LayerSummary,
    NodeHealthReport,
    ResourceSnapshot,
    ServiceLayer,
    ServiceRole,
    classify_layer_state,
)

__all__ = [
    "ClusterHealthReport",
    "ClusterTopology",
    "FsckStatus",
    "LayerDetail",
    "LayerSelection",
    "LayerState",
    "LayerSummary",
    "NodeHealthReport",
    "ResourceSnapshot",
    "ServiceLayer",
    "ServiceRole",
    "classify_layer_state",
]
