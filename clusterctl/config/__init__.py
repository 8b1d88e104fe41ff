"""Configuration: settings, precondition gate and topology resolution."""

from clusterctl.config.preconditions import ClusterEnvironment, PreconditionGate, derive_java_home
from clusterctl.config.settings import ControlPlaneSettings, ConvergencePolicy, load_settings
from clusterctl.config.topology import load_workers, parse_worker_list, read_replication, resolve_topology

__all__ = [
    "ClusterEnvironment",
    "ControlPlaneSettings",
    "ConvergencePolicy",
    "PreconditionGate",
    "derive_java_home",
    "load_settings",
    "load_workers",
    "parse_worker_list",
    "read_replication",
    "resolve_topology",
]
