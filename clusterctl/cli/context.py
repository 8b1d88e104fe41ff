"""Shared bootstrap for the CLI drivers.

Settings -> Precondition Gate -> Topology Resolver -> executor and prober.
Everything here is local; the first network access happens in the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from clusterctl.config.preconditions import ClusterEnvironment, PreconditionGate
from clusterctl.config.settings import ControlPlaneSettings, load_settings
from clusterctl.config.topology import resolve_topology
from clusterctl.coordination.health_prober import HealthProber
from clusterctl.coordination.remote_executor import SSHExecutor
from clusterctl.models.cluster import ClusterTopology


@dataclass(frozen=True)
class ControlContext:
    settings: ControlPlaneSettings
    env: ClusterEnvironment
    topology: ClusterTopology
    executor: SSHExecutor
    prober: HealthProber


def build_context(config_path: Path | None = None) -> ControlContext:
    """Raises PreconditionError or TopologyError before any network action."""
    settings = load_settings(config_path)
    env = PreconditionGate(settings).verify()
    topology = resolve_topology(env)
    executor = SSHExecutor(env, coordinator=topology.coordinator)
    prober = HealthProber(env, topology, executor)
    return ControlContext(settings, env, topology, executor, prober)
