"""Shared pytest fixtures for clusterctl tests.

Provides an in-memory cluster (``FakeClusterExecutor``) that simulates
process presence, reachability, SSH trust and the layer control scripts,
and records every command it is asked to run, in order.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from clusterctl.config.preconditions import ClusterEnvironment
from clusterctl.config.settings import ControlPlaneSettings, ConvergencePolicy
from clusterctl.coordination.health_prober import HealthProber
from clusterctl.coordination.remote_executor import CommandResult
from clusterctl.models.cluster import ClusterTopology, ServiceLayer

COORDINATOR = "hadoop-master"
WORKERS = ("hadoop-slave1", "hadoop-slave2")


class FakeClusterExecutor:
    """RemoteExecutor double backed by a dict of running process names."""

    def __init__(self, coordinator: str = COORDINATOR, workers: tuple[str, ...] = WORKERS):
        self.coordinator = coordinator
        self.workers = workers
        self.processes: dict[str, set[str]] = {n: set() for n in (coordinator, *workers)}
        self.unreachable: set[str] = set()
        self.untrusted: set[str] = set()
        self.failing_scripts: set[str] = set()
        self.inert_scripts: set[str] = set()
        self.lagging_workers: set[str] = set()
        self.outputs: dict[str, str] = {}
        self.calls: list[tuple[str, str]] = []
        self.reachability_checks: list[str] = []

    # -------------------------------------------------------------------------
    # Cluster state helpers
    # -------------------------------------------------------------------------

    def start_layer(self, layer: ServiceLayer, workers: tuple[str, ...] | None = None) -> None:
        self.processes[self.coordinator].add(layer.master_role.value)
        for worker in self.workers if workers is None else workers:
            self.processes[worker].add(layer.worker_role.value)

    def stop_layer(self, layer: ServiceLayer) -> None:
        self.processes[self.coordinator].discard(layer.master_role.value)
        for worker in self.workers:
            self.processes[worker].discard(layer.worker_role.value)

    def start_all(self) -> None:
        for layer in ServiceLayer:
            self.start_layer(layer)

    @property
    def script_calls(self) -> list[str]:
        """Control scripts issued, by file name, in order."""
        return [Path(cmd).name for _node, cmd in self.calls if cmd.endswith(".sh")]

    def commands_on(self, node: str) -> list[str]:
        return [cmd for n, cmd in self.calls if n == node]

    # -------------------------------------------------------------------------
    # RemoteExecutor
    # -------------------------------------------------------------------------

    async def is_reachable(self, node: str) -> bool:
        self.reachability_checks.append(node)
        return node not in self.unreachable

    async def run_command(self, node: str, command: str, timeout: float | None = None) -> CommandResult:
        self.calls.append((node, command))

        if node in self.unreachable:
            return CommandResult(node, command, 255, stderr=f"ssh: connect to host {node} port 22: No route to host")
        if node != self.coordinator and node in self.untrusted:
            return CommandResult(node, command, 255, stderr=f"hadoop@{node}: Permission denied (publickey).")

        if command == "exit 0":
            return CommandResult(node, command, 0)
        if command == "jps":
            lines = [f"{1000 + i} {name}" for i, name in enumerate(sorted(self.processes.get(node, set())))]
            lines.append("9999 Jps")
            return CommandResult(node, command, 0, stdout="\n".join(lines) + "\n")
        if command.endswith(".sh"):
            return self._run_script(node, command)

        for fragment, output in self.outputs.items():
            if fragment in command:
                return CommandResult(node, command, 0, stdout=output)
        return CommandResult(node, command, 0)

    def _run_script(self, node: str, command: str) -> CommandResult:
        script = Path(command).name
        if script not in self.inert_scripts:
            for layer in ServiceLayer:
                if script == layer.start_script:
                    skipped = self.unreachable | self.untrusted | self.lagging_workers
                    healthy = tuple(w for w in self.workers if w not in skipped)
                    self.start_layer(layer, healthy)
                elif script == layer.stop_script:
                    self.stop_layer(layer)
        if script in self.failing_scripts:
            return CommandResult(node, command, 1, stderr=f"{script}: some daemons failed")
        return CommandResult(node, command, 0)


async def web_ok(url: str, timeout: float) -> bool:
    return True


class FakeClock:
    """Monotonic clock advanced by the fake sleep."""

    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    async def sleep(self, delay: float) -> None:
        self.now += max(delay, 0.5)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def settings() -> ControlPlaneSettings:
    return ControlPlaneSettings(
        max_concurrency=4,
        convergence=ConvergencePolicy(timeout=10.0, initial_delay=1.0, max_delay=4.0, backoff=2.0),
    )


@pytest.fixture
def cluster_env(tmp_path, settings) -> ClusterEnvironment:
    install_root = tmp_path / "hadoop"
    (install_root / "etc" / "hadoop").mkdir(parents=True)
    return ClusterEnvironment(
        settings=settings,
        operator="hadoop",
        install_root=install_root,
        java_home=Path("/usr/lib/jvm/java-11-openjdk-amd64"),
        base_env={"PATH": "/usr/bin:/bin"},
    )


@pytest.fixture
def topology() -> ClusterTopology:
    return ClusterTopology(coordinator=COORDINATOR, workers=WORKERS, configured_replication=2)


@pytest.fixture
def fake_executor() -> FakeClusterExecutor:
    return FakeClusterExecutor()


@pytest.fixture
def prober(cluster_env, topology, fake_executor) -> HealthProber:
    return HealthProber(cluster_env, topology, fake_executor, web_checker=web_ok)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()
