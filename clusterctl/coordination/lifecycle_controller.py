"""Service Lifecycle Controller - ordered, idempotent start/stop/restart.

Every mutating operation follows the same sequence:
    1. Take the advisory cluster lock
    2. Probe the cluster; the coordinator's master roles must be observable
       and every worker must accept the SSH credential
    3. Per layer, in dependency order: skip with a warning if already in
       the target state, otherwise run the layer's control script and poll
       until the layer converges

Ordering: storage starts before resource-management; resource-management
stops before storage. Restart is a full teardown followed by a full
startup.

Usage:
    controller = LifecycleController(env, topology, executor, prober, lock=lock)
    results = await controller.start(LayerSelection.ALL)
    for result in results:
        print(result.layer.display_name, result.final_state.value)
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from clusterctl.config.preconditions import ClusterEnvironment
from clusterctl.config.settings import ConvergencePolicy
from clusterctl.coordination.cluster_lock import ClusterLock
from clusterctl.coordination.convergence import wait_for_state
from clusterctl.coordination.health_prober import HealthProber
from clusterctl.coordination.remote_executor import RemoteExecutor
from clusterctl.core.errors import SSHTrustError, UnreachableNodeError
from clusterctl.models.cluster import (
    ClusterHealthReport,
    ClusterTopology,
    LayerSelection,
    LayerState,
    ServiceLayer,
)

__all__ = [
    "LifecycleAction",
    "LifecycleController",
    "TransitionResult",
]

logger = logging.getLogger(__name__)


class LifecycleAction:
    START = "start"
    STOP = "stop"
    RESTART = "restart"

    ALL = (START, STOP, RESTART)


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of one layer transition."""

    layer: ServiceLayer
    action: str
    initial_state: LayerState
    final_state: LayerState
    changed: bool
    warning: str | None = None


class LifecycleController:
    """Starts and stops layers across the cluster."""

    def __init__(
        self,
        env: ClusterEnvironment,
        topology: ClusterTopology,
        executor: RemoteExecutor,
        prober: HealthProber,
        lock: ClusterLock | None = None,
        policy: ConvergencePolicy | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._env = env
        self._topology = topology
        self._executor = executor
        self._prober = prober
        self._lock = lock
        self._policy = policy or env.settings.convergence
        self._sleep = sleep
        self._clock = clock

    # =========================================================================
    # Public operations
    # =========================================================================

    async def start(self, selection: LayerSelection = LayerSelection.ALL) -> list[TransitionResult]:
        return await self._run(LifecycleAction.START, selection)

    async def stop(self, selection: LayerSelection = LayerSelection.ALL) -> list[TransitionResult]:
        return await self._run(LifecycleAction.STOP, selection)

    async def restart(self, selection: LayerSelection = LayerSelection.ALL) -> list[TransitionResult]:
        return await self._run(LifecycleAction.RESTART, selection)

    async def status(self) -> ClusterHealthReport:
        """Read-only: the basic health report."""
        return await self._prober.probe_basic()

    async def perform(self, action: str, selection: LayerSelection) -> list[TransitionResult]:
        if action not in LifecycleAction.ALL:
            raise ValueError(f"Unknown lifecycle action: {action}")
        return await self._run(action, selection)

    # =========================================================================
    # Internals
    # =========================================================================

    async def _run(self, action: str, selection: LayerSelection) -> list[TransitionResult]:
        guard = self._lock if self._lock is not None else contextlib.nullcontext()
        with guard:
            report = await self._prober.probe_cluster()
            self._preflight(report)

            results: list[TransitionResult] = []
            if action in (LifecycleAction.STOP, LifecycleAction.RESTART):
                for layer in selection.stop_order:
                    result, report = await self._transition(layer, LifecycleAction.STOP, report)
                    results.append(result)
            if action in (LifecycleAction.START, LifecycleAction.RESTART):
                for layer in selection.layers:
                    result, report = await self._transition(layer, LifecycleAction.START, report)
                    results.append(result)
            return results

    def _preflight(self, report: ClusterHealthReport) -> None:
        coordinator = report.coordinator_report
        if coordinator is None or not coordinator.roles_observed:
            reason = "; ".join(coordinator.errors) if coordinator else "no report"
            raise UnreachableNodeError(self._topology.coordinator, f"master roles cannot be probed ({reason})")

        refused = [r for r in report.worker_reports() if not r.is_coordinator and not r.ssh_trusted]
        if refused:
            reasons = "; ".join(f"{r.node}: {', '.join(r.errors) or 'refused'}" for r in refused)
            raise SSHTrustError([r.node for r in refused], reasons)

    async def _transition(
        self,
        layer: ServiceLayer,
        action: str,
        report: ClusterHealthReport,
    ) -> tuple[TransitionResult, ClusterHealthReport]:
        target = LayerState.RUNNING if action == LifecycleAction.START else LayerState.STOPPED
        initial = report.layers[layer].state

        if initial == target:
            warning = f"{layer.display_name} is already {target.value}; nothing to {action}"
            logger.warning(f"[LifecycleController] {warning}")
            return TransitionResult(layer, action, initial, initial, changed=False, warning=warning), report

        script = layer.start_script if action == LifecycleAction.START else layer.stop_script
        logger.info(f"[LifecycleController] {action.capitalize()} {layer.display_name} ({initial.value} -> {target.value})")
        outcome = await self._executor.run_command(
            self._topology.coordinator,
            str(self._env.script_path(script)),
            timeout=self._env.settings.command_timeout,
        )

        warning = None
        if not outcome.success:
            detail = outcome.error or outcome.stderr.strip() or f"exit code {outcome.returncode}"
            warning = f"{script} reported failure: {detail}"
            logger.warning(f"[LifecycleController] {warning}; verifying observed state")

        final_report = await wait_for_state(
            probe=self._prober.probe_cluster,
            layer=layer,
            action=action,
            target=target,
            policy=self._policy,
            sleep=self._sleep,
            clock=self._clock,
        )
        return TransitionResult(layer, action, initial, target, changed=True, warning=warning), final_report
