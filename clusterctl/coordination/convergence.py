"""Convergence polling for lifecycle transitions.

Control scripts return long before every daemon is up (or down). Instead
of a fixed sleep, the layer state is re-probed with capped exponential
backoff until it reaches the target or the deadline passes.

Usage:
    state = await wait_for_state(
        probe=lambda: prober.probe_cluster(),
        layer=ServiceLayer.STORAGE,
        action="start",
        target=LayerState.RUNNING,
        policy=settings.convergence,
    )
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from clusterctl.config.settings import ConvergencePolicy
from clusterctl.core.errors import ConvergenceTimeoutError, StateMismatchError
from clusterctl.models.cluster import ClusterHealthReport, LayerState, ServiceLayer

__all__ = ["wait_for_state", "opposite_state"]

logger = logging.getLogger(__name__)


def opposite_state(target: LayerState) -> LayerState:
    if target == LayerState.RUNNING:
        return LayerState.STOPPED
    return LayerState.RUNNING


async def wait_for_state(
    probe: Callable[[], Awaitable[ClusterHealthReport]],
    layer: ServiceLayer,
    action: str,
    target: LayerState,
    policy: ConvergencePolicy,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> ClusterHealthReport:
    """Poll until ``layer`` reaches ``target``.

    Returns:
        The report in which the layer was first observed in ``target``.

    Raises:
        StateMismatchError: The deadline passed with the layer settled in
            the opposite state (the action had no effect).
        ConvergenceTimeoutError: The deadline passed while the layer was
            still partially up or unobservable.
    """
    deadline = clock() + policy.timeout
    delays = policy.delays()
    attempt = 0

    while True:
        attempt += 1
        report = await probe()
        summary = report.layers.get(layer)
        observed = summary.state if summary else LayerState.UNKNOWN

        if observed == target:
            logger.info(f"[Convergence] {layer.display_name} reached {target.value} after {attempt} probe(s)")
            return report

        remaining = deadline - clock()
        if remaining <= 0:
            break

        delay = min(next(delays), remaining)
        logger.debug(
            f"[Convergence] {layer.display_name} is {observed.value}, want {target.value}; "
            f"re-probing in {delay:.1f}s"
        )
        await sleep(delay)

    if observed == opposite_state(target):
        raise StateMismatchError(layer, action, target, observed, f"after {attempt} probe(s)")
    raise ConvergenceTimeoutError(layer, action, target, observed, policy.timeout)
