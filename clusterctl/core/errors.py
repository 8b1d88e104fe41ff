"""Error taxonomy for the cluster control plane.

Every failure the control plane can report is a ``ClusterCtlError``. Fatal
errors carry the exit code the CLI drivers hand back to the shell; the
warning-level ``PartialClusterError`` is produced as a value by the health
report and is never raised on its own.

Usage:
    from clusterctl.core.errors import FatalError, PreconditionError

    try:
        env = PreconditionGate(settings).verify()
    except FatalError as e:
        logger.error(e.message)
        sys.exit(e.exit_code)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from clusterctl.models.cluster import LayerState, ServiceLayer

__all__ = [
    "EXIT_OK",
    "EXIT_ERROR",
    "EXIT_PRECONDITION",
    "EXIT_TOPOLOGY",
    "EXIT_TRANSITION",
    "EXIT_UNREACHABLE",
    "EXIT_SSH_TRUST",
    "EXIT_LOCKED",
    "EXIT_INTERRUPTED",
    "ClusterCtlError",
    "FatalError",
    "PreconditionError",
    "ConfigurationError",
    "TopologyError",
    "UnreachableNodeError",
    "SSHTrustError",
    "ServiceTransitionError",
    "ConvergenceTimeoutError",
    "StateMismatchError",
    "PartialClusterError",
    "ClusterLockError",
]

# =============================================================================
# Exit Codes
# =============================================================================

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_PRECONDITION = 2
EXIT_TOPOLOGY = 3
EXIT_TRANSITION = 4
EXIT_UNREACHABLE = 5
EXIT_SSH_TRUST = 6
EXIT_LOCKED = 7
EXIT_INTERRUPTED = 130


# =============================================================================
# Base Types
# =============================================================================


class ClusterCtlError(Exception):
    """Base exception for all control plane errors."""

    exit_code: int = EXIT_ERROR

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class FatalError(ClusterCtlError):
    """Non-recoverable condition; the invocation must stop."""


# =============================================================================
# Pre-network Failures
# =============================================================================


class PreconditionError(FatalError):
    """Wrong operator identity, missing installation or unresolvable runtime."""

    exit_code = EXIT_PRECONDITION


class ConfigurationError(PreconditionError):
    """Settings file could not be read or holds invalid values."""


class TopologyError(FatalError):
    """Worker list missing, unreadable or empty."""

    exit_code = EXIT_TOPOLOGY


# =============================================================================
# Node Failures
# =============================================================================


class UnreachableNodeError(ClusterCtlError):
    """A node failed the reachability probe.

    Fatal when the node is the coordinator during a lifecycle action,
    otherwise recorded per node and surfaced as a warning.
    """

    exit_code = EXIT_UNREACHABLE

    def __init__(self, node: str, reason: str = ""):
        self.node = node
        self.reason = reason
        message = f"Node '{node}' is unreachable"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class SSHTrustError(ClusterCtlError):
    """The coordinator's credential was not accepted non-interactively."""

    exit_code = EXIT_SSH_TRUST

    def __init__(self, nodes: list[str] | str, reason: str = ""):
        self.nodes = [nodes] if isinstance(nodes, str) else list(nodes)
        self.reason = reason
        message = f"Password-less SSH failed for: {', '.join(self.nodes)}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


# =============================================================================
# Lifecycle Failures
# =============================================================================


class ServiceTransitionError(FatalError):
    """Observed layer state did not match the action's target state."""

    exit_code = EXIT_TRANSITION

    def __init__(
        self,
        layer: ServiceLayer,
        action: str,
        expected: LayerState,
        observed: LayerState,
        detail: str = "",
    ):
        self.layer = layer
        self.action = action
        self.expected = expected
        self.observed = observed
        message = (
            f"{action} {layer.value} did not converge: expected "
            f"{expected.value}, observed {observed.value}"
        )
        if detail:
            message += f" ({detail})"
        super().__init__(message)


class ConvergenceTimeoutError(ServiceTransitionError):
    """Deadline passed while the layer was still converging."""

    def __init__(
        self,
        layer: ServiceLayer,
        action: str,
        expected: LayerState,
        observed: LayerState,
        timeout: float,
    ):
        self.timeout = timeout
        super().__init__(layer, action, expected, observed, f"timed out after {timeout:.0f}s")


class StateMismatchError(ServiceTransitionError):
    """The layer ended in the opposite of the target state."""


class ClusterLockError(FatalError):
    """Another control plane invocation holds the cluster lock."""

    exit_code = EXIT_LOCKED

    def __init__(self, message: str, holder: dict | None = None):
        self.holder = holder or {}
        super().__init__(message)


# =============================================================================
# Warning-level Findings
# =============================================================================


class PartialClusterError(ClusterCtlError):
    """A running layer has fewer live workers than configured."""

    def __init__(self, layer: ServiceLayer, live: int, total: int):
        self.layer = layer
        self.live = live
        self.total = total
        self.deficit = total - live
        super().__init__(
            f"{layer.value}: {self.deficit} of {total} worker(s) not running "
            f"({live}/{total} live)"
        )
