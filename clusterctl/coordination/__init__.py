"""Remote execution, probing and lifecycle control."""

from clusterctl.coordination.cluster_lock import ClusterLock
from clusterctl.coordination.convergence import wait_for_state
from clusterctl.coordination.health_prober import HealthProber
from clusterctl.coordination.lifecycle_controller import (
    LifecycleAction,
    LifecycleController,
    TransitionResult,
)
from clusterctl.coordination.remote_executor import CommandResult, RemoteExecutor, SSHExecutor
from clusterctl.coordination.ssh_error_classifier import (
    SSHErrorClassification,
    SSHErrorType,
    classify_ssh_error,
)

__all__ = [
    "ClusterLock",
    "CommandResult",
    "HealthProber",
    "LifecycleAction",
    "LifecycleController",
    "RemoteExecutor",
    "SSHErrorClassification",
    "SSHErrorType",
    "SSHExecutor",
    "TransitionResult",
    "classify_ssh_error",
    "wait_for_state",
]
