"""Core shared infrastructure for clusterctl.

- errors: Error taxonomy and exit codes
- logging_config: Unified logging setup
"""

from clusterctl.core.errors import (
    ClusterCtlError,
    ClusterLockError,
    ConfigurationError,
    ConvergenceTimeoutError,
    FatalError,
    PartialClusterError,
    PreconditionError,
    ServiceTransitionError,
    SSHTrustError,
    StateMismatchError,
    TopologyError,
    UnreachableNodeError,
)
from clusterctl.core.logging_config import get_logger, setup_logging

__all__ = [
    # Errors
    "ClusterCtlError",
    "ClusterLockError",
    "ConfigurationError",
    "ConvergenceTimeoutError",
    "FatalError",
    "PartialClusterError",
    "PreconditionError",
    "ServiceTransitionError",
    "SSHTrustError",
    "StateMismatchError",
    "TopologyError",
    "UnreachableNodeError",
    # Logging
    "get_logger",
    "setup_logging",
]
