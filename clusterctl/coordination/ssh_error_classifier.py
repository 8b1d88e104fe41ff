"""SSH Error Classifier - explain why a node refused the coordinator.

A failed non-interactive SSH attempt can mean the key was rejected (the
cluster's trust precondition is broken), the host key changed, the node is
off the network, or a transient hiccup. Reports use the classification so
an operator sees "key rejected" instead of a bare exit code 255.

Usage:
    from clusterctl.coordination.ssh_error_classifier import classify_ssh_error

    result = classify_ssh_error(stderr, exit_code)
    if result.breaks_trust:
        print(result.remedy("hadoop@worker-3"))
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

# ssh(1) exits with 255 when the connection or authentication failed
SSH_CONNECTION_FAILED = 255


class SSHErrorType(Enum):
    """Classification of SSH error types."""

    AUTH_FAILURE = "auth_failure"  # Permission denied, key rejected
    HOST_KEY = "host_key"  # Host key verification failed
    NETWORK = "network"  # Host unreachable, DNS failure
    TRANSIENT = "transient"  # Timeout, connection reset
    CONFIG = "config"  # Bad option, missing binary
    REMOTE_COMMAND = "remote_command"  # Session worked, command failed
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class SSHErrorClassification:
    """Result of SSH error classification."""

    error_type: SSHErrorType
    recommended_action: str
    matched_pattern: str | None = None

    @property
    def breaks_trust(self) -> bool:
        """The credential itself is not accepted."""
        return self.error_type in (SSHErrorType.AUTH_FAILURE, SSHErrorType.HOST_KEY)

    def describe(self) -> str:
        label = self.error_type.value.replace("_", " ")
        if self.matched_pattern:
            return f"{label}: {self.matched_pattern.replace('_', ' ')}"
        return label

    def remedy(self, target: str) -> str:
        """Recommended action with the user@node it applies to filled in."""
        return self.recommended_action.format(target=target, host=target.rpartition("@")[2])


AUTH_FAILURE_PATTERNS = [
    (r"Permission denied", "permission_denied"),
    (r"publickey.*denied", "publickey_denied"),
    (r"Authentication failed", "auth_failed"),
    (r"Too many authentication failures", "too_many_failures"),
]

HOST_KEY_PATTERNS = [
    (r"Host key verification failed", "host_key_verification"),
    (r"REMOTE HOST IDENTIFICATION HAS CHANGED", "host_key_changed"),
    (r"Offending .* key", "offending_key"),
]

NETWORK_PATTERNS = [
    (r"No route to host", "no_route"),
    (r"Network is unreachable", "network_unreachable"),
    (r"Could not resolve hostname", "hostname_unresolved"),
    (r"Name or service not known", "dns_failure"),
    (r"Temporary failure in name resolution", "dns_temp_failure"),
    (r"Host is down", "host_down"),
]

TRANSIENT_PATTERNS = [
    (r"Connection timed out", "timeout"),
    (r"Connection refused", "refused"),
    (r"Connection reset by peer", "reset"),
    (r"Connection closed", "closed"),
    (r"kex_exchange_identification", "kex_failed"),
    (r"Broken pipe", "broken_pipe"),
]

CONFIG_PATTERNS = [
    (r"Bad configuration option", "bad_option"),
    (r"command not found", "command_not_found"),
    (r"No such file or directory", "file_not_found"),
]

_ACTIONS = {
    SSHErrorType.AUTH_FAILURE: "Install the coordinator's public key: ssh-copy-id {target}",
    SSHErrorType.HOST_KEY: "Verify the node's identity, then refresh known_hosts: ssh-keygen -R {host}",
    SSHErrorType.NETWORK: "Check the node's network and name resolution",
    SSHErrorType.TRANSIENT: "Retry; check the node's sshd if it persists",
    SSHErrorType.CONFIG: "Check the SSH client configuration and remote PATH",
    SSHErrorType.REMOTE_COMMAND: "Inspect the remote command's output",
    SSHErrorType.UNKNOWN: "Run ssh -v against the node to diagnose",
}


class SSHErrorClassifier:
    """Classifier for SSH error output and exit codes."""

    def __init__(self):
        def _compile(patterns):
            return [(re.compile(p, re.IGNORECASE), name) for p, name in patterns]

        # Host-key problems are checked first; their text also mentions auth
        self._ordered = [
            (SSHErrorType.HOST_KEY, _compile(HOST_KEY_PATTERNS)),
            (SSHErrorType.AUTH_FAILURE, _compile(AUTH_FAILURE_PATTERNS)),
            (SSHErrorType.NETWORK, _compile(NETWORK_PATTERNS)),
            (SSHErrorType.TRANSIENT, _compile(TRANSIENT_PATTERNS)),
            (SSHErrorType.CONFIG, _compile(CONFIG_PATTERNS)),
        ]

    def classify(self, stderr: str, exit_code: int = SSH_CONNECTION_FAILED) -> SSHErrorClassification:
        """Classify an SSH failure.

        Args:
            stderr: Error output from ssh
            exit_code: ssh exit code (255 means connection/auth failure)
        """
        for error_type, patterns in self._ordered:
            for pattern, name in patterns:
                if pattern.search(stderr or ""):
                    return SSHErrorClassification(error_type, _ACTIONS[error_type], name)

        if exit_code not in (SSH_CONNECTION_FAILED, -1, 124):
            return SSHErrorClassification(SSHErrorType.REMOTE_COMMAND, _ACTIONS[SSHErrorType.REMOTE_COMMAND])
        if exit_code == 124:
            return SSHErrorClassification(SSHErrorType.TRANSIENT, _ACTIONS[SSHErrorType.TRANSIENT], "timeout")
        return SSHErrorClassification(SSHErrorType.UNKNOWN, _ACTIONS[SSHErrorType.UNKNOWN])


_classifier: SSHErrorClassifier | None = None


def classify_ssh_error(stderr: str, exit_code: int = SSH_CONNECTION_FAILED) -> SSHErrorClassification:
    """Classify with a shared classifier instance."""
    global _classifier
    if _classifier is None:
        _classifier = SSHErrorClassifier()
    return _classifier.classify(stderr, exit_code)
