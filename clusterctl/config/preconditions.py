"""Precondition Gate - fail fast before any network or lifecycle action.

Checks, in order:
    1. The invoking identity is the designated service-operator account
    2. The installation root directory exists
    3. HADOOP_HOME and JAVA_HOME resolve; when unset, each is derived once
       (installation root / the real path of the ``java`` binary)

The result is a ``ClusterEnvironment``: an immutable value that every
other component receives as an argument. Nothing downstream reads
``os.environ`` again.

Usage:
    from clusterctl.config.preconditions import PreconditionGate

    env = PreconditionGate(settings).verify()
    env.script_path("start-dfs.sh")
"""

from __future__ import annotations

import getpass
import logging
import os
import shutil
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from clusterctl.config.settings import ControlPlaneSettings
from clusterctl.core.errors import PreconditionError

__all__ = [
    "ClusterEnvironment",
    "PreconditionGate",
    "derive_java_home",
]

logger = logging.getLogger(__name__)

DEFAULT_JAVA_BINARY = Path("/usr/bin/java")


@dataclass(frozen=True)
class ClusterEnvironment:
    """Resolved runtime configuration for one invocation."""

    settings: ControlPlaneSettings
    operator: str
    install_root: Path
    java_home: Path
    derived: tuple[str, ...] = ()
    base_env: Mapping[str, str] = field(default_factory=dict, repr=False)

    @property
    def workers_file(self) -> Path:
        return self.install_root / "etc" / "hadoop" / "workers"

    @property
    def hdfs_site(self) -> Path:
        return self.install_root / "etc" / "hadoop" / "hdfs-site.xml"

    @property
    def log_dir(self) -> Path:
        return self.install_root / "logs"

    @property
    def data_root(self) -> str:
        return self.settings.data_root

    def script_path(self, script: str) -> Path:
        """Path of a control script under ``sbin``."""
        return self.install_root / "sbin" / script

    def tool_path(self, tool: str) -> Path:
        """Path of a client tool (``hdfs``, ``yarn``) under ``bin``."""
        return self.install_root / "bin" / tool

    def subprocess_env(self) -> dict[str, str]:
        """Environment for local commands, including derived variables."""
        env = dict(self.base_env)
        env["HADOOP_HOME"] = str(self.install_root)
        env["JAVA_HOME"] = str(self.java_home)
        extra = f"{self.install_root / 'bin'}{os.pathsep}{self.install_root / 'sbin'}"
        env["PATH"] = f"{env['PATH']}{os.pathsep}{extra}" if env.get("PATH") else extra
        return env


def derive_java_home(java_binary: Path | None = None) -> Path | None:
    """Derive JAVA_HOME from the real path of the ``java`` binary.

    ``/usr/bin/java -> /usr/lib/jvm/java-11-openjdk-amd64/bin/java`` yields
    ``/usr/lib/jvm/java-11-openjdk-amd64``.
    """
    candidate = java_binary or DEFAULT_JAVA_BINARY
    if not candidate.exists():
        found = shutil.which("java")
        if not found:
            return None
        candidate = Path(found)

    resolved = candidate.resolve()
    if resolved.name != "java" or resolved.parent.name != "bin":
        return None
    return resolved.parent.parent


class PreconditionGate:
    """Verifies identity, installation and runtime variables."""

    def __init__(
        self,
        settings: ControlPlaneSettings,
        environ: Mapping[str, str] | None = None,
        user_lookup: Callable[[], str] = getpass.getuser,
        java_binary: Path | None = None,
    ):
        self._settings = settings
        self._environ = dict(os.environ if environ is None else environ)
        self._user_lookup = user_lookup
        self._java_binary = java_binary

    def verify(self) -> ClusterEnvironment:
        """Run every check in order.

        Raises:
            PreconditionError: On the first failing check.
        """
        operator = self._check_identity()
        install_root = self._check_installation()
        hadoop_home, java_home, derived = self._resolve_runtime(install_root)

        logger.info(f"[PreconditionGate] Environment OK (HADOOP_HOME={hadoop_home}, JAVA_HOME={java_home})")
        return ClusterEnvironment(
            settings=self._settings,
            operator=operator,
            install_root=hadoop_home,
            java_home=java_home,
            derived=tuple(derived),
            base_env=self._environ,
        )

    def _check_identity(self) -> str:
        current = self._user_lookup()
        expected = self._settings.operator_user
        if current != expected:
            raise PreconditionError(f"Must run as the '{expected}' user (current user: '{current}')")
        return current

    def _check_installation(self) -> Path:
        # An exported HADOOP_HOME names the installation; otherwise the configured root
        configured = self._environ.get("HADOOP_HOME") or self._settings.install_root
        root = Path(configured).expanduser()
        if not root.is_dir():
            raise PreconditionError(f"Installation directory does not exist: {root}")
        return root

    def _resolve_runtime(self, install_root: Path) -> tuple[Path, Path, list[str]]:
        derived: list[str] = []

        if self._environ.get("HADOOP_HOME"):
            hadoop_home = Path(self._environ["HADOOP_HOME"]).expanduser()
        else:
            hadoop_home = install_root
            derived.append("HADOOP_HOME")
            logger.warning(f"[PreconditionGate] HADOOP_HOME not set, using {hadoop_home}")

        if self._environ.get("JAVA_HOME"):
            java_home = Path(self._environ["JAVA_HOME"]).expanduser()
        else:
            logger.warning("[PreconditionGate] JAVA_HOME not set, deriving from the java binary")
            found = derive_java_home(self._java_binary)
            if found is None:
                raise PreconditionError("JAVA_HOME is not set and could not be derived; set it manually")
            java_home = found
            derived.append("JAVA_HOME")
            logger.info(f"[PreconditionGate] Derived JAVA_HOME: {java_home}")

        return hadoop_home, java_home, derived
