"""Control plane settings loader.

Settings are an immutable value with defaults matching a stock two-layer
Hadoop install under the operator's home directory. An optional YAML file
overrides individual keys.

Usage:
    from clusterctl.config.settings import load_settings

    settings = load_settings()                       # defaults / discovered file
    settings = load_settings(Path("ops/cluster.yaml"))

Example YAML:
    operator_user: hadoop
    install_root: ~/hadoop
    max_concurrency: 16
    convergence:
      timeout: 90
      max_delay: 15
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml

from clusterctl.core.errors import ConfigurationError
from clusterctl.utils.exceptions import FS_ERRORS

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "CLUSTERCTL_CONFIG"
DEFAULT_CONFIG_PATH = Path("~/.config/clusterctl/clusterctl.yaml")


@dataclass(frozen=True)
class ConvergencePolicy:
    """Bounded poll loop with capped exponential backoff."""

    timeout: float = 60.0
    initial_delay: float = 2.0
    max_delay: float = 10.0
    backoff: float = 2.0

    def delays(self):
        """Yield successive poll delays, capped at ``max_delay``."""
        delay = self.initial_delay
        while True:
            yield min(delay, self.max_delay)
            delay = delay * self.backoff if delay > 0 else self.max_delay


@dataclass(frozen=True)
class ControlPlaneSettings:
    """Every tunable of the control plane. Immutable once loaded."""

    operator_user: str = "hadoop"
    install_root: str = "~/hadoop"
    data_root: str = "~/hadoopdata"
    coordinator: str | None = None
    ssh_user: str | None = None
    ssh_port: int = 22
    process_list_command: str = "jps"
    reachability_timeout: float = 3.0
    ssh_connect_timeout: int = 5
    command_timeout: float = 120.0
    max_concurrency: int = 8
    convergence: ConvergencePolicy = field(default_factory=ConvergencePolicy)
    storage_web_port: int = 9870
    resource_web_port: int = 8088
    web_timeout: float = 3.0
    log_tail_lines: int = 5
    lock_path: str = "~/.clusterctl/cluster.lock"

    @property
    def lock_file(self) -> Path:
        return Path(self.lock_path).expanduser()


def _coerce(name: str, value: Any, expected: Any) -> Any:
    """Check a YAML value against the default's type."""
    if value is None:
        # Only settings that default to None may be left empty
        if expected is None:
            return None
        raise ConfigurationError(f"Setting '{name}' must not be empty")
    if isinstance(expected, bool) or expected is bool:
        if not isinstance(value, bool):
            raise ConfigurationError(f"Setting '{name}' must be a boolean, got {value!r}")
        return value
    if isinstance(expected, float):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigurationError(f"Setting '{name}' must be a number, got {value!r}")
        return float(value)
    if isinstance(expected, int):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigurationError(f"Setting '{name}' must be an integer, got {value!r}")
        return value
    if not isinstance(value, str):
        raise ConfigurationError(f"Setting '{name}' must be a string, got {value!r}")
    return value


def _apply_overrides(base: Any, data: dict[str, Any], prefix: str = "") -> Any:
    known = {f.name: f for f in fields(base)}
    updates: dict[str, Any] = {}

    for key, value in data.items():
        name = f"{prefix}{key}"
        if key not in known:
            logger.warning(f"[Settings] Ignoring unknown setting '{name}'")
            continue
        current = getattr(base, key)
        if isinstance(current, ConvergencePolicy):
            if not isinstance(value, dict):
                raise ConfigurationError(f"Setting '{name}' must be a mapping")
            updates[key] = _apply_overrides(current, value, prefix=f"{name}.")
        else:
            updates[key] = _coerce(name, value, current)

    return replace(base, **updates)


def find_config_path(explicit: Path | None = None) -> Path | None:
    """Resolve which settings file to read, if any."""
    if explicit is not None:
        return explicit
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    default = DEFAULT_CONFIG_PATH.expanduser()
    return default if default.exists() else None


def load_settings(config_path: Path | None = None) -> ControlPlaneSettings:
    """Load settings from YAML over the built-in defaults.

    Raises:
        ConfigurationError: If an explicitly named file is missing, the YAML
            is malformed, or a value has the wrong type.
    """
    path = find_config_path(config_path)
    settings = ControlPlaneSettings()
    if path is None:
        logger.debug("[Settings] No settings file, using defaults")
        return settings

    path = path.expanduser()
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except FS_ERRORS as e:
        raise ConfigurationError(f"Cannot read settings file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Malformed settings file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Settings file {path} must contain a mapping")

    settings = _apply_overrides(settings, data)
    if settings.max_concurrency < 1:
        raise ConfigurationError("Setting 'max_concurrency' must be at least 1")

    logger.info(f"[Settings] Loaded settings from {path}")
    return settings
