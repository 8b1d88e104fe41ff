"""Script runner: argument parsing, logging setup and signal handling.

Usage:
    runner = ScriptRunner("clusterctl-check", description="Cluster health check")
    runner.add_argument("-f", "--full", action="store_true")
    args = runner.parse_args()

    with runner.run_context():
        ...
    if runner.interrupted:
        return EXIT_INTERRUPTED
"""

from __future__ import annotations

import argparse
import contextlib
import logging
import signal
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from clusterctl.core.logging_config import LOG_LEVELS, setup_logging


@dataclass
class ScriptConfig:
    """Common settings resolved from the command line."""

    name: str
    verbose: bool = False
    quiet: bool = False
    config_path: Path | None = None
    log_level: str = "INFO"


def add_common_args(parser: argparse.ArgumentParser) -> None:
    """Add -v/--verbose, -q/--quiet, --config and --log-level.

    ``-c`` is left free for tool-specific flags.
    """
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("-q", "--quiet", action="store_true", help="Only log errors")
    parser.add_argument("--config", type=Path, default=None, help="Settings YAML file")
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default="INFO",
        help="Logging level (default: INFO)",
    )


class ScriptRunner:
    """Wraps argparse, logging and shutdown handling for one CLI tool."""

    def __init__(self, name: str, description: str | None = None, add_common: bool = True):
        self.name = name
        self.parser = argparse.ArgumentParser(prog=name, description=description)
        self.logger: logging.Logger | None = None
        self.config: ScriptConfig | None = None
        self.interrupted = False
        self._shutdown_requested = False
        if add_common:
            add_common_args(self.parser)

    def add_argument(self, *args: Any, **kwargs: Any) -> argparse.Action:
        return self.parser.add_argument(*args, **kwargs)

    def add_mutually_exclusive_group(self) -> argparse._MutuallyExclusiveGroup:
        return self.parser.add_mutually_exclusive_group()

    def parse_args(self, argv: Sequence[str] | None = None) -> argparse.Namespace:
        args = self.parser.parse_args(argv)
        self._setup_logging(args)
        self.config = ScriptConfig(
            name=self.name,
            verbose=getattr(args, "verbose", False),
            quiet=getattr(args, "quiet", False),
            config_path=getattr(args, "config", None),
            log_level=getattr(args, "log_level", "INFO"),
        )
        return args

    def _setup_logging(self, args: argparse.Namespace) -> None:
        if getattr(args, "verbose", False):
            level = "DEBUG"
        elif getattr(args, "quiet", False):
            level = "ERROR"
        else:
            level = getattr(args, "log_level", "INFO")
        setup_logging(level)
        self.logger = logging.getLogger(f"clusterctl.cli.{self.name}")

    @property
    def shutdown_requested(self) -> bool:
        return self._shutdown_requested

    def request_shutdown(self) -> None:
        self._shutdown_requested = True

    def _handle_signal(self, signum: int, frame: Any) -> None:
        self.request_shutdown()
        # Unwind through the operation so locks and subprocesses are released
        raise KeyboardInterrupt

    @contextlib.contextmanager
    def run_context(self) -> Iterator[ScriptRunner]:
        """Install SIGTERM handling and absorb Ctrl-C."""
        previous = signal.signal(signal.SIGTERM, self._handle_signal)
        try:
            yield self
        except KeyboardInterrupt:
            self.interrupted = True
            if self.logger:
                self.logger.warning(f"[{self.name}] Interrupted")
        finally:
            signal.signal(signal.SIGTERM, previous)
