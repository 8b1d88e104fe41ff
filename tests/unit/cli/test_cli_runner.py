"""Tests for CLI runner module.

Tests the command-line script runner functionality:
- ScriptRunner: argument parsing, logging setup and shutdown handling
- add_common_args: common CLI arguments
"""

from __future__ import annotations

import argparse
import logging
import signal
from pathlib import Path

import pytest

from clusterctl.cli.runner import ScriptConfig, ScriptRunner, add_common_args


class TestScriptConfig:
    """Tests for the ScriptConfig dataclass."""

    def test_defaults(self):
        config = ScriptConfig(name="clusterctl-check")

        assert config.verbose is False
        assert config.quiet is False
        assert config.config_path is None
        assert config.log_level == "INFO"


class TestAddCommonArgs:
    """Tests for add_common_args."""

    def test_defaults(self):
        parser = argparse.ArgumentParser()
        add_common_args(parser)

        args = parser.parse_args([])

        assert args.verbose is False
        assert args.quiet is False
        assert args.config is None
        assert args.log_level == "INFO"

    def test_config_is_a_path(self):
        parser = argparse.ArgumentParser()
        add_common_args(parser)

        args = parser.parse_args(["--config", "/etc/clusterctl.yaml"])

        assert args.config == Path("/etc/clusterctl.yaml")

    def test_short_c_is_free(self):
        parser = argparse.ArgumentParser()
        add_common_args(parser)
        parser.add_argument("-c", "--component")

        assert parser.parse_args(["-c", "yarn"]).component == "yarn"

    def test_invalid_log_level(self):
        parser = argparse.ArgumentParser()
        add_common_args(parser)

        with pytest.raises(SystemExit):
            parser.parse_args(["--log-level", "CHATTY"])


class TestScriptRunner:
    """Tests for ScriptRunner."""

    def test_parse_args_builds_config(self):
        runner = ScriptRunner("clusterctl-check")
        runner.add_argument("--json", action="store_true")

        args = runner.parse_args(["--json", "-q"])

        assert args.json is True
        assert runner.config.quiet is True
        assert runner.logger.name == "clusterctl.cli.clusterctl-check"

    @pytest.mark.parametrize(
        ("argv", "level"),
        [([], logging.INFO), (["-v"], logging.DEBUG), (["-q"], logging.ERROR), (["--log-level", "WARNING"], logging.WARNING)],
    )
    def test_logging_level(self, argv, level):
        runner = ScriptRunner("clusterctl-manage")

        runner.parse_args(argv)

        assert logging.getLogger("clusterctl").level == level

    def test_without_common_args(self):
        runner = ScriptRunner("bare", add_common=False)

        with pytest.raises(SystemExit):
            runner.parser.parse_args(["-v"])

    def test_run_context_absorbs_interrupt(self):
        runner = ScriptRunner("clusterctl-manage")
        runner.parse_args([])

        with runner.run_context():
            raise KeyboardInterrupt

        assert runner.interrupted

    def test_run_context_restores_sigterm_handler(self):
        runner = ScriptRunner("clusterctl-manage")
        before = signal.getsignal(signal.SIGTERM)

        with runner.run_context():
            assert signal.getsignal(signal.SIGTERM) == runner._handle_signal

        assert signal.getsignal(signal.SIGTERM) == before

    def test_sigterm_handler_requests_shutdown(self):
        runner = ScriptRunner("clusterctl-manage")

        with pytest.raises(KeyboardInterrupt):
            runner._handle_signal(signal.SIGTERM, None)

        assert runner.shutdown_requested

    def test_other_errors_propagate(self):
        runner = ScriptRunner("clusterctl-manage")

        with pytest.raises(RuntimeError):
            with runner.run_context():
                raise RuntimeError("boom")

        assert not runner.interrupted
