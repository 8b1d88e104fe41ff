"""Tests for settings loading."""

from __future__ import annotations

import itertools
from pathlib import Path

import pytest

from clusterctl.config.settings import (
    CONFIG_ENV_VAR,
    ControlPlaneSettings,
    ConvergencePolicy,
    find_config_path,
    load_settings,
)
from clusterctl.core.errors import ConfigurationError, PreconditionError


class TestDefaults:
    """Defaults match a stock install under the operator's home."""

    def test_defaults(self):
        settings = ControlPlaneSettings()

        assert settings.operator_user == "hadoop"
        assert settings.install_root == "~/hadoop"
        assert settings.reachability_timeout == 3.0
        assert settings.ssh_connect_timeout == 5
        assert settings.storage_web_port == 9870
        assert settings.resource_web_port == 8088
        assert settings.max_concurrency == 8

    def test_settings_are_immutable(self):
        settings = ControlPlaneSettings()
        with pytest.raises(AttributeError):
            settings.operator_user = "root"  # type: ignore[misc]

    def test_lock_file_is_expanded(self):
        settings = ControlPlaneSettings(lock_path="~/locks/cluster.lock")
        assert settings.lock_file == Path("~/locks/cluster.lock").expanduser()


class TestConvergencePolicy:
    """Tests for the backoff schedule."""

    def test_delays_grow_and_cap(self):
        policy = ConvergencePolicy(initial_delay=1.0, max_delay=5.0, backoff=2.0)
        assert list(itertools.islice(policy.delays(), 5)) == [1.0, 2.0, 4.0, 5.0, 5.0]

    def test_zero_initial_delay_jumps_to_cap(self):
        policy = ConvergencePolicy(initial_delay=0.0, max_delay=3.0)
        assert list(itertools.islice(policy.delays(), 3)) == [0.0, 3.0, 3.0]


class TestLoadSettings:
    """Tests for load_settings."""

    def test_no_file_uses_defaults(self, monkeypatch, tmp_path):
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        monkeypatch.setattr("clusterctl.config.settings.DEFAULT_CONFIG_PATH", tmp_path / "absent.yaml")

        assert load_settings() == ControlPlaneSettings()

    def test_overrides_from_yaml(self, tmp_path):
        path = tmp_path / "clusterctl.yaml"
        path.write_text(
            "operator_user: hdfsadmin\n"
            "max_concurrency: 16\n"
            "reachability_timeout: 2\n"
            "convergence:\n"
            "  timeout: 90\n"
            "  max_delay: 15\n"
        )

        settings = load_settings(path)

        assert settings.operator_user == "hdfsadmin"
        assert settings.max_concurrency == 16
        assert settings.reachability_timeout == 2.0
        assert settings.convergence.timeout == 90.0
        assert settings.convergence.max_delay == 15.0
        assert settings.convergence.initial_delay == ConvergencePolicy().initial_delay

    def test_env_var_names_file(self, tmp_path, monkeypatch):
        path = tmp_path / "from-env.yaml"
        path.write_text("coordinator: hadoop-master\n")
        monkeypatch.setenv(CONFIG_ENV_VAR, str(path))

        assert find_config_path() == path
        assert load_settings().coordinator == "hadoop-master"

    def test_unknown_keys_are_ignored(self, tmp_path):
        path = tmp_path / "clusterctl.yaml"
        path.write_text("not_a_setting: 1\nssh_port: 2222\n")

        settings = load_settings(path)

        assert settings.ssh_port == 2222
        assert not hasattr(settings, "not_a_setting")

    def test_wrong_type(self, tmp_path):
        path = tmp_path / "clusterctl.yaml"
        path.write_text("max_concurrency: lots\n")
        with pytest.raises(ConfigurationError, match="max_concurrency"):
            load_settings(path)

    def test_bool_is_not_an_integer(self, tmp_path):
        path = tmp_path / "clusterctl.yaml"
        path.write_text("ssh_port: true\n")
        with pytest.raises(ConfigurationError):
            load_settings(path)

    def test_empty_required_setting(self, tmp_path):
        path = tmp_path / "clusterctl.yaml"
        path.write_text("install_root: ~\n")
        with pytest.raises(ConfigurationError, match="install_root"):
            load_settings(path)

    def test_empty_optional_setting(self, tmp_path):
        path = tmp_path / "clusterctl.yaml"
        path.write_text("ssh_user: ~\ncoordinator: null\n")

        settings = load_settings(path)

        assert settings.ssh_user is None
        assert settings.coordinator is None

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "clusterctl.yaml"
        path.write_text("operator_user: [unclosed\n")
        with pytest.raises(ConfigurationError, match="Malformed"):
            load_settings(path)

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "clusterctl.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigurationError, match="mapping"):
            load_settings(path)

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_settings(tmp_path / "missing.yaml")

    def test_concurrency_must_be_positive(self, tmp_path):
        path = tmp_path / "clusterctl.yaml"
        path.write_text("max_concurrency: 0\n")
        with pytest.raises(ConfigurationError, match="at least 1"):
            load_settings(path)

    def test_configuration_error_is_a_precondition_failure(self, tmp_path):
        with pytest.raises(PreconditionError) as exc_info:
            load_settings(tmp_path / "missing.yaml")
        assert exc_info.value.exit_code == 2
