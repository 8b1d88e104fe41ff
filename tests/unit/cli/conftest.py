"""Fixtures for CLI driver tests."""

from __future__ import annotations

import logging
from types import SimpleNamespace

import pytest

from clusterctl.core.logging_config import ROOT_LOGGER_NAME


@pytest.fixture(autouse=True)
def reset_clusterctl_logging():
    """Drop handlers bound to pytest's captured streams after each test."""
    yield
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def plain_output(monkeypatch):
    monkeypatch.setattr("clusterctl.cli.output._USE_COLORS", False)


@pytest.fixture
def fake_context(cluster_env, topology, fake_executor, prober, tmp_path):
    """Stand-in for build_context() wired to the in-memory cluster."""
    return SimpleNamespace(
        settings=SimpleNamespace(lock_file=tmp_path / "cluster.lock"),
        env=cluster_env,
        topology=topology,
        executor=fake_executor,
        prober=prober,
    )
