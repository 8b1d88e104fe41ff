"""Tests for the topology resolver."""

from __future__ import annotations

from dataclasses import replace

import pytest

from clusterctl.config.topology import (
    DEFAULT_REPLICATION,
    load_workers,
    parse_worker_list,
    read_replication,
    resolve_topology,
)
from clusterctl.core.errors import TopologyError

HDFS_SITE = """<?xml version="1.0"?>
<configuration>
  <property>
    <name>dfs.namenode.name.dir</name>
    <value>/home/hadoop/hadoopdata/hdfs/namenode</value>
  </property>
  <property>
    <name>dfs.replication</name>
    <value>{value}</value>
  </property>
</configuration>
"""


class TestParseWorkerList:
    """Tests for parse_worker_list."""

    def test_one_host_per_line(self):
        assert parse_worker_list("hadoop-slave1\nhadoop-slave2\n") == ["hadoop-slave1", "hadoop-slave2"]

    def test_ignores_blank_lines_and_comments(self):
        text = "# workers\n\nhadoop-slave1\n   \n#hadoop-old\nhadoop-slave2\n"
        assert parse_worker_list(text) == ["hadoop-slave1", "hadoop-slave2"]

    def test_strips_inline_comments_and_whitespace(self):
        assert parse_worker_list("  hadoop-slave1   # rack A\n") == ["hadoop-slave1"]

    def test_drops_duplicates_keeping_first_position(self):
        text = "b\na\nb\nc\n"
        assert parse_worker_list(text) == ["b", "a", "c"]


class TestLoadWorkers:
    """Tests for load_workers."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(TopologyError, match="not found"):
            load_workers(tmp_path / "workers")

    def test_empty_file(self, tmp_path):
        path = tmp_path / "workers"
        path.write_text("# nothing here\n\n")
        with pytest.raises(TopologyError, match="no workers"):
            load_workers(path)

    def test_reads_file(self, tmp_path):
        path = tmp_path / "workers"
        path.write_text("w1\nw2\nw3\n")
        assert load_workers(path) == ["w1", "w2", "w3"]


class TestReadReplication:
    """Tests for read_replication."""

    def test_missing_file_uses_default(self, tmp_path):
        assert read_replication(tmp_path / "hdfs-site.xml") == DEFAULT_REPLICATION

    def test_reads_property(self, tmp_path):
        path = tmp_path / "hdfs-site.xml"
        path.write_text(HDFS_SITE.format(value="2"))
        assert read_replication(path) == 2

    def test_property_absent_uses_default(self, tmp_path):
        path = tmp_path / "hdfs-site.xml"
        path.write_text("<configuration></configuration>")
        assert read_replication(path) == DEFAULT_REPLICATION

    def test_non_integer_value(self, tmp_path):
        path = tmp_path / "hdfs-site.xml"
        path.write_text(HDFS_SITE.format(value="two"))
        with pytest.raises(TopologyError, match="not an integer"):
            read_replication(path)

    def test_zero_is_rejected(self, tmp_path):
        path = tmp_path / "hdfs-site.xml"
        path.write_text(HDFS_SITE.format(value="0"))
        with pytest.raises(TopologyError, match="positive"):
            read_replication(path)

    def test_malformed_xml(self, tmp_path):
        path = tmp_path / "hdfs-site.xml"
        path.write_text("<configuration><property>")
        with pytest.raises(TopologyError, match="Malformed"):
            read_replication(path)


class TestResolveTopology:
    """Tests for resolve_topology."""

    def test_builds_topology_from_install_tree(self, cluster_env):
        cluster_env.workers_file.write_text("hadoop-slave1\nhadoop-slave2\n")
        cluster_env.hdfs_site.write_text(HDFS_SITE.format(value="2"))
        env = replace(cluster_env, settings=replace(cluster_env.settings, coordinator="hadoop-master"))

        topology = resolve_topology(env)

        assert topology.coordinator == "hadoop-master"
        assert topology.workers == ("hadoop-slave1", "hadoop-slave2")
        assert topology.total_workers == 2
        assert topology.configured_replication == 2

    def test_coordinator_defaults_to_hostname(self, cluster_env, monkeypatch):
        cluster_env.workers_file.write_text("w1\n")
        monkeypatch.setattr("clusterctl.config.topology.socket.gethostname", lambda: "this-host")

        topology = resolve_topology(cluster_env)

        assert topology.coordinator == "this-host"

    def test_missing_worker_file_is_fatal(self, cluster_env):
        with pytest.raises(TopologyError):
            resolve_topology(cluster_env)
