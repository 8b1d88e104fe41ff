"""Tests for the diagnostic reporter.

Reports are built by hand so rendering is checked independently of probing.
"""

from __future__ import annotations

import pytest

from clusterctl.models.cluster import (
    ClusterHealthReport,
    ClusterTopology,
    FsckStatus,
    LayerDetail,
    LayerState,
    LayerSummary,
    NodeHealthReport,
    ResourceSnapshot,
    ServiceLayer,
    ServiceRole,
)
from clusterctl.monitoring.diagnostic_reporter import DiagnosticReporter, ReportLine, derived_warnings

TOPOLOGY = ClusterTopology("hadoop-master", ("hadoop-slave1", "hadoop-slave2"), configured_replication=2)


def node(name: str, roles=(), reachable=True, trusted=True, coordinator=False, errors=()) -> NodeHealthReport:
    report = NodeHealthReport(
        node=name,
        reachable=reachable,
        ssh_trusted=trusted,
        is_coordinator=coordinator,
        roles_observed=reachable and trusted,
        errors=list(errors),
    )
    for role in roles:
        report.roles_present[role] = True
    return report


def cluster(mode: str = "full", slave2_reachable: bool = True) -> ClusterHealthReport:
    report = ClusterHealthReport(topology=TOPOLOGY, mode=mode)
    master = node("hadoop-master", (ServiceRole.STORAGE_MASTER, ServiceRole.RESOURCE_MASTER), coordinator=True)
    master.process_list = "101 NameNode\n102 ResourceManager\n"
    worker_roles = (ServiceRole.STORAGE_WORKER, ServiceRole.RESOURCE_WORKER)
    report.per_node = {
        "hadoop-master": master,
        "hadoop-slave1": node("hadoop-slave1", worker_roles),
        "hadoop-slave2": node("hadoop-slave2", worker_roles if slave2_reachable else (), reachable=slave2_reachable),
    }
    live = 2 if slave2_reachable else 1
    state = LayerState.RUNNING if slave2_reachable else LayerState.PARTIALLY_RUNNING
    for layer in ServiceLayer:
        report.layers[layer] = LayerSummary(layer, state, live, 2)
    return report


def texts(lines: list[ReportLine]) -> list[str]:
    return [line.text for line in lines]


# =============================================================================
# Derived warnings
# =============================================================================


class TestDerivedWarnings:
    """Tests for derived_warnings."""

    def test_healthy_cluster_has_none(self):
        assert derived_warnings(cluster()) == []

    def test_unreachable_worker_and_partial_layers(self):
        warnings = derived_warnings(cluster(slave2_reachable=False))

        assert any("hadoop-slave2" in w and "unreachable" in w for w in warnings)
        assert sum("1 of 2 worker(s) not running" in w for w in warnings) == 2

    def test_replication_exceeds_workers(self):
        report = cluster()
        report.topology = ClusterTopology("hadoop-master", ("hadoop-slave1", "hadoop-slave2"), 3)

        assert any("replication (3) exceeds" in w for w in derived_warnings(report))

    def test_safemode_and_corruption(self):
        report = cluster()
        report.details[ServiceLayer.STORAGE] = LayerDetail(
            ServiceLayer.STORAGE,
            master_running=True,
            safemode=True,
            fsck_status=FsckStatus.CORRUPT,
            fsck_counts={"corrupt": 3, "missing": 1},
        )

        warnings = derived_warnings(report)

        assert "HDFS is in safemode (read-only)" in warnings
        assert "Filesystem check reports CORRUPT (corrupt=3, missing=1)" in warnings

    def test_under_replicated_blocks(self):
        report = cluster()
        report.details[ServiceLayer.STORAGE] = LayerDetail(
            ServiceLayer.STORAGE, master_running=True, fsck_status=FsckStatus.HEALTHY,
            fsck_counts={"under-replicated": 4},
        )

        assert "4 under-replicated block(s)" in derived_warnings(report)

    def test_unknown_layer(self):
        report = cluster()
        report.layers[ServiceLayer.RESOURCE] = LayerSummary(ServiceLayer.RESOURCE, LayerState.UNKNOWN, 0, 2)

        assert any("YARN state is unknown" in w for w in derived_warnings(report))


# =============================================================================
# Rendering
# =============================================================================


class TestRenderBasic:
    """Tests for basic mode."""

    def test_sections_and_summaries(self):
        report = cluster(mode="basic")
        report.web_urls = {"NameNode": "http://hadoop-master:9870"}
        report.web_endpoints = {"NameNode": True}

        lines = DiagnosticReporter(report).render()
        rendered = texts(lines)

        assert lines[0] == ReportLine("Cluster status (hadoop-master)", "section")
        assert "  101 NameNode" in rendered
        assert "HDFS: running - NameNode running, 2/2 DataNodes live" in rendered
        assert "NameNode: http://hadoop-master:9870 (responding)" in rendered
        assert "Warnings" not in rendered

    def test_partial_layer_is_marked_warning(self):
        lines = DiagnosticReporter(cluster(mode="basic", slave2_reachable=False)).render()

        summary = next(line for line in lines if line.text.startswith("YARN:"))
        assert summary.status == "warning"
        assert "1/2 NodeManagers live" in summary.text
        assert ReportLine("Warnings", "section") in lines

    def test_unobservable_coordinator(self):
        report = cluster(mode="basic")
        report.per_node["hadoop-master"] = node(
            "hadoop-master", reachable=False, coordinator=True, errors=["jps: command not found"]
        )

        rendered = texts(DiagnosticReporter(report).render())

        assert "Process listing unavailable (jps: command not found)" in rendered


class TestRenderFull:
    """Tests for full mode."""

    def test_nodes_in_topology_order(self):
        rendered = texts(DiagnosticReporter(cluster()).render())

        headings = [t for t in rendered if t.startswith("Node ")]
        assert headings == ["Node hadoop-master (coordinator)", "Node hadoop-slave1", "Node hadoop-slave2"]
        assert "Workers with every role live: 2/2 (deficit 0)" in rendered

    def test_unreachable_node_section(self):
        rendered = texts(DiagnosticReporter(cluster(slave2_reachable=False)).render())

        index = rendered.index("Node hadoop-slave2")
        assert rendered[index + 1] == "Not reachable"

    def test_untrusted_node_section(self):
        report = cluster()
        report.per_node["hadoop-slave1"] = node(
            "hadoop-slave1", trusted=False, errors=["auth failure: Permission denied"]
        )

        rendered = texts(DiagnosticReporter(report).render())

        index = rendered.index("Node hadoop-slave1")
        assert rendered[index + 1:index + 4] == ["Reachable", "Password-less SSH failed", "auth failure: Permission denied"]

    def test_resources_rendered(self):
        report = cluster()
        report.per_node["hadoop-slave1"].resources = ResourceSnapshot(
            disk_percent=42.0, memory_percent=12.5, load_average=(0.5, 0.25, 0.1),
            listings={"data": "drwx------ 3 hadoop hadoop 4096 dfs"},
        )

        rendered = texts(DiagnosticReporter(report).render())

        assert "Disk usage (/): 42%" in rendered
        assert "Memory usage: 12.5%" in rendered
        assert "Load average: 0.50, 0.25, 0.10" in rendered
        assert "Directory (data):" in rendered

    def test_storage_detail(self):
        report = cluster()
        report.details[ServiceLayer.STORAGE] = LayerDetail(
            ServiceLayer.STORAGE,
            master_running=True,
            reported_live=2,
            safemode=False,
            fsck_status=FsckStatus.HEALTHY,
            worker_presence={"hadoop-slave1": True, "hadoop-slave2": False},
        )

        lines = DiagnosticReporter(report).render()
        rendered = texts(lines)

        assert "HDFS details" in rendered
        assert "Safemode: OFF" in rendered
        assert ReportLine("Filesystem check: HEALTHY", "success") in lines
        assert ReportLine("hadoop-slave2: DataNode not running", "warning") in lines


class TestRenderComponentAndNode:
    """Tests for component and node modes."""

    def test_component_shows_only_selected_layer(self):
        report = cluster(mode="component")
        report.details[ServiceLayer.RESOURCE] = LayerDetail(
            ServiceLayer.RESOURCE, master_running=False,
            errors=["ResourceManager is not running; detailed YARN check unavailable"],
        )

        rendered = texts(DiagnosticReporter(report).render())

        assert "YARN details" in rendered
        assert "HDFS details" not in rendered
        assert "ResourceManager is not running" in rendered
        assert not any(t.startswith("Node ") for t in rendered)

    def test_node_mode(self):
        report = ClusterHealthReport(topology=TOPOLOGY, mode="node")
        report.per_node["hadoop-slave1"] = node("hadoop-slave1", (ServiceRole.STORAGE_WORKER,))

        rendered = texts(DiagnosticReporter(report).render())

        assert rendered[0] == "Node hadoop-slave1"
        assert "Roles: DataNode" in rendered
        assert "Warnings" not in rendered

    @pytest.mark.parametrize("target", ["hadoop-slave1", "hadoop-slave2"])
    def test_node_filter(self, target):
        rendered = texts(DiagnosticReporter(cluster()).render_node(target))

        headings = [t for t in rendered if t.startswith("Node ")]
        assert headings == [f"Node {target}"]
