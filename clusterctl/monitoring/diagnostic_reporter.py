"""Diagnostic Reporter - renders a ClusterHealthReport for operators.

Rendering is pure: every method turns an already-probed report into
``ReportLine`` values and never contacts a node. The CLI decides how the
lines reach the terminal (colored markers, plain text, or JSON instead).

Modes:
    basic      process list, live/total counts, web endpoints
    full       basic + every layer drill-down + deep check of every node
    component  drill-down of the selected layers only
    node       deep check of one node

Usage:
    reporter = DiagnosticReporter(report)
    for line in reporter.render():
        print(line.text)
"""

from __future__ import annotations

from dataclasses import dataclass

from clusterctl.models.cluster import (
    ClusterHealthReport,
    FsckStatus,
    LayerDetail,
    LayerState,
    NodeHealthReport,
    ServiceLayer,
    ServiceRole,
)

__all__ = ["DiagnosticReporter", "ReportLine", "derived_warnings"]

MAX_BLOCK_LINES = 40

_STATE_STATUS = {
    LayerState.RUNNING: "success",
    LayerState.PARTIALLY_RUNNING: "warning",
    LayerState.STOPPED: "error",
    LayerState.UNKNOWN: "error",
}


@dataclass(frozen=True)
class ReportLine:
    """One rendered line.

    ``status`` is one of info, success, warning, error (a marked line),
    section (a heading) or verbatim (command output, printed as is).
    """

    text: str
    status: str = "info"


def derived_warnings(report: ClusterHealthReport) -> list[str]:
    """Warning-level findings derived from a report."""
    warnings = [issue.message for issue in report.issues()]

    replication = report.topology.configured_replication
    if report.mode != "node" and replication > report.total_worker_count:
        warnings.append(
            f"Configured replication ({replication}) exceeds the number of workers "
            f"({report.total_worker_count}); blocks will stay under-replicated"
        )

    for layer, summary in report.layers.items():
        if summary.state == LayerState.UNKNOWN:
            warnings.append(f"{layer.display_name} state is unknown: the coordinator could not be probed")

    storage = report.details.get(ServiceLayer.STORAGE)
    if storage is not None:
        if storage.safemode:
            warnings.append("HDFS is in safemode (read-only)")
        if storage.fsck_status == FsckStatus.CORRUPT:
            counts = ", ".join(f"{k}={v}" for k, v in sorted(storage.fsck_counts.items()))
            warnings.append("Filesystem check reports CORRUPT" + (f" ({counts})" if counts else ""))
        elif storage.fsck_counts.get("under-replicated", 0):
            warnings.append(f"{storage.fsck_counts['under-replicated']} under-replicated block(s)")
    return warnings


class DiagnosticReporter:
    """Turns a health report into lines for one of the four modes."""

    def __init__(self, report: ClusterHealthReport):
        self.report = report
        self._lines: list[ReportLine] = []

    def render(self) -> list[ReportLine]:
        """Render according to the report's mode."""
        mode = self.report.mode
        if mode == "basic":
            return self.render_basic()
        if mode == "component":
            return self.render_component()
        if mode == "node":
            return self.render_node()
        return self.render_full()

    # =========================================================================
    # Modes
    # =========================================================================

    def render_basic(self) -> list[ReportLine]:
        self._lines = []
        self._section(f"Cluster status ({self.report.topology.coordinator})")
        self._process_list()
        self._layer_summaries()
        self._web_endpoints()
        self._warnings()
        return self._lines

    def render_full(self) -> list[ReportLine]:
        self._lines = []
        self._section(f"Full cluster check ({self.report.topology.coordinator})")
        self._process_list()
        self._layer_summaries()
        self._web_endpoints()
        for layer in ServiceLayer:
            if layer in self.report.details:
                self._layer_detail(self.report.details[layer])
        for node_report in self.report.ordered_reports():
            self._node(node_report)
        self._warnings()
        return self._lines

    def render_component(self) -> list[ReportLine]:
        self._lines = []
        for layer in ServiceLayer:
            if layer in self.report.details:
                summary = self.report.layers.get(layer)
                if summary is not None:
                    self._layer_summary(layer)
                self._layer_detail(self.report.details[layer])
        self._warnings()
        return self._lines

    def render_node(self, node: str | None = None) -> list[ReportLine]:
        self._lines = []
        reports = self.report.ordered_reports()
        if node is not None:
            reports = [r for r in reports if r.node == node]
        for node_report in reports:
            self._node(node_report)
        self._warnings()
        return self._lines

    # =========================================================================
    # Building blocks
    # =========================================================================

    def _add(self, text: str, status: str = "info") -> None:
        self._lines.append(ReportLine(text, status))

    def _section(self, title: str) -> None:
        self._add(title, "section")

    def _block(self, text: str, limit: int = MAX_BLOCK_LINES) -> None:
        lines = text.rstrip().splitlines()
        if not lines:
            self._add("  (no output)", "verbatim")
            return
        for line in lines[:limit]:
            self._add(f"  {line}", "verbatim")
        if len(lines) > limit:
            self._add(f"  ... {len(lines) - limit} more line(s)", "verbatim")

    def _process_list(self) -> None:
        coordinator = self.report.coordinator_report
        self._section("Coordinator processes")
        if coordinator is None or not coordinator.roles_observed:
            reason = "; ".join(coordinator.errors) if coordinator else "not probed"
            self._add(f"Process listing unavailable ({reason})", "error")
            return
        self._block(coordinator.process_list)

    def _layer_summaries(self) -> None:
        self._section("Layers")
        for layer in ServiceLayer:
            if layer in self.report.layers:
                self._layer_summary(layer)
        if self.report.layers and self.report.mode != "basic":
            self._add(
                f"Workers with every role live: {self.report.live_worker_count}/"
                f"{self.report.total_worker_count} (deficit {self.report.deficit})",
                "success" if self.report.deficit == 0 else "warning",
            )

    def _layer_summary(self, layer: ServiceLayer) -> None:
        summary = self.report.layers[layer]
        master = "running" if summary.state in (LayerState.RUNNING, LayerState.PARTIALLY_RUNNING) else "not running"
        if summary.state == LayerState.UNKNOWN:
            master = "unknown"
        self._add(
            f"{layer.display_name}: {summary.state.value} - {layer.master_role.value} {master}, "
            f"{summary.live_workers}/{summary.total_workers} {layer.worker_role.value}s live",
            _STATE_STATUS[summary.state],
        )

    def _web_endpoints(self) -> None:
        if not self.report.web_urls:
            return
        self._section("Web interfaces")
        for name, url in self.report.web_urls.items():
            ok = self.report.web_endpoints.get(name)
            if ok is None:
                self._add(f"{name}: {url}", "info")
            elif ok:
                self._add(f"{name}: {url} (responding)", "success")
            else:
                self._add(f"{name}: {url} (not responding)", "warning")

    def _layer_detail(self, detail: LayerDetail) -> None:
        layer = detail.layer
        self._section(f"{layer.display_name} details")
        if not detail.master_running:
            self._add(f"{layer.master_role.value} is not running", "error")
            for error in detail.errors:
                self._add(error, "warning")
            self._worker_presence(detail)
            return

        self._add(f"{layer.master_role.value} is running", "success")
        if layer is ServiceLayer.STORAGE:
            self._storage_detail(detail)
        else:
            self._resource_detail(detail)
        self._worker_presence(detail)
        for error in detail.errors:
            self._add(error, "warning")

    def _storage_detail(self, detail: LayerDetail) -> None:
        if detail.reported_live is not None:
            self._add(f"Live datanodes (reported): {detail.reported_live}")
        if detail.safemode is None:
            self._add("Safemode: unknown", "warning")
        else:
            self._add(f"Safemode: {'ON' if detail.safemode else 'OFF'}", "warning" if detail.safemode else "success")

        status = detail.fsck_status or FsckStatus.UNKNOWN
        fsck_marker = {FsckStatus.HEALTHY: "success", FsckStatus.CORRUPT: "error"}.get(status, "warning")
        self._add(f"Filesystem check: {status.value.upper()}", fsck_marker)
        for name, count in sorted(detail.fsck_counts.items()):
            self._add(f"  {name} blocks: {count}", "verbatim")

        for key, title in (("ls", "Filesystem root"), ("du", "Space used"), ("report", "Storage report")):
            if detail.outputs.get(key):
                self._add(f"{title}:", "info")
                self._block(detail.outputs[key])

    def _resource_detail(self, detail: LayerDetail) -> None:
        if detail.reported_live is not None:
            self._add(f"Running nodemanagers (reported): {detail.reported_live}")
        if detail.service_state:
            self._add(f"ResourceManager HA state: {detail.service_state}")
        for key, title in (("applications", "Applications"), ("nodes", "Nodes"), ("queue", "Default queue")):
            if detail.outputs.get(key):
                self._add(f"{title}:", "info")
                self._block(detail.outputs[key])

    def _worker_presence(self, detail: LayerDetail) -> None:
        role = detail.layer.worker_role
        for worker, present in detail.worker_presence.items():
            node_report = self.report.per_node.get(worker)
            if node_report is not None and not node_report.reachable:
                self._add(f"{worker}: unreachable", "error")
            elif node_report is not None and not node_report.ssh_trusted:
                self._add(f"{worker}: ssh refused", "error")
            else:
                self._add(f"{worker}: {role.value} {'running' if present else 'not running'}",
                          "success" if present else "warning")

    def _node(self, node_report: NodeHealthReport) -> None:
        label = " (coordinator)" if node_report.is_coordinator else ""
        self._section(f"Node {node_report.node}{label}")
        if not node_report.reachable:
            self._add("Not reachable", "error")
            return
        self._add("Reachable", "success")
        if not node_report.ssh_trusted:
            self._add("Password-less SSH failed", "error")
            for error in node_report.errors:
                self._add(error, "warning")
            return
        if not node_report.is_coordinator:
            self._add("Password-less SSH OK", "success")

        if node_report.roles_observed:
            roles = [r for r in ServiceRole if node_report.has_role(r)]
            if roles:
                self._add(f"Roles: {', '.join(r.value for r in roles)}", "success")
            else:
                self._add("Roles: none running", "warning")

        resources = node_report.resources
        if resources is not None:
            if resources.disk_percent is not None:
                self._add(f"Disk usage (/): {resources.disk_percent:.0f}%")
            if resources.memory_percent is not None:
                self._add(f"Memory usage: {resources.memory_percent:.1f}%")
            if resources.load_average is not None:
                load = ", ".join(f"{v:.2f}" for v in resources.load_average)
                self._add(f"Load average: {load}")
            if resources.uptime_report:
                self._add(f"Uptime: {resources.uptime_report}")
            for label_name, listing in resources.listings.items():
                self._add(f"Directory ({label_name}):")
                self._block(listing, limit=15)
            if resources.log_tail.strip():
                self._add("Recent log lines:")
                self._block(resources.log_tail)

        for error in node_report.errors:
            self._add(error, "warning")

    def _warnings(self) -> None:
        warnings = derived_warnings(self.report)
        if not warnings:
            return
        self._section("Warnings")
        for warning in warnings:
            self._add(warning, "warning")
