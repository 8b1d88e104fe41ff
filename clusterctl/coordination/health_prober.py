"""Remote Health Prober - read-only checks against every node.

For the coordinator the checks are local and authoritative. For each
worker, in order:
    1. Reachability (bounded network probe); failure short-circuits the rest
    2. SSH trust (bounded non-interactive login); failure skips role checks
    3. Role presence (process listing matched against role signatures)
    4. Resource snapshot, detailed probes only (disk, memory, load, logs)

Workers are probed with bounded concurrency; results are gathered back
into topology order. A failure on one node is recorded in that node's
report and never stops the probing of the others.

Usage:
    prober = HealthProber(env, topology, executor)
    report = await prober.probe_cluster()              # role presence on every node
    report = await prober.probe_basic()                # coordinator only
    report = await prober.probe_full()                 # every node, every layer
    detail = await prober.collect_layer_detail(ServiceLayer.STORAGE, report)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

import aiohttp

from clusterctl.config.preconditions import ClusterEnvironment
from clusterctl.coordination.remote_executor import CommandResult, RemoteExecutor
from clusterctl.coordination.ssh_error_classifier import classify_ssh_error
from clusterctl.models.cluster import (
    ClusterHealthReport,
    ClusterTopology,
    LayerDetail,
    LayerSelection,
    LayerSummary,
    NodeHealthReport,
    ResourceSnapshot,
    ServiceLayer,
    ServiceRole,
    classify_layer_state,
)
from clusterctl.monitoring import parsers
from clusterctl.utils.async_utils import SubprocessError, gather_bounded
from clusterctl.utils.exceptions import NETWORK_ERRORS, log_and_continue

__all__ = [
    "HealthProber",
    "TRUST_PROBE_COMMAND",
    "WebChecker",
    "http_endpoint_ok",
]

logger = logging.getLogger(__name__)

TRUST_PROBE_COMMAND = "exit 0"
REPORT_HEAD_LINES = 20

WebChecker = Callable[[str, float], Awaitable[bool]]


async def http_endpoint_ok(url: str, timeout: float) -> bool:
    """True when ``url`` answers HTTP with a non-5xx status."""
    try:
        async with aiohttp.ClientSession() as session:
            async with session.get(url, timeout=aiohttp.ClientTimeout(total=timeout)) as response:
                return response.status < 500
    except (aiohttp.ClientError, *NETWORK_ERRORS):
        return False


class HealthProber:
    """Produces per-node and cluster-wide health reports."""

    def __init__(
        self,
        env: ClusterEnvironment,
        topology: ClusterTopology,
        executor: RemoteExecutor,
        web_checker: WebChecker | None = None,
    ):
        self._env = env
        self._settings = env.settings
        self._topology = topology
        self._executor = executor
        self._web_checker = web_checker or http_endpoint_ok

    @property
    def topology(self) -> ClusterTopology:
        return self._topology

    # =========================================================================
    # Single node
    # =========================================================================

    async def probe_node(self, node: str, detailed: bool = False) -> NodeHealthReport:
        """Probe one node. Never raises for node-level failures."""
        try:
            if node == self._topology.coordinator:
                return await self._probe_coordinator(detailed)
            return await self._probe_worker(node, detailed)
        except (SubprocessError, *NETWORK_ERRORS) as e:
            log_and_continue(e, f"HealthProber:{node}", logger)
            report = NodeHealthReport(node=node, is_coordinator=node == self._topology.coordinator)
            report.errors.append(f"probe failed: {e}")
            return report

    async def _probe_coordinator(self, detailed: bool) -> NodeHealthReport:
        report = NodeHealthReport(
            node=self._topology.coordinator,
            reachable=True,
            ssh_trusted=True,
            is_coordinator=True,
        )
        await self._observe_roles(report)
        if detailed:
            report.resources = await self._snapshot(report)
        return report

    async def _probe_worker(self, node: str, detailed: bool) -> NodeHealthReport:
        report = NodeHealthReport(node=node)

        report.reachable = await self._executor.is_reachable(node)
        if not report.reachable:
            report.errors.append("unreachable (no response to reachability probe)")
            logger.warning(f"[HealthProber] {node} is unreachable")
            return report

        trust = await self._executor.run_command(
            node, TRUST_PROBE_COMMAND, timeout=self._settings.ssh_connect_timeout + 5
        )
        report.ssh_trusted = trust.success
        if not trust.success:
            reason = classify_ssh_error(trust.stderr or trust.error or "", trust.returncode)
            remedy = reason.remedy(f"{self._settings.ssh_user or self._env.operator}@{node}")
            report.errors.append(f"ssh trust failed ({reason.describe()}); {remedy}")
            if reason.breaks_trust:
                logger.warning(f"[HealthProber] {node} rejected the coordinator's credential: {reason.describe()}")
            else:
                logger.warning(f"[HealthProber] SSH to {node} failed: {reason.describe()}")
            return report

        await self._observe_roles(report)
        if detailed:
            report.resources = await self._snapshot(report)
        return report

    async def _observe_roles(self, report: NodeHealthReport) -> None:
        result = await self._executor.run_command(report.node, self._settings.process_list_command)
        if not result.success:
            report.errors.append(f"process listing failed: {_failure_text(result)}")
            return
        report.process_list = result.stdout
        report.roles_present = parsers.roles_from_processes(parsers.parse_process_list(result.stdout))
        report.roles_observed = True

    async def _snapshot(self, report: NodeHealthReport) -> ResourceSnapshot:
        node = report.node
        root = self._env.install_root
        logs = self._env.log_dir
        snapshot = ResourceSnapshot()

        disk = await self._executor.run_command(node, "df -hP")
        snapshot.disk_report = disk.stdout
        snapshot.disk_percent = parsers.parse_disk_percent(disk.stdout)

        memory = await self._executor.run_command(node, "free -m")
        snapshot.memory_report = memory.stdout
        snapshot.memory_percent = parsers.parse_memory_percent(memory.stdout)

        uptime = await self._executor.run_command(node, "uptime")
        snapshot.uptime_report = uptime.stdout.strip()
        snapshot.load_average = parsers.parse_load_average(uptime.stdout)

        for label, path in (("install", str(root)), ("data", self._env.data_root), ("logs", str(logs))):
            listing = await self._executor.run_command(node, f"ls -la {path}")
            snapshot.listings[label] = listing.stdout if listing.success else _failure_text(listing)

        tail = await self._executor.run_command(
            node,
            f"find {logs} -type f -name '*.log' -mtime -1 | xargs -r tail -n {self._settings.log_tail_lines}",
        )
        snapshot.log_tail = tail.stdout

        for name, result in (("df", disk), ("free", memory), ("uptime", uptime)):
            if not result.success:
                report.errors.append(f"{name} failed: {_failure_text(result)}")
        return snapshot

    # =========================================================================
    # Cluster
    # =========================================================================

    async def probe_cluster(self, detailed: bool = False) -> ClusterHealthReport:
        """Probe the coordinator and fan out to every worker."""
        coordinator = await self.probe_node(self._topology.coordinator, detailed=detailed)
        remote = [w for w in self._topology.workers if w != self._topology.coordinator]

        logger.info(
            f"[HealthProber] Probing {len(remote)} worker(s) "
            f"(concurrency={self._settings.max_concurrency}, detailed={detailed})"
        )
        reports = await gather_bounded(
            remote,
            lambda node: self.probe_node(node, detailed=detailed),
            self._settings.max_concurrency,
        )

        per_node = {coordinator.node: coordinator}
        per_node.update({r.node: r for r in reports})

        report = ClusterHealthReport(
            topology=self._topology,
            per_node=per_node,
            mode="full" if detailed else "roles",
        )
        for layer in ServiceLayer:
            report.layers[layer] = self._summarize_probed(report, layer)
        return report

    def _summarize_probed(self, report: ClusterHealthReport, layer: ServiceLayer) -> LayerSummary:
        coordinator = report.coordinator_report
        master_present = None
        if coordinator is not None and coordinator.roles_observed:
            master_present = coordinator.has_role(layer.master_role)

        live = sum(
            1
            for worker in self._topology.workers
            if worker in report.per_node and report.per_node[worker].has_role(layer.worker_role)
        )
        total = self._topology.total_workers
        return LayerSummary(
            layer=layer,
            state=classify_layer_state(master_present, live, total),
            live_workers=live,
            total_workers=total,
            source="probed",
        )

    async def probe_basic(self) -> ClusterHealthReport:
        """Coordinator-only summary; live counts come from native reports."""
        coordinator = await self.probe_node(self._topology.coordinator)
        report = ClusterHealthReport(
            topology=self._topology,
            per_node={coordinator.node: coordinator},
            mode="basic",
        )

        for layer in ServiceLayer:
            master_present = coordinator.has_role(layer.master_role) if coordinator.roles_observed else None
            detail = LayerDetail(layer=layer, master_running=bool(master_present))
            live = 0
            if master_present:
                live = await self._reported_live(layer, detail)
            report.details[layer] = detail
            report.layers[layer] = LayerSummary(
                layer=layer,
                state=classify_layer_state(master_present, live, self._topology.total_workers),
                live_workers=live,
                total_workers=self._topology.total_workers,
                source="reported",
            )

        report.web_urls = self.web_endpoint_urls()
        report.web_endpoints = await self.check_web_endpoints()
        return report

    async def probe_full(self, selection: LayerSelection = LayerSelection.ALL) -> ClusterHealthReport:
        """Deep check of every node plus the drill-down of each selected layer.

        One fan-out serves both the per-node sections and the per-layer
        worker presence.
        """
        report = await self.probe_cluster(detailed=True)
        report.mode = "full"
        for layer in selection.layers:
            await self.collect_layer_detail(layer, report)
        report.web_urls = self.web_endpoint_urls()
        report.web_endpoints = await self.check_web_endpoints()
        return report

    async def probe_component(self, selection: LayerSelection) -> ClusterHealthReport:
        """Role presence everywhere plus the drill-down of the selected layers."""
        report = await self.probe_cluster(detailed=False)
        report.mode = "component"
        for layer in selection.layers:
            await self.collect_layer_detail(layer, report)
        return report

    async def probe_single_node(self, node: str) -> ClusterHealthReport:
        """Deep check of one node, with no layer aggregation."""
        if node != self._topology.coordinator and node not in self._topology.workers:
            logger.warning(f"[HealthProber] {node} is not in the worker list; probing anyway")
        node_report = await self.probe_node(node, detailed=True)
        return ClusterHealthReport(
            topology=self._topology,
            per_node={node: node_report},
            mode="node",
        )

    async def _reported_live(self, layer: ServiceLayer, detail: LayerDetail) -> int:
        if layer is ServiceLayer.STORAGE:
            result = await self._run_tool("hdfs", "dfsadmin -report")
            head = "\n".join(result.stdout.splitlines()[:REPORT_HEAD_LINES])
            detail.outputs["report"] = head
            live = parsers.parse_live_datanodes(result.stdout)
        else:
            result = await self._run_tool("yarn", "node -list")
            detail.outputs["nodes"] = result.stdout
            live = parsers.count_running_nodemanagers(result.stdout) if result.success else None

        if live is None:
            detail.errors.append(f"could not read live {layer.worker_role.value} count: {_failure_text(result)}")
            return 0
        detail.reported_live = live
        return live

    async def check_web_endpoints(self) -> dict[str, bool | None]:
        """Whether the coordinator's web UIs answer HTTP."""
        urls = self.web_endpoint_urls()
        results = await asyncio.gather(
            *(self._web_checker(url, self._settings.web_timeout) for url in urls.values())
        )
        return {name: ok for name, ok in zip(urls.keys(), results)}

    def web_endpoint_urls(self) -> dict[str, str]:
        host = self._topology.coordinator
        return {
            ServiceRole.STORAGE_MASTER.value: f"http://{host}:{self._settings.storage_web_port}",
            ServiceRole.RESOURCE_MASTER.value: f"http://{host}:{self._settings.resource_web_port}",
        }

    # =========================================================================
    # Layer drill-down
    # =========================================================================

    async def collect_layer_detail(
        self,
        layer: ServiceLayer,
        report: ClusterHealthReport,
    ) -> LayerDetail:
        """Run the layer's native status commands on the coordinator.

        Per-worker role presence is taken from ``report``; nothing already
        probed is probed again.
        """
        coordinator = report.coordinator_report
        master_running = bool(coordinator and coordinator.has_role(layer.master_role))
        detail = LayerDetail(layer=layer, master_running=master_running)
        detail.worker_presence = {
            worker: report.per_node[worker].has_role(layer.worker_role)
            for worker in self._topology.workers
            if worker in report.per_node
        }

        if not master_running:
            detail.errors.append(
                f"{layer.master_role.value} is not running; detailed {layer.display_name} check unavailable"
            )
            report.details[layer] = detail
            return detail

        if layer is ServiceLayer.STORAGE:
            commands = [
                ("ls", "hdfs", "dfs -ls /"),
                ("report", "hdfs", "dfsadmin -report"),
                ("safemode", "hdfs", "dfsadmin -safemode get"),
                ("du", "hdfs", "dfs -du -h /"),
                ("fsck", "hdfs", "fsck /"),
            ]
        else:
            commands = [
                ("applications", "yarn", "application -list"),
                ("nodes", "yarn", "node -list -all"),
                ("queue", "yarn", "queue -status default"),
                ("service_state", "yarn", "rmadmin -getServiceState rm1"),
            ]

        for key, tool, args in commands:
            result = await self._run_tool(tool, args)
            detail.outputs[key] = result.stdout
            # fsck exits non-zero for a corrupt filesystem; its output is still the answer
            if not result.success and not (key == "fsck" and result.stdout):
                detail.errors.append(f"{tool} {args}: {_failure_text(result)}")

        if layer is ServiceLayer.STORAGE:
            detail.reported_live = parsers.parse_live_datanodes(detail.outputs.get("report", ""))
            detail.safemode = parsers.parse_safemode(detail.outputs.get("safemode", ""))
            detail.fsck_status, detail.fsck_counts = parsers.classify_fsck(detail.outputs.get("fsck", ""))
        else:
            detail.reported_live = parsers.count_running_nodemanagers(detail.outputs.get("nodes", ""))
            detail.service_state = parsers.parse_service_state(detail.outputs.get("service_state", ""))

        report.details[layer] = detail
        return detail

    async def _run_tool(self, tool: str, args: str) -> CommandResult:
        command = f"{self._env.tool_path(tool)} {args}"
        return await self._executor.run_command(self._topology.coordinator, command)


def _failure_text(result: CommandResult) -> str:
    if result.error:
        return result.error
    text = (result.stderr or result.stdout).strip().splitlines()
    return text[-1] if text else f"exit code {result.returncode}"
