"""clusterctl-check - read-only cluster diagnostics.

Usage:
    clusterctl-check                 # basic: coordinator only, no worker fan-out
    clusterctl-check -f              # full: every layer and every node
    clusterctl-check -d -c hdfs      # detailed drill-down of one layer
    clusterctl-check -n worker-3     # deep check of a single node
    clusterctl-check -f --json       # machine-readable report

A degraded cluster still exits 0; only precondition/topology failures and
an unobservable coordinator are fatal.
"""

from __future__ import annotations

import asyncio
import json
import sys
from collections.abc import Sequence

from clusterctl.cli.context import build_context
from clusterctl.cli.output import print_error, print_report
from clusterctl.cli.runner import ScriptRunner
from clusterctl.core.errors import (
    EXIT_INTERRUPTED,
    EXIT_OK,
    ClusterCtlError,
    UnreachableNodeError,
)
from clusterctl.models.cluster import ClusterHealthReport, LayerSelection, LayerState
from clusterctl.monitoring.diagnostic_reporter import DiagnosticReporter, derived_warnings

COMPONENTS = ("hdfs", "dfs", "yarn", "all")


def build_runner() -> ScriptRunner:
    runner = ScriptRunner("clusterctl-check", description="Cluster health diagnostics")
    modes = runner.add_mutually_exclusive_group()
    modes.add_argument("-b", "--basic", action="store_true", help="Basic status (default)")
    modes.add_argument("-f", "--full", action="store_true", help="Every layer and every node")
    modes.add_argument("-d", "--detailed", action="store_true", help="Drill into the --component layer")
    runner.add_argument("-c", "--component", choices=COMPONENTS, default="all",
                        help="Layer for --detailed (default: all)")
    runner.add_argument("-n", "--node", default=None, help="Deep check of one node (overrides other modes)")
    runner.add_argument("--json", action="store_true", help="Print the report as JSON")
    return runner


def unobservable_master(report: ClusterHealthReport) -> UnreachableNodeError | None:
    """The coordinator's master roles could not be probed."""
    unknown = [layer for layer, state in report.layer_states.items() if state == LayerState.UNKNOWN]
    if not unknown:
        return None
    coordinator = report.coordinator_report
    reason = "; ".join(coordinator.errors) if coordinator and coordinator.errors else "master roles not observable"
    return UnreachableNodeError(report.topology.coordinator, reason)


async def collect(args) -> ClusterHealthReport:
    ctx = build_context(args.config)
    prober = ctx.prober
    if args.node:
        return await prober.probe_single_node(args.node)
    if args.full:
        return await prober.probe_full()
    if args.detailed:
        return await prober.probe_component(LayerSelection.from_component(args.component))
    return await prober.probe_basic()


def emit(report: ClusterHealthReport, as_json: bool) -> None:
    if as_json:
        data = report.to_dict()
        data["warnings"] = derived_warnings(report)
        print(json.dumps(data, indent=2))
        return
    print_report(DiagnosticReporter(report).render())


def main(argv: Sequence[str] | None = None) -> int:
    runner = build_runner()
    args = runner.parse_args(argv)

    code = EXIT_OK
    try:
        with runner.run_context():
            report = asyncio.run(collect(args))
            emit(report, args.json)
            fatal = unobservable_master(report)
            if fatal is not None:
                runner.logger.error(f"[{runner.name}] {fatal.message}")
                if not args.json:
                    print_error(fatal.message)
                code = fatal.exit_code
    except ClusterCtlError as e:
        runner.logger.error(f"[{runner.name}] {e.message}")
        print_error(e.message)
        return e.exit_code

    if runner.interrupted:
        return EXIT_INTERRUPTED
    return code


if __name__ == "__main__":
    sys.exit(main())
