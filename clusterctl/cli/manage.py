"""clusterctl-manage - start, stop or restart the cluster layers.

Usage:
    clusterctl-manage                # start HDFS then YARN
    clusterctl-manage -d             # start HDFS only
    clusterctl-manage -y -s          # stop YARN only
    clusterctl-manage -a -r          # stop YARN, stop HDFS, start HDFS, start YARN

Exit codes: 0 converged, 2 precondition, 3 topology, 4 transition,
5 coordinator unreachable, 6 SSH trust, 7 cluster locked, 130 interrupted.
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Sequence

from clusterctl.cli.context import build_context
from clusterctl.cli.output import print_error, print_report, print_section, print_status, print_table
from clusterctl.cli.runner import ScriptRunner
from clusterctl.coordination.cluster_lock import ClusterLock
from clusterctl.coordination.lifecycle_controller import (
    LifecycleAction,
    LifecycleController,
    TransitionResult,
)
from clusterctl.core.errors import EXIT_INTERRUPTED, EXIT_OK, ClusterCtlError
from clusterctl.models.cluster import LayerSelection
from clusterctl.monitoring.diagnostic_reporter import DiagnosticReporter


def build_runner() -> ScriptRunner:
    runner = ScriptRunner(
        "clusterctl-manage",
        description="Start, stop or restart the storage (HDFS) and resource (YARN) layers",
    )
    layers = runner.add_mutually_exclusive_group()
    layers.add_argument("-a", "--all", dest="selection", action="store_const",
                        const=LayerSelection.ALL, help="Both layers (default)")
    layers.add_argument("-d", "--dfs", dest="selection", action="store_const",
                        const=LayerSelection.STORAGE, help="Storage layer (HDFS) only")
    layers.add_argument("-y", "--yarn", dest="selection", action="store_const",
                        const=LayerSelection.RESOURCE, help="Resource layer (YARN) only")

    actions = runner.add_mutually_exclusive_group()
    actions.add_argument("-r", "--restart", dest="action", action="store_const",
                         const=LifecycleAction.RESTART, help="Stop then start")
    actions.add_argument("-s", "--stop", dest="action", action="store_const",
                         const=LifecycleAction.STOP, help="Stop instead of start")
    runner.parser.set_defaults(selection=LayerSelection.ALL, action=LifecycleAction.START)
    return runner


def summarize(results: list[TransitionResult]) -> None:
    print_section("Transitions")
    print_table(
        [
            {
                "layer": r.layer.display_name,
                "action": r.action,
                "before": r.initial_state.value,
                "after": r.final_state.value,
                "changed": "yes" if r.changed else "no",
            }
            for r in results
        ]
    )
    for r in results:
        if r.warning:
            print_status(r.warning, "warning")


async def run_lifecycle(action: str, selection: LayerSelection, config_path=None) -> int:
    ctx = build_context(config_path)
    lock = ClusterLock(ctx.settings.lock_file, operation=f"{action} {selection.value}")
    controller = LifecycleController(ctx.env, ctx.topology, ctx.executor, ctx.prober, lock=lock)

    results = await controller.perform(action, selection)
    summarize(results)

    report = await controller.status()
    print_report(DiagnosticReporter(report).render_basic())
    print_status(f"{action.capitalize()} of {selection.value} completed", "success")
    return EXIT_OK


def main(argv: Sequence[str] | None = None) -> int:
    runner = build_runner()
    args = runner.parse_args(argv)

    code = EXIT_OK
    try:
        with runner.run_context():
            code = asyncio.run(run_lifecycle(args.action, args.selection, args.config))
    except ClusterCtlError as e:
        runner.logger.error(f"[{runner.name}] {e.message}")
        print_error(e.message)
        return e.exit_code

    if runner.interrupted:
        return EXIT_INTERRUPTED
    return code


if __name__ == "__main__":
    sys.exit(main())
