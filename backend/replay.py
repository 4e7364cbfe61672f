"""
Replay recorded or simulated telemetry through one monitoring session.

Examples:
    python -m backend.replay --file incident.csv --service payment-svc
    python -m backend.replay --simulate api-gateway --ticks 90 --fault db_timeout --fault-at 30
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from backend.incident import AnalysisContext, AnalysisContextBuilder
from src.alerts import AlertDispatcher, LoggingNotifier
from src.core.config import config
from src.core.exceptions import MetricIngestionError
from src.core.logging_config import setup_logging
from src.data.ingestion import load_snapshots
from src.data.schema import MetricSnapshot
from src.data.simulator import FAILURE_MODES, SERVICE_PROFILES, MetricSimulator
from src.sessions.session import MonitoringSession

logger = logging.getLogger("backend.replay")


def simulate(profile: str, ticks: int, fault: Optional[str], fault_at: int, seed: Optional[int]) -> List[MetricSnapshot]:
    simulator = MetricSimulator(
        profile, seed=seed, tick_interval_seconds=config.session.tick_interval_seconds
    )
    snapshots: List[MetricSnapshot] = []
    for i in range(ticks):
        if fault and i == fault_at:
            simulator.inject_fault(fault)
        snapshot = simulator.tick()
        if snapshot is not None:
            snapshots.append(snapshot)
    return snapshots


def run_replay(snapshots: List[MetricSnapshot], service: str) -> MonitoringSession:
    contexts: List[AnalysisContext] = []
    session = MonitoringSession(
        session_id=f"replay-{service}",
        service=service,
        environment="replay",
        dispatcher=AlertDispatcher([LoggingNotifier()]),
        analysis_hook=AnalysisContextBuilder().hook(contexts.append, service=service),
    )

    for snapshot in snapshots:
        outcome = session.process(snapshot)
        if outcome.scored and outcome.scoring is not None:
            result = outcome.scoring
            driver = outcome.attribution[0].label if outcome.attribution else "-"
            print(
                f"tick={snapshot.tick_index:>4} phase={result.phase.value:<8} "
                f"score={result.score:>3} trend={(result.trend.value if result.trend else '-'):<7} "
                f"driver={driver}"
            )
        if outcome.alert is not None:
            print(f"  ALERT {outcome.alert.message}")
            print(f"        {outcome.alert.action}")

    for context in contexts:
        print(f"\nAnalysis context for {context.alert_id} ({context.severity.value}):")
        print(context.prompt_context)

    return session


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Replay telemetry through a risk scoring session")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--file", help="Recorded CSV or NDJSON metric file")
    source.add_argument("--simulate", choices=sorted(SERVICE_PROFILES), help="Simulated service profile")
    parser.add_argument("--service", default=None, help="Service name for the session")
    parser.add_argument("--ticks", type=int, default=90)
    parser.add_argument("--fault", choices=sorted(FAILURE_MODES), default=None)
    parser.add_argument("--fault-at", type=int, default=30)
    parser.add_argument("--seed", type=int, default=None)
    args = parser.parse_args(argv)

    setup_logging("")

    if args.file:
        try:
            snapshots, skipped = load_snapshots(args.file)
        except MetricIngestionError as exc:
            logger.error(str(exc))
            return 1
        if skipped:
            logger.warning(f"{len(skipped)} rows skipped")
        service = args.service or "recorded"
    else:
        snapshots = simulate(args.simulate, args.ticks, args.fault, args.fault_at, args.seed)
        service = args.service or args.simulate

    session = run_replay(snapshots, service)
    print(f"\n{session.alert_engine.count} alert(s) fired")
    session.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
