#!/usr/bin/env python3
"""
Run the approval sweep scheduler: escalation, delegation expiry, retention.

Configuration comes from APPROVAL_* environment variables (database URL,
tenant, interval, settings and org files).

Usage:
    python3 scripts/run_scheduler.py [--once] [--interval SECONDS]

Examples:
    # One pass over every sweep, then exit (cron-style)
    python3 scripts/run_scheduler.py --once

    # Poll every 5 minutes until interrupted
    python3 scripts/run_scheduler.py --interval 300
"""

from __future__ import annotations

import argparse
import signal
import sys
import threading
from pathlib import Path

# Project root on sys.path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run approval sweeps (escalation, delegation expiry, retention).",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run every sweep once and exit.",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between passes (default: APPROVAL_SCHEDULER_INTERVAL_SECONDS).",
    )
    return parser.parse_args()


def main() -> int:
    args = _parse_args()

    from approval_batch.services.scheduler import SweepScheduler
    from approval_config.runtime import RuntimeConfig
    from approval_services.bootstrap import bootstrap

    config = RuntimeConfig.from_env()
    runtime = bootstrap(config)
    scheduler = SweepScheduler(
        runtime.session_factory,
        runtime.workflow_factory(),
        clock=runtime.clock,
        tick_interval_seconds=args.interval or config.scheduler_interval_seconds,
    )

    if args.once:
        results = scheduler.tick()
        for task_type, result in results.items():
            print(
                f"{task_type}: processed={result.processed} changed={result.changed} "
                f"skipped={result.skipped} failed={result.failed}"
            )
        return 0

    done = threading.Event()

    def _shutdown(signum, frame):
        done.set()

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    scheduler.start()
    done.wait()
    scheduler.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
