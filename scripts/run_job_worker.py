"""
Run the analysis job dispatcher from CLI, once or as a polling loop.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
import time

from app.config import get_scheduler_settings
from app.jobs.factory import build_dispatcher

logger = logging.getLogger("scripts.run_job_worker")


def main() -> int:
    parser = argparse.ArgumentParser(description="Dispatch due analysis jobs.")
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single batch and print its summary.",
    )
    parser.add_argument(
        "--interval",
        type=int,
        default=None,
        help="Seconds between batches (default: JOB_DISPATCH_INTERVAL_SECONDS).",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").strip().upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    dispatcher = build_dispatcher()
    if args.once:
        print(json.dumps(dispatcher.run_once().to_dict(), indent=2))
        abandoned = dispatcher.abandoned_workers
        if abandoned:
            # Interpreter shutdown would join the timed-out worker threads.
            logger.warning("Exiting with %d timed-out worker(s) still running", abandoned)
            sys.stdout.flush()
            logging.shutdown()
            os._exit(0)
        return 0

    interval = max(1, args.interval or get_scheduler_settings().dispatch_interval_seconds)
    logger.info("Job worker polling every %ds", interval)
    try:
        while True:
            try:
                dispatcher.run_once()
            except Exception as exc:  # noqa: BLE001
                logger.exception("Dispatcher batch failed: %s", exc)
            time.sleep(interval)
    except KeyboardInterrupt:
        logger.info("Job worker stopped")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
