"""
Run the periodic job planner once from CLI.
"""

from __future__ import annotations

import argparse
import json
import logging

from app.jobs.factory import build_planner


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Enqueue due periodic SERP and report jobs for every active website.",
    )
    parser.add_argument(
        "--log-level",
        dest="log_level",
        default="INFO",
        help="Root log level.",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.strip().upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    summary = build_planner().run()
    print(json.dumps(summary.to_dict(), indent=2))
    return 1 if summary.errors else 0


if __name__ == "__main__":
    raise SystemExit(main())
