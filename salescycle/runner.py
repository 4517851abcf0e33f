"""
One-shot sales cycle run from the command line.

Logs each progress snapshot and writes the final snapshot as JSON.

Usage:
  python -m salescycle.runner
  python -m salescycle.runner --max-jobs 100 --output funnel.json --include-jobs
"""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import replace
from typing import Optional

from salescycle.config import settings
from salescycle.engine.models import EngineState
from salescycle.engine.sales_cycle import load_sales_cycle_data

# Logging setup
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def _parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build the sales funnel from AccuLynx jobs")
    parser.add_argument("--max-jobs", type=int, default=None, help="Max jobs fetched per milestone")
    parser.add_argument("--output", default=None, help="Write final snapshot JSON here instead of stdout")
    parser.add_argument("--include-jobs", action="store_true", help="Include enriched jobs in the output")
    return parser.parse_args(argv)


async def main(argv: Optional[list[str]] = None) -> int:
    args = _parse_args(argv)
    cfg = settings
    if args.max_jobs is not None:
        cfg = replace(settings, max_jobs_per_milestone=args.max_jobs)

    final: list[EngineState] = []

    def on_update(state: EngineState) -> None:
        logger.info("[%3d%%] %s %s", state.progress, state.phase, state.phase_message)
        final[:] = [state]

    await load_sales_cycle_data(on_update, settings=cfg)

    state = final[0]
    payload = json.dumps(state.to_dict(include_jobs=args.include_jobs), indent=2, default=str)
    if args.output:
        with open(args.output, "w", encoding="utf-8") as fh:
            fh.write(payload)
        logger.info("Final snapshot written to %s", args.output)
    else:
        print(payload)

    if state.error:
        logger.error("Run failed: %s", state.error)
        return 1
    return 0


if __name__ == "__main__":
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        sys.exit(130)
