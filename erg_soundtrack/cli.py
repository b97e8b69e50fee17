from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import pandas as pd

from .config import DEFAULT_MONTHS_BACK, get_config
from .run_all import run_batch

logger = logging.getLogger(__name__)


def _since_date(args: argparse.Namespace) -> datetime:
    if args.all:
        return datetime(2000, 1, 1)
    if args.since:
        try:
            return pd.Timestamp(args.since).to_pydatetime()
        except ValueError:
            raise SystemExit(f"Invalid date format: {args.since}. Use ISO format like YYYY-MM-DD.")
    return (pd.Timestamp.now().normalize() - pd.DateOffset(months=DEFAULT_MONTHS_BACK)).to_pydatetime()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="erg-soundtrack",
        description="Sync rowing workouts and line them up with the album played during each session",
    )
    when = parser.add_mutually_exclusive_group()
    when.add_argument("--since", help=f"Fetch logbook workouts since this date (default: {DEFAULT_MONTHS_BACK} months back)")
    when.add_argument("--all", action="store_true", help="Fetch the whole logbook history")
    parser.add_argument("--skip-fetch", action="store_true", help="Do not query the logbook; use the registry as is")
    parser.add_argument("--non-interactive", action="store_true", help="Skip ambiguous albums instead of prompting")
    parser.add_argument("--data-dir", help="Data directory holding workouts.json, raw/ and cache/")
    parser.add_argument("--output", help="Path of the generated workouts JSON")
    parser.add_argument("--summary-csv", help="Also write a per-workout summary CSV")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = get_config()
    if args.data_dir:
        config.data_dir = Path(args.data_dir)
        if not args.output:
            config.output_path = config.data_dir / "generated-workouts.json"
    if args.output:
        config.output_path = Path(args.output)
    if args.non_interactive:
        config.interactive = False

    try:
        result = run_batch(
            config,
            since=_since_date(args),
            skip_fetch=args.skip_fetch,
            summary_csv=Path(args.summary_csv) if args.summary_csv else None,
        )
    except FileNotFoundError as e:
        logger.error(str(e))
        return 1

    print(f"\nDone! Generated {result.succeeded} workout(s), skipped {result.failed}.")
    for workout_id, reason in result.skipped:
        print(f"   • {workout_id}: {reason}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
