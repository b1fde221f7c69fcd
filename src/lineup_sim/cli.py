"""
Command-line interface for simulating a batting order.
"""
from __future__ import annotations

import argparse
import logging
from typing import List, Optional

from .engine import ADVANCEMENT_MODELS, InningLimitExceeded
from .pipeline import SimulationConfig, format_summary, run_simulation
from .profiles import LineupConfigError, default_lineup, load_lineup_csv


def build_parser() -> argparse.ArgumentParser:
    defaults = SimulationConfig()
    parser = argparse.ArgumentParser(description="Monte Carlo batting-order run simulator")
    parser.add_argument("--lineup", help="CSV with nine rows in batting order (default: league-average hitters)")
    parser.add_argument(
        "--model",
        choices=sorted(ADVANCEMENT_MODELS),
        default=defaults.model,
        help="simple: runners advance the hit's bases; detailed: probabilistic baserunning",
    )
    parser.add_argument("--games", type=int, default=defaults.games, help="Number of games to simulate")
    parser.add_argument("--innings", type=int, default=defaults.innings, help="Innings per game")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducibility")
    parser.add_argument("--workers", type=int, default=defaults.workers, help="Worker processes")
    parser.add_argument("--chunk-size", type=int, default=defaults.chunk_size, help="Games per seeded chunk")
    parser.add_argument(
        "--max-pa",
        type=int,
        default=defaults.max_plate_appearances,
        help="Abort a half-inning after this many plate appearances (0 disables the cap)",
    )
    parser.add_argument("--out", default=None, help="Optional output directory for CSV tables and figures")
    parser.add_argument("--no-progress", action="store_true", help="Disable progress bar")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every plate appearance")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    config = SimulationConfig(
        games=args.games,
        innings=args.innings,
        model=args.model,
        seed=args.seed,
        workers=args.workers,
        chunk_size=args.chunk_size,
        max_plate_appearances=args.max_pa or None,
        progress=not args.no_progress,
    )
    try:
        config.validate()
        lineup = load_lineup_csv(args.lineup) if args.lineup else default_lineup()
    except (LineupConfigError, OSError) as exc:
        logging.error(f"Invalid lineup: {exc}")
        return 2
    except ValueError as exc:
        logging.error(f"Invalid configuration: {exc}")
        return 2

    try:
        _, summary = run_simulation(lineup, config, output_dir=args.out)
    except InningLimitExceeded as exc:
        logging.error(str(exc))
        return 1

    print(format_summary(summary))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
