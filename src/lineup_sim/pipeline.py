"""
Batch driver: simulate many games for one batting order, summarize, report.

Public API
----------
simulate_games(lineup, config) -> np.ndarray            (games x innings runs)
summarize(inning_runs) -> SimulationSummary
format_summary(summary) -> str                          (the one-line report)
write_reports(inning_runs, summary, output_dir, lineup=None) -> Dict[str, str]
run_simulation(lineup=None, config=None, output_dir=None)
  -> (inning_runs, summary)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import logging
import math
import multiprocessing as mp
import os
import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
from tqdm import tqdm

from .engine import (
    ADVANCEMENT_MODELS,
    INNINGS_PER_GAME,
    OUTS_PER_INNING,
    make_advancement,
    simulate_game,
)
from .profiles import PlayerProfile, default_lineup, lineup_frame, make_lineup

logger = logging.getLogger(__name__)


@dataclass
class SimulationConfig:
    """Run parameters; defaults reproduce the reference 1,000,000-game run."""

    games: int = 1_000_000
    innings: int = INNINGS_PER_GAME
    outs_per_inning: int = OUTS_PER_INNING
    model: str = "detailed"
    seed: Optional[int] = None
    workers: int = 1
    chunk_size: int = 10_000
    max_plate_appearances: Optional[int] = 10_000
    progress: bool = False

    def validate(self) -> None:
        for name in ("games", "innings", "outs_per_inning", "workers", "chunk_size"):
            value = getattr(self, name)
            if value < 1:
                raise ValueError(f"{name} must be positive, got {value!r}.")
        if self.max_plate_appearances is not None and self.max_plate_appearances < 1:
            raise ValueError("max_plate_appearances must be positive or None.")
        if self.model not in ADVANCEMENT_MODELS:
            raise ValueError(
                f"Unknown model {self.model!r}; expected one of {sorted(ADVANCEMENT_MODELS)}."
            )


@dataclass(frozen=True)
class _ChunkJob:
    """One independently seeded block of games, small enough to pickle."""
    lineup: Tuple[PlayerProfile, ...]
    model: str
    seed: int
    games: int
    innings: int
    outs_per_inning: int
    max_plate_appearances: Optional[int]


def _simulate_chunk(job: _ChunkJob) -> np.ndarray:
    """Runs per inning for every game in the chunk."""
    rng = np.random.default_rng(job.seed)
    advancement = make_advancement(job.model)
    out = np.zeros((job.games, job.innings), dtype=np.int32)
    for g in range(job.games):
        out[g] = simulate_game(
            job.lineup,
            advancement,
            rng,
            innings=job.innings,
            outs_per_inning=job.outs_per_inning,
            max_plate_appearances=job.max_plate_appearances,
        )
    return out


def _chunk_jobs(lineup: Tuple[PlayerProfile, ...], config: SimulationConfig) -> List[_ChunkJob]:
    n_chunks = math.ceil(config.games / config.chunk_size)
    rng = np.random.default_rng(config.seed)
    seeds = rng.integers(0, np.iinfo(np.int32).max, size=n_chunks, dtype=np.int64)
    jobs = []
    remaining = config.games
    for seed in seeds:
        games = min(config.chunk_size, remaining)
        remaining -= games
        jobs.append(
            _ChunkJob(
                lineup=lineup,
                model=config.model,
                seed=int(seed),
                games=games,
                innings=config.innings,
                outs_per_inning=config.outs_per_inning,
                max_plate_appearances=config.max_plate_appearances,
            )
        )
    return jobs


def simulate_games(lineup: Sequence[PlayerProfile], config: SimulationConfig) -> np.ndarray:
    """
    Simulate ``config.games`` independent games.

    Games are split into fixed-size chunks, each with its own seed drawn from
    ``config.seed``, so a seeded run gives the same array for any worker count.

    Returns:
        np.ndarray: int32 runs with shape (games, innings), in game order.
    """
    config.validate()
    lineup = make_lineup(lineup)
    jobs = _chunk_jobs(lineup, config)
    workers = min(config.workers, len(jobs))
    logger.info(
        "Simulating %d games (%s model) in %d chunk(s) on %d worker(s)",
        config.games, config.model, len(jobs), workers,
    )

    progress = dict(total=len(jobs), desc="Simulating games", unit="chunk", disable=not config.progress)
    if workers <= 1:
        chunks = [_simulate_chunk(job) for job in tqdm(jobs, **progress)]
    else:
        with mp.Pool(processes=workers) as pool:
            chunks = list(tqdm(pool.imap(_simulate_chunk, jobs), **progress))
    return np.concatenate(chunks, axis=0)


@dataclass
class SimulationSummary:
    """Aggregate run statistics over all simulated games."""
    games: int
    total_runs: int
    average: float
    std: float
    max_runs: int
    shutout_rate: float
    inning_averages: List[float] = field(default_factory=list)


def summarize(inning_runs: np.ndarray) -> SimulationSummary:
    """Aggregate a (games x innings) runs array."""
    if inning_runs.ndim != 2 or inning_runs.shape[0] == 0:
        raise ValueError("inning_runs must be a non-empty (games x innings) array.")
    game_runs = inning_runs.sum(axis=1, dtype=np.int64)
    games = int(game_runs.shape[0])
    total = int(game_runs.sum())
    return SimulationSummary(
        games=games,
        total_runs=total,
        average=total / games,
        std=float(game_runs.std()),
        max_runs=int(game_runs.max()),
        shutout_rate=float(np.mean(game_runs == 0)),
        inning_averages=[float(x) for x in inning_runs.mean(axis=0)],
    )


def format_summary(summary: SimulationSummary) -> str:
    """One-line report; the average carries five significant digits."""
    return (
        f"{summary.total_runs} runs scored in {summary.games} games "
        f"(average of {summary.average:.5g} runs)"
    )


def write_reports(
    inning_runs: np.ndarray,
    summary: SimulationSummary,
    output_dir: str,
    lineup: Optional[Sequence[PlayerProfile]] = None,
) -> Dict[str, str]:
    """
    Write CSV tables and a runs-per-game histogram to ``output_dir``.

    Returns:
        Dict[str, str]: Report name -> written file path.
    """
    os.makedirs(output_dir, exist_ok=True)
    paths: Dict[str, str] = {}
    game_runs = pd.Series(inning_runs.sum(axis=1), name="runs")

    dist = game_runs.value_counts().sort_index().rename_axis("runs").reset_index(name="games")
    dist["share"] = dist["games"] / summary.games
    paths["distribution"] = os.path.join(output_dir, "runs_per_game_distribution.csv")
    dist.to_csv(paths["distribution"], index=False)

    innings_df = pd.DataFrame(
        {
            "inning": np.arange(1, inning_runs.shape[1] + 1),
            "avg_runs": summary.inning_averages,
            "scoreless_share": (inning_runs == 0).mean(axis=0),
        }
    )
    paths["innings"] = os.path.join(output_dir, "runs_by_inning.csv")
    innings_df.to_csv(paths["innings"], index=False)

    summary_df = pd.DataFrame(
        [
            {
                "games": summary.games,
                "total_runs": summary.total_runs,
                "avg_runs": summary.average,
                "std_runs": summary.std,
                "max_runs": summary.max_runs,
                "shutout_rate": summary.shutout_rate,
            }
        ]
    )
    paths["summary"] = os.path.join(output_dir, "simulation_summary.csv")
    summary_df.to_csv(paths["summary"], index=False)

    if lineup is not None:
        paths["lineup"] = os.path.join(output_dir, "lineup.csv")
        lineup_frame(lineup).to_csv(paths["lineup"], index=False)

    # Figure: RGB only
    fig = plt.figure(figsize=(8, 5))
    plt.bar(dist["runs"], dist["share"], color="b", width=0.9)
    plt.axvline(summary.average, color="r", linewidth=1.5, label=f"Mean {summary.average:.3f}")
    plt.xlabel("Runs per game")
    plt.ylabel("Share of games")
    plt.title(f"Runs per Game ({summary.games} simulated games)")
    plt.legend()
    paths["histogram"] = os.path.join(output_dir, "runs_per_game_rgb.png")
    plt.savefig(paths["histogram"], dpi=190, bbox_inches="tight")
    plt.close(fig)

    logger.info("Reports saved to %s", output_dir)
    return paths


def run_simulation(
    lineup: Optional[Sequence[PlayerProfile]] = None,
    config: Optional[SimulationConfig] = None,
    output_dir: Optional[str] = None,
) -> Tuple[np.ndarray, SimulationSummary]:
    """
    End-to-end run:
      1) Use the given lineup, or nine league-average hitters.
      2) Simulate the configured number of games.
      3) Summarize and, if ``output_dir`` is given, write reports.
    """
    if lineup is None:
        lineup = default_lineup()
    if config is None:
        config = SimulationConfig()

    inning_runs = simulate_games(lineup, config)
    summary = summarize(inning_runs)
    logger.info(format_summary(summary))

    if output_dir is not None:
        write_reports(inning_runs, summary, output_dir, lineup=lineup)
    return inning_runs, summary
