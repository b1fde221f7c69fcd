"""
Player profiles and lineups for the batting-order simulator.

This module implements:
- BaserunningProfile / PlayerProfile: immutable per-player probability tables
- make_lineup / default_lineup: validated nine-man batting orders
- profile_from_counting_stats: map season totals to per-PA outcome rates
- load_lineup_csv: read a nine-row lineup table (rates or counting stats)

Any probability mass left over in the outcome table is an out in play; any
mass left over in a baserunning pair is an out on the bases.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from itertools import accumulate
from pathlib import Path
from typing import Dict, Iterable, Optional, Sequence, Tuple, Union

import pandas as pd

LINEUP_SIZE = 9

# Sums may drift above 1.0 by this much before they are rejected.
PROBABILITY_TOLERANCE = 1e-9

RATE_COLUMNS = ["k", "bb", "1b", "2b", "3b", "hr"]
BASERUNNING_COLUMNS = ["br1s2", "br1s3", "br1d3", "br1dH", "br2s3", "br2sH"]
COUNTING_COLUMNS = ["PA", "SO", "BB", "H", "2B", "3B", "HR"]


class LineupConfigError(ValueError):
    """Raised when a player profile or lineup is not a valid probability model."""


def _check_rates(owner: str, rates: Dict[str, float]) -> None:
    for key, value in rates.items():
        if not (0.0 <= value <= 1.0):
            raise LineupConfigError(f"{owner}: {key}={value!r} is not in [0, 1].")
    total = sum(rates.values())
    if total > 1.0 + PROBABILITY_TOLERANCE:
        raise LineupConfigError(
            f"{owner}: {', '.join(rates)} sum to {total:.6f} (> 1)."
        )


@dataclass(frozen=True)
class BaserunningProfile:
    """Conditional advancement rates; each pair's remainder is an out on the bases."""

    first_to_second_on_single: float = 0.7060
    first_to_third_on_single: float = 0.2801
    first_to_third_on_double: float = 0.5549
    first_scores_on_double: float = 0.4145
    second_to_third_on_single: float = 0.3664
    second_scores_on_single: float = 0.5922

    def validate(self, owner: str = "baserunning") -> None:
        _check_rates(owner, {
            "first_to_second_on_single": self.first_to_second_on_single,
            "first_to_third_on_single": self.first_to_third_on_single,
        })
        _check_rates(owner, {
            "first_to_third_on_double": self.first_to_third_on_double,
            "first_scores_on_double": self.first_scores_on_double,
        })
        _check_rates(owner, {
            "second_to_third_on_single": self.second_to_third_on_single,
            "second_scores_on_single": self.second_scores_on_single,
        })

    @classmethod
    def from_row(cls, row: pd.Series) -> "BaserunningProfile":
        """Read br* columns from a lineup row; blank or absent cells keep the defaults."""
        defaults = cls()

        def rate(column: str, default: float) -> float:
            value = row.get(column)
            return default if value is None or pd.isna(value) else float(value)

        return cls(
            first_to_second_on_single=rate("br1s2", defaults.first_to_second_on_single),
            first_to_third_on_single=rate("br1s3", defaults.first_to_third_on_single),
            first_to_third_on_double=rate("br1d3", defaults.first_to_third_on_double),
            first_scores_on_double=rate("br1dH", defaults.first_scores_on_double),
            second_to_third_on_single=rate("br2s3", defaults.second_to_third_on_single),
            second_scores_on_single=rate("br2sH", defaults.second_scores_on_single),
        )


@dataclass(frozen=True)
class PlayerProfile:
    """
    Per-PA outcome rates for one hitter.

    Defaults are St. Louis averages for 1984-2014; baserunning defaults are
    2014 NL league averages.
    """

    k: float = 0.169351
    bb: float = 0.087831
    single: float = 0.158561
    double: float = 0.046271
    triple: float = 0.004316
    hr: float = 0.026912
    name: str = ""
    baserunning: BaserunningProfile = field(default_factory=BaserunningProfile)
    # Running totals of k, bb, 1b, 2b, 3b, hr; the sampler compares draws against these.
    cumulative_rates: Tuple[float, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "cumulative_rates", tuple(accumulate((self.k, self.bb, self.single, self.double, self.triple, self.hr)))
        )

    @property
    def out_in_play(self) -> float:
        return max(1.0 - self.on_base_or_k, 0.0)

    @property
    def on_base_or_k(self) -> float:
        return self.k + self.bb + self.single + self.double + self.triple + self.hr

    def rates(self) -> Dict[str, float]:
        """Outcome rates keyed by the lineup CSV column names."""
        return dict(zip(RATE_COLUMNS, (self.k, self.bb, self.single, self.double, self.triple, self.hr)))

    def validate(self) -> None:
        owner = self.name or "player"
        _check_rates(owner, self.rates())
        self.baserunning.validate(owner)


def make_lineup(players: Iterable[PlayerProfile]) -> Tuple[PlayerProfile, ...]:
    """Validate and freeze a batting order of exactly nine players."""
    lineup = tuple(players)
    if len(lineup) != LINEUP_SIZE:
        raise LineupConfigError(f"Lineup must have {LINEUP_SIZE} players, got {len(lineup)}.")
    for player in lineup:
        player.validate()
    return lineup


def default_lineup() -> Tuple[PlayerProfile, ...]:
    """Nine identical league-average hitters."""
    return make_lineup(PlayerProfile(name=f"Batter {slot + 1}") for slot in range(LINEUP_SIZE))


def profile_from_counting_stats(
    pa: float,
    so: float,
    bb: float,
    h: float,
    doubles: float,
    triples: float,
    hr: float,
    hbp: float = 0.0,
    name: str = "",
    baserunning: Optional[BaserunningProfile] = None,
) -> PlayerProfile:
    """
    Build per-PA outcome rates from season totals.

    Args:
        pa: Plate appearances.
        so: Strikeouts.
        bb: Walks (hit-by-pitch is folded in).
        h: Hits.
        doubles: Doubles.
        triples: Triples.
        hr: Home runs.
        hbp: Hit-by-pitch.

    Returns:
        PlayerProfile: Outcome rates; outs in play take the remainder.
    """
    if pa <= 0:
        raise LineupConfigError(f"{name or 'player'}: PA must be positive, got {pa!r}.")
    singles = max(h - doubles - triples - hr, 0.0)
    return PlayerProfile(
        k=so / pa,
        bb=(bb + hbp) / pa,
        single=singles / pa,
        double=doubles / pa,
        triple=triples / pa,
        hr=hr / pa,
        name=name,
        baserunning=baserunning or BaserunningProfile(),
    )


def _profile_from_row(row: pd.Series, use_rates: bool) -> PlayerProfile:
    name = str(row["name"]) if "name" in row and pd.notna(row["name"]) else ""
    baserunning = BaserunningProfile.from_row(row)
    if use_rates:
        return PlayerProfile(
            k=float(row["k"]),
            bb=float(row["bb"]),
            single=float(row["1b"]),
            double=float(row["2b"]),
            triple=float(row["3b"]),
            hr=float(row["hr"]),
            name=name,
            baserunning=baserunning,
        )
    return profile_from_counting_stats(
        pa=float(row["PA"]),
        so=float(row["SO"]),
        bb=float(row["BB"]),
        h=float(row["H"]),
        doubles=float(row["2B"]),
        triples=float(row["3B"]),
        hr=float(row["HR"]),
        hbp=float(row.get("HBP", 0.0)),
        name=name,
        baserunning=baserunning,
    )


def load_lineup_csv(csv_path: Union[str, Path]) -> Tuple[PlayerProfile, ...]:
    """
    Load a batting order from CSV, one row per lineup slot in batting order.

    The CSV must contain either rate columns k, bb, 1b, 2b, 3b, hr or counting
    columns PA, SO, BB, H, 2B, 3B, HR (HBP optional). Baserunning columns
    br1s2, br1s3, br1d3, br1dH, br2s3, br2sH are optional.
    """
    df = pd.read_csv(csv_path)
    columns = set(df.columns)
    use_rates = set(RATE_COLUMNS) <= columns
    if not use_rates:
        missing = set(COUNTING_COLUMNS) - columns
        if missing:
            raise LineupConfigError(
                f"CSV needs rate columns {RATE_COLUMNS} or counting columns; "
                f"missing: {sorted(missing)}"
            )
    return make_lineup(_profile_from_row(row, use_rates) for _, row in df.iterrows())


def lineup_frame(lineup: Sequence[PlayerProfile]) -> pd.DataFrame:
    """Tabulate a lineup with the same columns load_lineup_csv reads."""
    rows = []
    for slot, player in enumerate(lineup, start=1):
        br = player.baserunning
        row = {"slot": slot, "name": player.name}
        row.update(player.rates())
        row.update(dict(zip(BASERUNNING_COLUMNS, (
            br.first_to_second_on_single,
            br.first_to_third_on_single,
            br.first_to_third_on_double,
            br.first_scores_on_double,
            br.second_to_third_on_single,
            br.second_scores_on_single,
        ))))
        rows.append(row)
    return pd.DataFrame(rows)
