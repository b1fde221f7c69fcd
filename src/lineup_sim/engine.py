"""
Monte Carlo base-out engine for simulating a batting order.

This module implements:
- sample_outcome: draw one plate-appearance outcome from a player's rates
- resolve_baserunning: probabilistic extra-base advancement (detailed model)
- apply_outcome: the base-out state machine for one plate appearance
- FullAdvance / ProbabilisticAdvance: hit advancement policies ("simple" / "detailed")
- simulate_half_inning / simulate_game: drive the state machine to three outs

Bases are numbered 1..3; 4 (HOME) means the runner scored. The batter starts
from base 0.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from .profiles import PlayerProfile

logger = logging.getLogger(__name__)

HOME = 4
INNINGS_PER_GAME = 9
OUTS_PER_INNING = 3


class InningLimitExceeded(RuntimeError):
    """Raised when a half-inning runs past its plate-appearance cap."""


class Outcome(str, Enum):
    """Plate-appearance outcomes, valued by their scorebook abbreviation."""

    OUT_IN_PLAY = "OUT"
    STRIKEOUT = "K"
    WALK = "BB"
    SINGLE = "1B"
    DOUBLE = "2B"
    TRIPLE = "3B"
    HOME_RUN = "HR"

    @property
    def bases(self) -> int:
        """Bases awarded to the batter on a hit, 0 otherwise."""
        return _HIT_BASES.get(self, 0)

    @property
    def is_out(self) -> bool:
        return self in (Outcome.OUT_IN_PLAY, Outcome.STRIKEOUT)


_HIT_BASES: Dict[Outcome, int] = {
    Outcome.SINGLE: 1,
    Outcome.DOUBLE: 2,
    Outcome.TRIPLE: 3,
    Outcome.HOME_RUN: HOME,
}


_DRAW_ORDER = (
    Outcome.STRIKEOUT,
    Outcome.WALK,
    Outcome.SINGLE,
    Outcome.DOUBLE,
    Outcome.TRIPLE,
    Outcome.HOME_RUN,
)


def outcome_table(profile: PlayerProfile) -> Tuple[Tuple[Outcome, float], ...]:
    """
    Cumulative thresholds for the sampler, in draw order.

    Anything at or above the last threshold is an out in play.
    """
    return tuple(zip(_DRAW_ORDER, profile.cumulative_rates))


def sample_outcome(profile: PlayerProfile, rng: np.random.Generator) -> Outcome:
    """Draw one outcome for ``profile``; consumes exactly one uniform draw."""
    r = rng.random()
    for outcome, threshold in zip(_DRAW_ORDER, profile.cumulative_rates):
        if r < threshold:
            return outcome
    return Outcome.OUT_IN_PLAY


@dataclass
class BaseState:
    """Runners on first, second and third; ``None`` marks an empty base."""

    _bases: List[Optional[PlayerProfile]] = field(default_factory=lambda: [None, None, None])

    def __getitem__(self, base: int) -> Optional[PlayerProfile]:
        return self._bases[base - 1]

    def __setitem__(self, base: int, runner: Optional[PlayerProfile]) -> None:
        self._bases[base - 1] = runner

    def place(self, base: int, runner: PlayerProfile) -> None:
        """Put ``runner`` on an empty base."""
        if self[base] is not None:
            raise ValueError(f"Base {base} is already occupied.")
        self[base] = runner

    def occupied_count(self) -> int:
        return sum(1 for runner in self._bases if runner is not None)

    def occupancy(self) -> Tuple[bool, bool, bool]:
        first, second, third = (runner is not None for runner in self._bases)
        return first, second, third

    def is_empty(self) -> bool:
        return self.occupied_count() == 0

    def clear(self) -> None:
        self._bases = [None, None, None]


@dataclass
class InningState:
    """Base-out state and runs for one half-inning."""

    bases: BaseState = field(default_factory=BaseState)
    outs: int = 0
    runs: int = 0
    outs_per_inning: int = OUTS_PER_INNING

    def register_out(self) -> None:
        self.outs = min(self.outs + 1, self.outs_per_inning)

    def advance_runner(self, runner: PlayerProfile, base: int) -> None:
        """Land ``runner`` on ``base``, or score it from ``HOME`` and beyond."""
        if base >= HOME:
            self.runs += 1
        else:
            self.bases.place(base, runner)

    @property
    def is_over(self) -> bool:
        return self.outs >= self.outs_per_inning


def resolve_baserunning(
    state: InningState,
    from_base: int,
    near_base: int,
    far_base: int,
    p_near: float,
    p_far: float,
    rng: np.random.Generator,
) -> Optional[int]:
    """
    Move the runner on ``from_base`` to one of two candidate bases or retire the runner.

    Args:
        state: Half-inning state, mutated in place.
        from_base: Base the runner starts on (1 or 2).
        near_base: Destination with probability ``p_near``.
        far_base: Destination with probability ``p_far`` (``HOME`` scores).
        p_near: Probability of stopping at ``near_base``.
        p_far: Probability of reaching ``far_base``.
        rng: Random generator; one draw is consumed.

    Returns:
        Optional[int]: The base the runner ended on, or None if out on the bases.
    """
    runner = state.bases[from_base]
    if runner is None:
        raise ValueError(f"No runner on base {from_base}.")
    state.bases[from_base] = None

    r = rng.random()
    if r < p_near:
        target = near_base
    else:
        r -= p_near
        if r < p_far:
            target = far_base
        else:
            state.register_out()
            return None

    # A runner from first held up behind a runner who stopped at third.
    if from_base == 1 and target == 3 and state.bases[3] is not None:
        target = 2
    state.advance_runner(runner, target)
    return target


class FullAdvance:
    """Every runner, batter included, moves exactly as many bases as the hit."""

    name = "simple"

    def single(self, state: InningState, batter: PlayerProfile, rng: Optional[np.random.Generator]) -> None:
        self._advance_all(state, batter, Outcome.SINGLE.bases)

    def double(self, state: InningState, batter: PlayerProfile, rng: Optional[np.random.Generator]) -> None:
        self._advance_all(state, batter, Outcome.DOUBLE.bases)

    @staticmethod
    def _advance_all(state: InningState, batter: PlayerProfile, num_bases: int) -> None:
        # Lead runner first so nobody lands on a base that is about to be vacated.
        for base in (3, 2, 1):
            runner = state.bases[base]
            if runner is not None:
                state.bases[base] = None
                state.advance_runner(runner, base + num_bases)
        state.advance_runner(batter, num_bases)


class ProbabilisticAdvance:
    """Runners take extra bases according to their own baserunning profile."""

    name = "detailed"

    @staticmethod
    def _require_rng(rng: Optional[np.random.Generator]) -> np.random.Generator:
        if rng is None:
            raise ValueError("The detailed model needs a random generator for singles and doubles.")
        return rng

    def single(self, state: InningState, batter: PlayerProfile, rng: Optional[np.random.Generator]) -> None:
        rng = self._require_rng(rng)
        bases = state.bases
        if bases[3] is not None:
            bases[3] = None
            state.runs += 1
        if bases[2] is not None:
            br = bases[2].baserunning
            resolve_baserunning(
                state, 2, 3, HOME, br.second_to_third_on_single, br.second_scores_on_single, rng
            )
        if bases[1] is not None:
            br = bases[1].baserunning
            resolve_baserunning(
                state, 1, 2, 3, br.first_to_second_on_single, br.first_to_third_on_single, rng
            )
        bases.place(1, batter)

    def double(self, state: InningState, batter: PlayerProfile, rng: Optional[np.random.Generator]) -> None:
        rng = self._require_rng(rng)
        bases = state.bases
        for base in (3, 2):
            if bases[base] is not None:
                bases[base] = None
                state.runs += 1
        if bases[1] is not None:
            br = bases[1].baserunning
            resolve_baserunning(
                state, 1, 3, HOME, br.first_to_third_on_double, br.first_scores_on_double, rng
            )
        bases.place(2, batter)


AdvancementPolicy = Union[FullAdvance, ProbabilisticAdvance]

ADVANCEMENT_MODELS = {
    FullAdvance.name: FullAdvance,
    ProbabilisticAdvance.name: ProbabilisticAdvance,
}


def make_advancement(model: str) -> AdvancementPolicy:
    """Return the advancement policy for ``model`` ("simple" or "detailed")."""
    try:
        return ADVANCEMENT_MODELS[model]()
    except KeyError:
        raise ValueError(
            f"Unknown model {model!r}; expected one of {sorted(ADVANCEMENT_MODELS)}."
        ) from None


def _walk(state: InningState, batter: PlayerProfile) -> None:
    bases = state.bases
    if bases[1] is not None:
        if bases[2] is not None:
            if bases[3] is not None:
                state.runs += 1
            bases[3] = bases[2]
        bases[2] = bases[1]
    bases[1] = batter


def apply_outcome(
    outcome: Outcome,
    batter: PlayerProfile,
    state: InningState,
    advancement: AdvancementPolicy,
    rng: Optional[np.random.Generator] = None,
) -> InningState:
    """
    Apply one plate appearance to the half-inning state.

    Singles and doubles are handed to ``advancement``; the detailed policy
    needs ``rng``. Returns ``state``, mutated in place.
    """
    if outcome.is_out:
        state.register_out()
    elif outcome is Outcome.WALK:
        _walk(state, batter)
    elif outcome is Outcome.HOME_RUN:
        state.runs += state.bases.occupied_count() + 1
        state.bases.clear()
    elif outcome is Outcome.TRIPLE:
        state.runs += state.bases.occupied_count()
        state.bases.clear()
        state.bases.place(3, batter)
    elif outcome is Outcome.DOUBLE:
        advancement.double(state, batter, rng)
    elif outcome is Outcome.SINGLE:
        advancement.single(state, batter, rng)
    else:
        raise ValueError(f"Unknown outcome: {outcome!r}")
    return state


def _describe(state: InningState) -> str:
    occupied = [str(base) for base, on in zip((1, 2, 3), state.bases.occupancy()) if on]
    return f"outs={state.outs} runs={state.runs} bases={''.join(occupied) or '-'}"


def play_half_inning(
    state: InningState,
    lineup: Sequence[PlayerProfile],
    position: int,
    advancement: AdvancementPolicy,
    rng: np.random.Generator,
    max_plate_appearances: Optional[int] = None,
) -> int:
    """
    Run plate appearances until ``state`` reaches its out limit.

    The bases are cleared once the inning is over. Returns the lineup slot
    due up next.
    """
    trace = logger.isEnabledFor(logging.DEBUG)
    plate_appearances = 0
    while not state.is_over:
        if max_plate_appearances is not None and plate_appearances >= max_plate_appearances:
            raise InningLimitExceeded(
                f"Half-inning exceeded {max_plate_appearances} plate appearances "
                f"({state.runs} runs, {state.outs} outs)."
            )
        batter = lineup[position]
        outcome = sample_outcome(batter, rng)
        apply_outcome(outcome, batter, state, advancement, rng)
        plate_appearances += 1
        if trace:
            logger.debug("slot %d %s -> %s", position + 1, outcome.value, _describe(state))
        position = (position + 1) % len(lineup)
    state.bases.clear()
    return position


def simulate_half_inning(
    lineup: Sequence[PlayerProfile],
    position: int,
    advancement: AdvancementPolicy,
    rng: np.random.Generator,
    outs_per_inning: int = OUTS_PER_INNING,
    max_plate_appearances: Optional[int] = None,
) -> Tuple[int, int]:
    """Simulate one half-inning from a fresh state; returns (runs, next slot)."""
    state = InningState(outs_per_inning=outs_per_inning)
    position = play_half_inning(state, lineup, position, advancement, rng, max_plate_appearances)
    return state.runs, position


def simulate_game(
    lineup: Sequence[PlayerProfile],
    advancement: AdvancementPolicy,
    rng: np.random.Generator,
    innings: int = INNINGS_PER_GAME,
    outs_per_inning: int = OUTS_PER_INNING,
    max_plate_appearances: Optional[int] = None,
) -> List[int]:
    """Runs scored in each inning of one game; the batting order carries over."""
    position = 0
    inning_runs: List[int] = []
    for _ in range(innings):
        runs, position = simulate_half_inning(
            lineup, position, advancement, rng, outs_per_inning, max_plate_appearances
        )
        inning_runs.append(runs)
    return inning_runs
