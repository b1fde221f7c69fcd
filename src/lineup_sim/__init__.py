"""
lineup_sim: Monte Carlo run scoring for a fixed nine-man batting order.
"""
from .engine import (
    Outcome,
    BaseState,
    InningState,
    InningLimitExceeded,
    sample_outcome,
    resolve_baserunning,
    apply_outcome,
    make_advancement,
    simulate_half_inning,
    simulate_game,
)
from .profiles import (
    PlayerProfile,
    BaserunningProfile,
    LineupConfigError,
    make_lineup,
    default_lineup,
    load_lineup_csv,
    profile_from_counting_stats,
)
from .pipeline import SimulationConfig, SimulationSummary, run_simulation, format_summary
