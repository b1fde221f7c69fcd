import numpy as np
import pytest

from lineup_sim.engine import (
    HOME,
    BaseState,
    FullAdvance,
    InningLimitExceeded,
    InningState,
    Outcome,
    ProbabilisticAdvance,
    apply_outcome,
    make_advancement,
    play_half_inning,
    resolve_baserunning,
    sample_outcome,
    simulate_game,
    simulate_half_inning,
)
from lineup_sim.profiles import PlayerProfile, default_lineup


class ScriptedRng:
    """Stands in for np.random.Generator, returning pre-set uniform draws."""

    def __init__(self, draws):
        self.draws = list(draws)

    def random(self):
        return self.draws.pop(0)


def player(name="p", **rates):
    fields = {"k": 0.0, "bb": 0.0, "single": 0.0, "double": 0.0, "triple": 0.0, "hr": 0.0}
    fields.update(rates)
    return PlayerProfile(name=name, **fields)


def loaded_state(outs=0):
    state = InningState(outs=outs)
    for base in (1, 2, 3):
        state.bases[base] = PlayerProfile(name=f"runner{base}")
    return state


def test_sampler_follows_cumulative_thresholds():
    rng = ScriptedRng([0.1, 0.2, 0.3, 0.45, 0.465, 0.48, 0.9])
    profile = PlayerProfile()
    seq = [sample_outcome(profile, rng) for _ in range(7)]
    assert seq == [
        Outcome.STRIKEOUT,
        Outcome.WALK,
        Outcome.SINGLE,
        Outcome.DOUBLE,
        Outcome.TRIPLE,
        Outcome.HOME_RUN,
        Outcome.OUT_IN_PLAY,
    ]


def test_sampler_remainder_is_out_in_play():
    rng = ScriptedRng([0.0, 0.5, 0.999])
    assert [sample_outcome(player(), rng) for _ in range(3)] == [Outcome.OUT_IN_PLAY] * 3


def test_sampler_is_deterministic_for_a_seed():
    profile = PlayerProfile()
    a = np.random.default_rng(7)
    b = np.random.default_rng(7)
    assert [sample_outcome(profile, a) for _ in range(200)] == [sample_outcome(profile, b) for _ in range(200)]


def test_outcome_bases():
    assert [o.bases for o in (Outcome.SINGLE, Outcome.DOUBLE, Outcome.TRIPLE, Outcome.HOME_RUN)] == [1, 2, 3, HOME]
    assert Outcome.WALK.bases == 0
    assert Outcome.STRIKEOUT.is_out and Outcome.OUT_IN_PLAY.is_out
    assert not Outcome.WALK.is_out


@pytest.mark.parametrize("outcome", list(Outcome))
@pytest.mark.parametrize("model", ["simple", "detailed"])
def test_outs_change_only_on_outs(outcome, model):
    state = InningState(outs=1)
    apply_outcome(outcome, player("batter"), state, make_advancement(model), ScriptedRng([]))
    assert state.outs == (2 if outcome.is_out else 1)


@pytest.mark.parametrize("model", ["simple", "detailed"])
def test_home_run_with_bases_loaded_scores_four(model):
    state = apply_outcome(Outcome.HOME_RUN, player("batter"), loaded_state(), make_advancement(model))
    assert state.runs == 4
    assert state.bases.is_empty()


@pytest.mark.parametrize("model", ["simple", "detailed"])
def test_walk_with_bases_loaded_forces_one_run(model):
    batter = player("batter")
    state = loaded_state()
    apply_outcome(Outcome.WALK, batter, state, make_advancement(model))
    assert state.runs == 1
    assert state.bases.occupancy() == (True, True, True)
    assert state.bases[1] is batter
    assert state.bases[2].name == "runner1"
    assert state.bases[3].name == "runner2"


def test_walk_only_forces_runners_behind_an_occupied_chain():
    batter = player("batter")
    state = InningState()
    state.bases[1] = PlayerProfile(name="on_first")
    state.bases[3] = PlayerProfile(name="on_third")
    apply_outcome(Outcome.WALK, batter, state, ProbabilisticAdvance())
    assert state.runs == 0
    assert state.bases[1] is batter
    assert state.bases[2].name == "on_first"
    assert state.bases[3].name == "on_third"


def test_walk_with_runner_on_second_leaves_the_runner_there():
    state = InningState()
    state.bases[2] = PlayerProfile(name="on_second")
    apply_outcome(Outcome.WALK, player("batter"), state, FullAdvance())
    assert state.bases.occupancy() == (True, True, False)
    assert state.bases[2].name == "on_second"


def test_triple_scores_everyone_and_batter_stands_on_third():
    batter = player("batter")
    state = InningState()
    state.bases[1] = PlayerProfile(name="a")
    state.bases[2] = PlayerProfile(name="b")
    apply_outcome(Outcome.TRIPLE, batter, state, ProbabilisticAdvance())
    assert state.runs == 2
    assert state.bases.occupancy() == (False, False, True)
    assert state.bases[3] is batter


def test_simple_single_moves_everyone_one_base():
    state = loaded_state()
    apply_outcome(Outcome.SINGLE, player("batter"), state, FullAdvance())
    assert state.runs == 1
    assert state.bases[2].name == "runner1"
    assert state.bases[3].name == "runner2"
    assert state.bases[1].name == "batter"


def test_simple_double_scores_from_second_and_third():
    state = loaded_state()
    apply_outcome(Outcome.DOUBLE, player("batter"), state, FullAdvance())
    assert state.runs == 2
    assert state.bases.occupancy() == (False, True, True)
    assert state.bases[3].name == "runner1"
    assert state.bases[2].name == "batter"


def test_detailed_single_runner_from_first_stops_at_second():
    state = InningState()
    state.bases[1] = PlayerProfile(name="runner")
    apply_outcome(Outcome.SINGLE, player("batter"), state, ProbabilisticAdvance(), ScriptedRng([0.1]))
    assert state.bases.occupancy() == (True, True, False)
    assert state.bases[2].name == "runner"
    assert state.outs == 0


def test_detailed_single_scores_runner_from_second():
    state = InningState()
    state.bases[2] = PlayerProfile(name="runner")
    # 0.5 misses second_to_third (0.3664); 0.1336 falls inside second_scores (0.5922)
    apply_outcome(Outcome.SINGLE, player("batter"), state, ProbabilisticAdvance(), ScriptedRng([0.5]))
    assert state.runs == 1
    assert state.bases.occupancy() == (True, False, False)


def test_detailed_single_scores_runner_from_third_without_a_draw():
    state = InningState()
    state.bases[3] = PlayerProfile(name="runner")
    apply_outcome(Outcome.SINGLE, player("batter"), state, ProbabilisticAdvance(), ScriptedRng([]))
    assert state.runs == 1
    assert state.bases.occupancy() == (True, False, False)


def test_runner_thrown_out_on_the_bases_is_removed():
    batter = player("batter")
    state = InningState()
    state.bases[1] = PlayerProfile(name="runner")
    apply_outcome(Outcome.SINGLE, batter, state, ProbabilisticAdvance(), ScriptedRng([0.99]))
    assert state.outs == 1
    assert state.runs == 0
    assert state.bases.occupancy() == (True, False, False)
    assert state.bases[1] is batter


def test_runner_from_first_blocked_at_third_stays_at_second():
    state = InningState()
    state.bases[1] = PlayerProfile(name="from_first")
    state.bases[2] = PlayerProfile(name="from_second")
    # second's runner stops at third; first's runner tries for third (0.8 - 0.706 < 0.2801)
    apply_outcome(Outcome.SINGLE, player("batter"), state, ProbabilisticAdvance(), ScriptedRng([0.1, 0.8]))
    assert state.runs == 0
    assert state.bases[3].name == "from_second"
    assert state.bases[2].name == "from_first"
    assert state.bases[1].name == "batter"


def test_detailed_double_can_score_runner_from_first():
    state = loaded_state()
    # 0.6 misses first_to_third_on_double (0.5549); 0.0451 < first_scores_on_double
    apply_outcome(Outcome.DOUBLE, player("batter"), state, ProbabilisticAdvance(), ScriptedRng([0.6]))
    assert state.runs == 3
    assert state.bases.occupancy() == (False, True, False)


def test_outs_on_the_bases_never_pass_the_inning_limit():
    state = InningState(outs=2)
    state.bases[1] = PlayerProfile(name="a")
    state.bases[2] = PlayerProfile(name="b")
    apply_outcome(Outcome.SINGLE, player("batter"), state, ProbabilisticAdvance(), ScriptedRng([0.99, 0.99]))
    assert state.outs == 3
    assert state.is_over


def test_resolve_baserunning_requires_a_runner():
    with pytest.raises(ValueError):
        resolve_baserunning(InningState(), 1, 2, 3, 0.5, 0.5, ScriptedRng([0.1]))


def test_resolve_baserunning_reports_destination():
    state = InningState()
    state.bases[2] = PlayerProfile(name="runner")
    assert resolve_baserunning(state, 2, 3, HOME, 0.3, 0.6, ScriptedRng([0.5])) == HOME
    assert state.runs == 1
    assert state.bases.is_empty()


def test_base_cannot_hold_two_runners():
    bases = BaseState()
    bases.place(2, PlayerProfile(name="a"))
    with pytest.raises(ValueError):
        bases.place(2, PlayerProfile(name="b"))


def test_strikeout_lineup_retires_the_side_in_order():
    lineup = [player(k=1.0)] * 9
    runs, next_slot = simulate_half_inning(lineup, 7, FullAdvance(), np.random.default_rng(0))
    assert runs == 0
    assert next_slot == 1


def test_half_inning_ends_with_three_outs_and_empty_bases():
    state = InningState()
    play_half_inning(state, default_lineup(), 0, ProbabilisticAdvance(), np.random.default_rng(11))
    assert state.outs == 3
    assert state.bases.is_empty()


def test_all_home_run_lineup_hits_the_plate_appearance_cap():
    lineup = [player(hr=1.0)] * 9
    with pytest.raises(InningLimitExceeded):
        simulate_half_inning(lineup, 0, FullAdvance(), np.random.default_rng(0), max_plate_appearances=50)


def test_strikeout_lineup_never_scores():
    lineup = [player(k=1.0)] * 9
    assert simulate_game(lineup, ProbabilisticAdvance(), np.random.default_rng(3)) == [0] * 9


def test_game_reports_runs_for_each_inning():
    rng = np.random.default_rng(5)
    innings = simulate_game(default_lineup(), ProbabilisticAdvance(), rng)
    assert len(innings) == 9
    assert all(r >= 0 for r in innings)


def test_unknown_model_is_rejected():
    with pytest.raises(ValueError):
        make_advancement("bogus")


def test_detailed_double_runner_from_first_stops_at_third():
    state = InningState()
    state.bases[1] = PlayerProfile(name="runner")
    apply_outcome(Outcome.DOUBLE, player("batter"), state, ProbabilisticAdvance(), ScriptedRng([0.3]))
    assert state.runs == 0
    assert state.outs == 0
    assert state.bases.occupancy() == (False, True, True)
    assert state.bases[3].name == "runner"
    assert state.bases[2].name == "batter"


def test_detailed_double_runner_from_first_thrown_out():
    state = InningState()
    state.bases[1] = PlayerProfile(name="runner")
    # 0.99 - 0.5549 = 0.4351 is past first_scores_on_double (0.4145)
    apply_outcome(Outcome.DOUBLE, player("batter"), state, ProbabilisticAdvance(), ScriptedRng([0.99]))
    assert state.runs == 0
    assert state.outs == 1
    assert state.bases.occupancy() == (False, True, False)


def test_detailed_single_runner_from_second_stops_at_open_third():
    state = InningState()
    state.bases[2] = PlayerProfile(name="runner")
    apply_outcome(Outcome.SINGLE, player("batter"), state, ProbabilisticAdvance(), ScriptedRng([0.1]))
    assert state.runs == 0
    assert state.bases.occupancy() == (True, False, True)
    assert state.bases[3].name == "runner"


@pytest.mark.parametrize("outcome", [Outcome.SINGLE, Outcome.DOUBLE])
def test_detailed_hits_need_a_generator(outcome):
    state = InningState()
    state.bases[2] = PlayerProfile(name="runner")
    with pytest.raises(ValueError):
        apply_outcome(outcome, player("batter"), state, ProbabilisticAdvance())


def test_simple_hits_advance_by_the_outcome_bases():
    state = InningState()
    state.bases[1] = PlayerProfile(name="runner")
    apply_outcome(Outcome.DOUBLE, player("batter"), state, FullAdvance())
    assert state.bases[1 + Outcome.DOUBLE.bases].name == "runner"
    assert state.bases[Outcome.DOUBLE.bases].name == "batter"
