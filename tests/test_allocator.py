import random

import pytest

from footy.allocator import (
    BLUE,
    RED,
    AllocationError,
    InsufficientCandidates,
    TeamStats,
    allocate,
)
from footy.allocator.service import BeefIndex, TeamState, choose_side
from footy.config import get_rules
from footy.models import BeefRelation, PlayerCandidate


ALWAYS = get_rules("always_balance")
THRESHOLD = get_rules("threshold")


def _player(player_id: str, overall: int = 50, **kwargs) -> PlayerCandidate:
    return PlayerCandidate(
        player_id=player_id,
        display_name=player_id.upper(),
        overall_rating=overall,
        **kwargs,
    )


def _beef(a: str, b: str, rating: int) -> BeefRelation:
    return BeefRelation(from_player=a, to_player=b, rating=rating)


def test_four_outfield_players_balance_by_overall():
    roster = [_player("a", 80), _player("b", 70), _player("c", 60), _player("d", 50)]

    result = allocate(roster, [], ALWAYS)

    assert result.red_ids == ["a", "d"]
    assert result.blue_ids == ["b", "c"]
    assert result.red_stats.overall == 130
    assert result.blue_stats.overall == 130
    assert [step.rule for step in result.steps] == [
        "overall_balance",
        "size_balance",
        "overall_balance",
        "size_balance",
    ]


def test_input_order_is_resorted_by_overall():
    roster = [_player("d", 50), _player("b", 70), _player("a", 80), _player("c", 60)]

    result = allocate(roster, [], ALWAYS)

    assert result.red_ids == ["a", "d"]
    assert result.blue_ids == ["b", "c"]


def test_rating_ties_keep_registration_order():
    roster = [_player(f"p{i}", 50) for i in range(1, 5)]

    result = allocate(roster, [], ALWAYS)

    assert result.red_ids == ["p1", "p3"]
    assert result.blue_ids == ["p2", "p4"]


def test_two_goalkeepers_are_split():
    roster = [
        _player("o1", 70),
        _player("g1", 40, position_preference="GK"),
        _player("o2", 60),
        _player("g2", 30, position_preference="gk"),
    ]

    result = allocate(roster, [], ALWAYS)

    assert result.team_of("g1") == RED
    assert result.team_of("g2") == BLUE
    assert result.steps[0].rule == "goalkeeper_seed"
    assert result.steps[1].rule == "goalkeeper_seed"
    assert len(result.red_team) == len(result.blue_team) == 2


def test_single_goalkeeper_goes_red_and_next_pick_is_forced_blue():
    roster = [_player("g1", 20, position_preference="GK"), _player("o1", 90), _player("o2", 80)]

    result = allocate(roster, [], ALWAYS)

    assert result.red_ids[0] == "g1"
    assert result.team_of("o1") == BLUE
    assert result.steps[1].rule == "size_balance"


def test_surplus_goalkeepers_are_allocated_last():
    roster = [
        _player("g1", 50, position_preference="GK"),
        _player("g2", 40, position_preference="GK"),
        _player("g3", 30, position_preference="GK"),
        _player("o1", 60),
    ]

    result = allocate(roster, [], ALWAYS)

    assert [step.player_id for step in result.steps] == ["g1", "g2", "o1", "g3"]
    assert result.team_of("o1") == BLUE
    assert result.team_of("g3") == RED
    assert result.steps[-1].rule == "size_balance"


def test_high_beef_keeps_players_apart():
    roster = [_player("a", 90), _player("x", 85), _player("b", 60), _player("y", 50)]

    result = allocate(roster, [_beef("a", "b", 5)], ALWAYS)

    assert result.team_of("a") != result.team_of("b")
    assert result.steps[2].player_id == "b"
    assert result.steps[2].rule == "high_beef"


def test_high_beef_is_checked_in_both_directions():
    roster = [_player("a", 90), _player("x", 85), _player("b", 60), _player("y", 50)]

    result = allocate(roster, [_beef("b", "a", 4)], ALWAYS)

    assert result.team_of("a") == RED
    assert result.team_of("b") == BLUE


def test_size_balance_beats_high_beef():
    roster = [_player("a", 90), _player("b", 60)]

    result = allocate(roster, [_beef("a", "b", 5)], ALWAYS)

    assert result.team_of("a") == RED
    assert result.team_of("b") == BLUE
    assert result.steps[1].rule == "size_balance"


def test_beef_with_non_candidates_and_rating_one_is_ignored():
    roster = [_player("a", 80), _player("b", 70), _player("c", 60), _player("d", 50)]
    beef = [_beef("a", "ghost", 5), _beef("c", "a", 1), _beef("c", "c", 5)]

    result = allocate(roster, beef, ALWAYS)

    assert result.red_ids == ["a", "d"]
    assert result.blue_ids == ["b", "c"]


def test_pair_preference_only_fires_under_threshold_policy():
    roster = [
        _player("a", 60),
        _player("b", 55),
        _player("c", 50, pairs=["a"]),
        _player("d", 45),
    ]

    threshold_result = allocate(roster, [], THRESHOLD)
    always_result = allocate(roster, [], ALWAYS)

    assert threshold_result.team_of("c") == RED
    assert threshold_result.steps[2].rule == "pair_preference"
    assert always_result.team_of("c") == BLUE
    assert always_result.steps[2].rule == "overall_balance"


def test_avoid_preference_under_threshold_policy():
    roster = [
        _player("a", 60),
        _player("b", 55),
        _player("c", 50, avoids=["a"]),
        _player("d", 45),
    ]

    result = allocate(roster, [], THRESHOLD)

    assert result.team_of("c") == BLUE
    assert result.steps[2].rule == "avoid_preference"


def test_threshold_policy_still_balances_wide_gaps():
    roster = [
        _player("a", 90),
        _player("b", 60),
        _player("c", 50, pairs=["b"]),
        _player("d", 40),
    ]

    result = allocate(roster, [], THRESHOLD)

    assert result.team_of("c") == BLUE
    assert result.steps[2].rule == "overall_balance"


def test_defense_balance_under_threshold_policy():
    roster = [
        _player("a", 50, defending_rating=10),
        _player("x", 50),
        _player("b", 50),
        _player("y", 50),
    ]

    result = allocate(roster, [], THRESHOLD)

    assert result.team_of("b") == BLUE
    assert result.steps[2].rule == "defense_fitness"


def test_low_beef_is_the_last_rule_before_snake_draft():
    roster = [_player("a", 50), _player("x", 50), _player("b", 50), _player("y", 50)]

    result = allocate(roster, [_beef("a", "b", 2)], THRESHOLD)

    assert result.steps[0].rule == "snake_draft"
    assert result.team_of("b") == BLUE
    assert result.steps[2].rule == "low_beef"


def test_choose_side_evaluates_a_single_step():
    red = _player("r", 70)
    blue = _player("b", 40)
    state = TeamState().add(RED, red).add(BLUE, blue)
    candidate = _player("c", 30, avoids=["b"])

    decision = choose_side(state, candidate, BeefIndex(), ALWAYS)
    assert decision.side == BLUE
    assert decision.rule == "overall_balance"

    decision = choose_side(state, candidate, BeefIndex(), THRESHOLD)
    assert decision.side == BLUE
    assert decision.rule == "overall_balance"

    close_state = TeamState().add(RED, _player("r", 45)).add(BLUE, blue)
    decision = choose_side(close_state, candidate, BeefIndex(), THRESHOLD)
    assert decision.side == RED
    assert decision.rule == "avoid_preference"


def test_team_state_tracks_running_totals():
    state = TeamState()
    state = state.add(RED, _player("a", 10, defending_rating=3, fitness_rating=4))
    state = state.add(RED, _player("b", 20, defending_rating=5))

    assert state.red_stats == TeamStats(overall=30, defense=8, fitness=4)
    assert state.blue_stats == TeamStats()
    assert state.member_ids(RED) == frozenset({"a", "b"})


@pytest.mark.parametrize("roster", [[], [_player("solo", 70)]])
def test_insufficient_candidates(roster):
    with pytest.raises(InsufficientCandidates) as excinfo:
        allocate(roster, [])
    assert excinfo.value.count == len(roster)
    assert isinstance(excinfo.value, ValueError)


def test_duplicate_player_ids_are_rejected():
    with pytest.raises(AllocationError):
        allocate([_player("a"), _player("a")], [])


def test_allocation_is_deterministic():
    roster = [
        _player("g1", 30, position_preference="GK"),
        _player("a", 80, pairs=["b"]),
        _player("b", 75, avoids=["c"]),
        _player("c", 60),
        _player("d", 55),
    ]
    beef = [_beef("a", "c", 3), _beef("b", "d", 2)]

    first = allocate(roster, beef, THRESHOLD)
    second = allocate(roster, beef, THRESHOLD)

    assert first == second


def test_identical_players_split_evenly_without_red_drift():
    for size in range(2, 21):
        roster = [_player(f"p{i:02d}", 50) for i in range(size)]
        result = allocate(roster, [], THRESHOLD)

        assert len(result.red_team) == (size + 1) // 2
        assert len(result.blue_team) == size // 2
        assert result.red_stats.overall - result.blue_stats.overall == (50 if size % 2 else 0)


def _random_roster(rng: random.Random) -> tuple[list[PlayerCandidate], list[BeefRelation]]:
    size = rng.randint(2, 18)
    ids = [f"p{i}" for i in range(size)]
    roster = []
    for player_id in ids:
        others = [other for other in ids if other != player_id]
        roster.append(
            PlayerCandidate(
                player_id=player_id,
                display_name=player_id,
                overall_rating=rng.randint(0, 100),
                defending_rating=rng.randint(0, 20),
                fitness_rating=rng.randint(0, 20),
                position_preference="GK" if rng.random() < 0.2 else "outfield",
                pairs=rng.sample(others, k=min(len(others), rng.randint(0, 2))),
                avoids=rng.sample(others, k=min(len(others), rng.randint(0, 2))),
            )
        )
    beef = [
        BeefRelation(from_player=rng.choice(ids), to_player=rng.choice(ids), rating=rng.randint(1, 5))
        for _ in range(rng.randint(0, size))
    ]
    return roster, beef


@pytest.mark.parametrize("rules", [ALWAYS, THRESHOLD], ids=lambda rules: rules.name)
def test_random_rosters_keep_sizes_and_membership(rules):
    rng = random.Random(20240611)
    for _ in range(200):
        roster, beef = _random_roster(rng)
        result = allocate(roster, beef, rules)

        placed = result.red_ids + result.blue_ids
        assert sorted(placed) == sorted(player.player_id for player in roster)
        assert abs(len(result.red_team) - len(result.blue_team)) <= 1
        if len(roster) % 2 == 0:
            assert len(result.red_team) == len(result.blue_team)
        assert result.red_stats == TeamStats.from_players(result.red_team)
        assert result.blue_stats == TeamStats.from_players(result.blue_team)
