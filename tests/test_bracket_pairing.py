"""Bracket pairing: 4-group crossover, smart pairing, byes, sibling conflicts, limits."""
import pytest

from beachvolley.models.match import STAGE_QUARTERFINAL, STAGE_SEMIFINAL
from beachvolley.services.bracket_pairing import (
    MODE_CROSSOVER,
    MODE_SMART,
    arrange_pairings,
    entry_stage_for,
    plan_bracket,
    sibling_conflicts,
)
from beachvolley.services.errors import ValidationError
from beachvolley.services.qualification import select_qualifiers
from beachvolley.services.standings import TeamStats


def ranked_groups(*sizes):
    standings = {}
    for g, size in enumerate(sizes):
        name = f"Group {'ABCDEFGH'[g]}"
        standings[name] = [
            TeamStats(team_id=(g + 1) * 10 + rank, name=f"{'ABCDEFGH'[g]}{rank}", group_name=name, wins=size - rank)
            for rank in range(1, size + 1)
        ]
    return standings


def plan_for(sizes, per_group, wildcards=0):
    standings = ranked_groups(*sizes)
    records = select_qualifiers(standings, per_group, wildcards)
    return plan_bracket(records, list(standings), per_group, wildcards)


def names(plan):
    return [(a.team.name, b.team.name if b is not None else None) for a, b in plan.pairings]


def same_group_meets_only_in_final(plan):
    """Teams from one group never share a semifinal half."""
    if plan.entry_stage == STAGE_SEMIFINAL:
        halves = [plan.pairings[0], plan.pairings[1]]
    else:
        halves = [plan.pairings[0] + plan.pairings[1], plan.pairings[2] + plan.pairings[3]]
    for half in halves:
        groups = [r.group_name for r in half if r is not None]
        if len(groups) != len(set(groups)):
            return False
    return True


def test_entry_stage_by_count():
    assert entry_stage_for(2) == STAGE_SEMIFINAL
    assert entry_stage_for(4) == STAGE_SEMIFINAL
    assert entry_stage_for(5) == STAGE_QUARTERFINAL
    assert entry_stage_for(8) == STAGE_QUARTERFINAL
    with pytest.raises(ValidationError):
        entry_stage_for(1)
    with pytest.raises(ValidationError):
        entry_stage_for(9)


def test_four_group_crossover():
    plan = plan_for((4, 4, 4, 4), per_group=2)
    assert plan.mode == MODE_CROSSOVER
    assert plan.entry_stage == STAGE_QUARTERFINAL
    assert names(plan) == [("A1", "D2"), ("B1", "C2"), ("C1", "B2"), ("D1", "A2")]
    assert plan.conflicts == []
    assert same_group_meets_only_in_final(plan)


def test_crossover_needs_no_wildcards():
    plan = plan_for((3, 3, 3, 3), per_group=1, wildcards=2)
    assert plan.mode == MODE_SMART
    assert plan.entry_stage == STAGE_QUARTERFINAL


def test_two_groups_cross_at_semifinals():
    plan = plan_for((4, 4), per_group=2)
    assert plan.mode == MODE_SMART
    assert plan.entry_stage == STAGE_SEMIFINAL
    assert names(plan) == [("A1", "B2"), ("B1", "A2")]
    assert plan.conflicts == []


def test_byes_go_to_best_placed_and_siblings_are_separated():
    plan = plan_for((4, 4, 4), per_group=2)
    assert plan.entry_stage == STAGE_QUARTERFINAL
    assert len(plan.pairings) == 4

    byes = sorted(a.team.name for a, b in plan.pairings if b is None)
    assert byes == ["A1", "B1"]

    seated = [r.team_id for pairing in plan.pairings for r in pairing if r is not None]
    assert sorted(seated) == [11, 12, 21, 22, 31, 32]
    assert sibling_conflicts(plan.pairings) == []
    assert same_group_meets_only_in_final(plan)


def test_eight_qualifiers_from_wildcards_seat_everyone():
    plan = plan_for((3, 3, 3, 3, 3), per_group=1, wildcards=3)
    seated = [r.team_id for pairing in plan.pairings for r in pairing]
    assert len(seated) == 8
    assert len(set(seated)) == 8
    assert plan.entry_stage == STAGE_QUARTERFINAL


def test_unavoidable_same_group_pairings_are_reported():
    plan = plan_for((4,), per_group=4)
    assert plan.entry_stage == STAGE_SEMIFINAL
    assert names(plan) == [("A1", "A2"), ("A3", "A4")]
    assert len(plan.conflicts) == 2


def test_more_than_eight_qualifiers_rejected():
    with pytest.raises(ValidationError):
        plan_for((4, 4, 4, 4, 4), per_group=2)


def test_arrange_keeps_valid_order_untouched():
    plan = plan_for((4, 4, 4, 4), per_group=2)
    assert arrange_pairings(plan.pairings) == plan.pairings


def test_arrange_searches_orders_for_sibling_conflicts():
    plan = plan_for((4, 4, 4, 4), per_group=2)
    a1_d2, b1_c2, c1_b2, d1_a2 = plan.pairings
    clashing = [a1_d2, d1_a2, b1_c2, c1_b2]
    assert sibling_conflicts(clashing)

    arranged = arrange_pairings(clashing)
    assert sibling_conflicts(arranged) == []
    assert sorted(map(id, arranged)) == sorted(map(id, clashing))


def test_arrange_keeps_built_order_when_no_order_is_valid():
    # Two groups only: winners cross over, so every order clashes somewhere
    plan = plan_for((4, 4), per_group=4)
    assert plan.conflicts

    reordered = list(reversed(plan.pairings))
    assert sibling_conflicts(reordered)
    assert arrange_pairings(reordered) == reordered
