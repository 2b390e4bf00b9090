"""Qualification: direct + wildcard selection, count invariant, wildcard ordering."""
import pytest

from beachvolley.services.errors import ValidationError
from beachvolley.services.qualification import QUALIFIED_BY_RANK, QUALIFIED_BY_WILDCARD, select_qualifiers
from beachvolley.services.standings import TeamStats


def ranked_groups(*sizes):
    """Standings of len(sizes) groups; team ids are group_index * 10 + rank."""
    standings = {}
    for g, size in enumerate(sizes):
        name = f"Group {'ABCDEFGH'[g]}"
        standings[name] = [
            TeamStats(team_id=(g + 1) * 10 + rank, name=f"{name} #{rank}", group_name=name, wins=size - rank)
            for rank in range(1, size + 1)
        ]
    return standings


def test_direct_qualifiers_group_by_group_in_rank_order():
    records = select_qualifiers(ranked_groups(4, 4), qualify_per_group=2, qualify_by_wildcard=0)
    assert [r.team_id for r in records] == [11, 12, 21, 22]
    assert [(r.group_name, r.group_rank) for r in records] == [
        ("Group A", 1),
        ("Group A", 2),
        ("Group B", 1),
        ("Group B", 2),
    ]
    assert all(r.qualified_by == QUALIFIED_BY_RANK for r in records)


@pytest.mark.parametrize(
    "sizes, per_group, wildcards",
    [
        ((4, 4), 2, 0),
        ((4, 3), 3, 2),
        ((3, 3, 3), 1, 3),
        ((2, 2), 3, 1),
        ((5,), 2, 10),
    ],
)
def test_qualifier_count_invariant(sizes, per_group, wildcards):
    records = select_qualifiers(ranked_groups(*sizes), per_group, wildcards)
    direct = sum(min(per_group, size) for size in sizes)
    remaining = sum(sizes) - direct
    assert len(records) == direct + min(wildcards, remaining)
    assert len({r.team_id for r in records}) == len(records)


def test_wildcards_ranked_across_groups_and_listed_last():
    standings = ranked_groups(3, 3)
    # Third-placed teams: B3 has more wins than A3
    standings["Group A"][2].wins = 0
    standings["Group B"][2].wins = 1
    standings["Group B"][2].sets_won = 2

    records = select_qualifiers(standings, qualify_per_group=2, qualify_by_wildcard=1)
    assert len(records) == 5
    wildcard = records[-1]
    assert wildcard.team_id == 23
    assert wildcard.qualified_by == QUALIFIED_BY_WILDCARD
    assert wildcard.group_rank == 3


def test_wildcard_tie_goes_to_set_differential_then_registration():
    standings = ranked_groups(3, 3)
    for row in (standings["Group A"][2], standings["Group B"][2]):
        row.wins = 1
    standings["Group B"][2].sets_won = 3
    standings["Group B"][2].sets_lost = 2
    standings["Group A"][2].sets_won = 2
    standings["Group A"][2].sets_lost = 2

    assert select_qualifiers(standings, 2, 1)[-1].team_id == 23

    standings["Group B"][2].sets_won = 2
    assert select_qualifiers(standings, 2, 1)[-1].team_id == 13


def test_too_few_qualifiers_rejected():
    with pytest.raises(ValidationError):
        select_qualifiers(ranked_groups(4), qualify_per_group=1, qualify_by_wildcard=0)


def test_negative_counts_rejected():
    with pytest.raises(ValidationError):
        select_qualifiers(ranked_groups(4, 4), qualify_per_group=-1, qualify_by_wildcard=4)
