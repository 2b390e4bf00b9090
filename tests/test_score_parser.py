"""Set-score parsing: structured and string inputs, unplayed sets, malformed input."""
import pytest

from beachvolley.services.score_parser import parse_set_scores, score_from_sets


def test_parses_list_of_dicts():
    parsed = parse_set_scores([{"team1": 21, "team2": 18}, {"team1": 19, "team2": 21}, {"team1": 15, "team2": 12}])
    assert parsed.sets == [(21, 18), (19, 21), (15, 12)]
    assert parsed.team1_sets_won == 2
    assert parsed.team2_sets_won == 1
    assert parsed.team1_points == 55
    assert parsed.team2_points == 51
    assert parsed.decided_winner_side() == 1


def test_parses_pairs_and_string_forms_identically():
    from_pairs = parse_set_scores([[18, 21], [21, 23]])
    from_string = parse_set_scores("18-21, 21-23")
    assert from_pairs == from_string
    assert from_pairs.decided_winner_side() == 2


def test_unplayed_sets_are_dropped():
    parsed = parse_set_scores([[21, 15], [21, 19], [0, 0]])
    assert parsed.sets == [(21, 15), (21, 19)]
    assert parsed.team1_sets_won == 2


def test_unplayed_sets_keep_their_position_in_entered():
    parsed = parse_set_scores([[21, 18], [0, 0], [15, 12]])
    assert parsed.entered == [(21, 18), (0, 0), (15, 12)]
    assert parsed.sets == [(21, 18), (15, 12)]
    assert parsed.team1_sets_won == 2


def test_level_sets_decide_nothing():
    parsed = parse_set_scores("21-18 18-21")
    assert parsed.decided_winner_side() is None


def test_empty_list_is_no_sets_played():
    parsed = parse_set_scores([])
    assert parsed.sets == []
    assert parsed.decided_winner_side() is None


@pytest.mark.parametrize(
    "raw",
    [
        [[21, 18], [18, 21], [15, 10], [15, 13]],  # more than 3 sets
        [[-1, 21]],
        [{"team1": "abc", "team2": 3}],
        [[True, 21]],
        [[21, 18, 3]],
        "21:18",
        "",
        "21-18 19-21 15-12 15-10",
        "21-1²",  # superscript two is a digit to str.isdigit
        [["21", "1²"]],
        42,
        None,
    ],
)
def test_malformed_input_returns_none(raw):
    assert parse_set_scores(raw) is None


def test_score_from_stored_sets():
    summary = score_from_sets([(21, 10), (0, 0), (0, 0)])
    assert summary.sets == [(21, 10)]
    assert summary.team1_points == 21
    assert summary.team2_points == 10
