"""Progression: QF -> SF, SF -> final/third place, idempotence, phase signals."""
import pytest
from sqlmodel import Session

from beachvolley.models.match import (
    STAGE_FINAL,
    STAGE_GROUP,
    STAGE_QUARTERFINAL,
    STAGE_SEMIFINAL,
    STAGE_THIRD_PLACE,
    STATUS_FINISHED,
    STATUS_SCHEDULED,
    Match,
)
from beachvolley.services.notifier import EventType
from beachvolley.services.progression import (
    advance_quarterfinals,
    advance_semifinals,
    group_phase_complete,
    on_match_finished,
    resolve_category_progression,
)


@pytest.fixture
def knockout(session: Session, make_category):
    """8 teams, 4 quarterfinals (T1-T2, T3-T4, ...), 2 empty semifinals, empty final and third place."""
    category, teams = make_category(8)
    ids = [t.id for t in teams]

    def add(stage, number, team1_id=None, team2_id=None):
        match = Match(
            category_id=category.id,
            stage=stage,
            status=STATUS_SCHEDULED,
            match_number=number,
            team1_id=team1_id,
            team2_id=team2_id,
        )
        session.add(match)
        return match

    quarterfinals = [add(STAGE_QUARTERFINAL, i + 1, ids[2 * i], ids[2 * i + 1]) for i in range(4)]
    semifinals = [add(STAGE_SEMIFINAL, 5), add(STAGE_SEMIFINAL, 6)]
    final = add(STAGE_FINAL, 7)
    third_place = add(STAGE_THIRD_PLACE, 8)
    session.commit()
    for match in quarterfinals + semifinals + [final, third_place]:
        session.refresh(match)
    return category, ids, quarterfinals, semifinals, final, third_place


def finish(session, match, winner_id):
    match.status = STATUS_FINISHED
    match.winner_id = winner_id
    session.add(match)
    session.flush()


def test_semifinal_waits_for_both_quarterfinals(session, knockout):
    category, ids, qfs, sfs, _, _ = knockout

    finish(session, qfs[0], ids[0])
    result = advance_quarterfinals(session, category.id)
    assert result.slots_filled == 0
    assert sfs[0].team1_id is None

    finish(session, qfs[1], ids[3])
    result = on_match_finished(session, qfs[1])
    assert result.slots_filled == 2
    assert (sfs[0].team1_id, sfs[0].team2_id) == (ids[0], ids[3])
    assert sfs[1].team1_id is None
    assert any(m is sfs[0] for m in result.updated_matches)


def test_advancement_is_idempotent(session, knockout):
    category, ids, qfs, sfs, _, _ = knockout
    finish(session, qfs[2], ids[4])
    finish(session, qfs[3], ids[7])

    first = advance_quarterfinals(session, category.id)
    second = advance_quarterfinals(session, category.id)
    assert first.slots_filled == 2
    assert second.slots_filled == 0
    assert second.updated_matches == []
    assert (sfs[1].team1_id, sfs[1].team2_id) == (ids[4], ids[7])


def test_populated_slots_are_never_overwritten(session, knockout):
    category, ids, qfs, sfs, _, _ = knockout
    sfs[0].team1_id = ids[1]
    session.add(sfs[0])
    finish(session, qfs[0], ids[0])
    finish(session, qfs[1], ids[2])

    result = advance_quarterfinals(session, category.id)
    assert result.slots_filled == 1
    assert (sfs[0].team1_id, sfs[0].team2_id) == (ids[1], ids[2])


def test_semifinals_fill_final_and_third_place(session, knockout):
    category, ids, _, sfs, final, third_place = knockout
    sfs[0].team1_id, sfs[0].team2_id = ids[0], ids[2]
    sfs[1].team1_id, sfs[1].team2_id = ids[4], ids[6]
    session.add_all(sfs)

    finish(session, sfs[0], ids[2])
    assert advance_semifinals(session, category.id).slots_filled == 0

    finish(session, sfs[1], ids[4])
    result = on_match_finished(session, sfs[1])
    assert result.slots_filled == 4
    assert (final.team1_id, final.team2_id) == (ids[2], ids[4])
    assert (third_place.team1_id, third_place.team2_id) == (ids[0], ids[6])


def test_final_declares_champion_once(session, knockout):
    category, ids, _, _, final, _ = knockout
    final.team1_id, final.team2_id = ids[0], ids[1]
    finish(session, final, ids[1])

    result = on_match_finished(session, final)
    champions = [e for e in result.signals if e.type == EventType.CHAMPION_DECLARED]
    assert len(champions) == 1
    assert champions[0].payload == {"category_id": category.id, "team_id": ids[1], "match_id": final.id}

    # Repair pass never re-declares a champion
    assert resolve_category_progression(session, category.id).signals == []


def test_unfinished_match_does_nothing(session, knockout):
    _, ids, qfs, _, _, _ = knockout
    result = on_match_finished(session, qfs[0])
    assert result.slots_filled == 0
    assert result.signals == []


def test_resolve_fills_everything_reachable(session, knockout):
    category, ids, qfs, sfs, final, third_place = knockout
    for qf, winner in zip(qfs, (ids[0], ids[2], ids[4], ids[6])):
        finish(session, qf, winner)

    result = resolve_category_progression(session, category.id)
    assert result.slots_filled == 4
    assert final.team1_id is None
    assert resolve_category_progression(session, category.id).slots_filled == 0


def test_group_phase_complete_signal(session: Session, make_category):
    category, teams = make_category(3)
    a, b, c = teams
    for t in teams:
        t.group_name = "Group A"
        session.add(t)

    pairs = [(a, b), (a, c), (b, c)]
    matches = []
    for number, (t1, t2) in enumerate(pairs, start=1):
        match = Match(
            category_id=category.id,
            stage=STAGE_GROUP,
            match_number=number,
            group_name="Group A",
            team1_id=t1.id,
            team2_id=t2.id,
        )
        match.set_set_scores([(21, 15), (21, 15)])
        session.add(match)
        matches.append(match)
    session.commit()

    signals = []
    for match in matches:
        assert not group_phase_complete(session, category.id)
        finish(session, match, match.team1_id)
        signals.extend(on_match_finished(session, match).signals)

    assert group_phase_complete(session, category.id)
    assert [e.type for e in signals] == [EventType.GROUP_PHASE_COMPLETE]
    assert signals[0].payload["standings"] == {"Group A": [a.id, b.id, c.id]}
    assert a.wins == 2 and c.losses == 2
