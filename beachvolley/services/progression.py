"""
Progression: when a match finishes, fill downstream knockout slots and raise phase signals.

- group finished       -> recompute standings; GROUP_PHASE_COMPLETE once every group
                          match is finished and no knockout match exists yet
- quarterfinal finished -> quarterfinals [2k, 2k+1] (creation order) feed semifinal k
- semifinal finished   -> winners to the final, losers to the third-place match
- final finished       -> CHAMPION_DECLARED

Slots are only ever filled when empty, so every handler is idempotent.
Nothing is undone if an upstream result changes after advancement.
Handlers stage changes on the session; the caller owns the commit.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from sqlmodel import Session, select

from beachvolley.models.match import (
    KNOCKOUT_STAGES,
    STAGE_FINAL,
    STAGE_GROUP,
    STAGE_QUARTERFINAL,
    STAGE_SEMIFINAL,
    STAGE_THIRD_PLACE,
    STATUS_FINISHED,
    Match,
)
from beachvolley.services.notifier import EngineEvent, EventType
from beachvolley.services.standings import recompute_category_standings

logger = logging.getLogger(__name__)


@dataclass
class ProgressionResult:
    slots_filled: int = 0
    updated_matches: List[Match] = field(default_factory=list)
    signals: List[EngineEvent] = field(default_factory=list)

    def merge(self, other: "ProgressionResult") -> None:
        self.slots_filled += other.slots_filled
        for match in other.updated_matches:
            if not any(m is match for m in self.updated_matches):
                self.updated_matches.append(match)
        self.signals.extend(other.signals)


def stage_matches(session: Session, category_id: int, stage: str) -> List[Match]:
    return list(
        session.exec(
            select(Match).where(Match.category_id == category_id, Match.stage == stage).order_by(Match.id)
        ).all()
    )


def _fill_slot(match: Match, attr: str, team_id: Optional[int]) -> bool:
    if team_id is None or getattr(match, attr) is not None:
        return False
    setattr(match, attr, team_id)
    return True


def _fill_pair(
    session: Session, match: Match, team1_id: Optional[int], team2_id: Optional[int], result: ProgressionResult
) -> None:
    filled = int(_fill_slot(match, "team1_id", team1_id)) + int(_fill_slot(match, "team2_id", team2_id))
    if filled:
        session.add(match)
        result.slots_filled += filled
        if not any(m is match for m in result.updated_matches):
            result.updated_matches.append(match)


def advance_quarterfinals(session: Session, category_id: int) -> ProgressionResult:
    """Fill each semifinal once both of its feeding quarterfinals are finished."""
    result = ProgressionResult()
    quarterfinals = stage_matches(session, category_id, STAGE_QUARTERFINAL)
    semifinals = stage_matches(session, category_id, STAGE_SEMIFINAL)

    for slot, semifinal in enumerate(semifinals):
        feeders = quarterfinals[2 * slot : 2 * slot + 2]
        if len(feeders) < 2 or any(m.status != STATUS_FINISHED for m in feeders):
            continue
        _fill_pair(session, semifinal, feeders[0].winner_id, feeders[1].winner_id, result)

    if result.slots_filled:
        logger.info("Category %d: %d semifinal slot(s) filled", category_id, result.slots_filled)
    return result


def advance_semifinals(session: Session, category_id: int) -> ProgressionResult:
    """Once both semifinals are finished, fill the final (winners) and third-place match (losers)."""
    result = ProgressionResult()
    semifinals = stage_matches(session, category_id, STAGE_SEMIFINAL)
    if len(semifinals) != 2 or any(m.status != STATUS_FINISHED for m in semifinals):
        return result

    first, second = semifinals
    for final in stage_matches(session, category_id, STAGE_FINAL)[:1]:
        _fill_pair(session, final, first.winner_id, second.winner_id, result)
    for third_place in stage_matches(session, category_id, STAGE_THIRD_PLACE)[:1]:
        _fill_pair(session, third_place, first.loser_id(), second.loser_id(), result)

    if result.slots_filled:
        logger.info("Category %d: %d final/third-place slot(s) filled", category_id, result.slots_filled)
    return result


def group_phase_complete(session: Session, category_id: int) -> bool:
    """True when every group match is finished and no knockout match exists yet."""
    matches = session.exec(select(Match).where(Match.category_id == category_id)).all()
    group_matches = [m for m in matches if m.stage == STAGE_GROUP]
    if not group_matches:
        return False
    if any(m.stage in KNOCKOUT_STAGES for m in matches):
        return False
    return all(m.status == STATUS_FINISHED for m in group_matches)


def on_group_match_finished(session: Session, category_id: int) -> ProgressionResult:
    result = ProgressionResult()
    standings = recompute_category_standings(session, category_id)
    session.flush()

    if group_phase_complete(session, category_id):
        logger.info("Category %d: group phase complete", category_id)
        result.signals.append(
            EngineEvent(
                type=EventType.GROUP_PHASE_COMPLETE,
                payload={
                    "category_id": category_id,
                    "standings": {group: [t.id for t in teams] for group, teams in standings.items()},
                },
            )
        )
    return result


def on_match_finished(session: Session, match: Match) -> ProgressionResult:
    """Run the transition for a match that has just been recorded as finished."""
    if match.status != STATUS_FINISHED or match.winner_id is None:
        return ProgressionResult()

    if match.stage == STAGE_GROUP:
        return on_group_match_finished(session, match.category_id)
    if match.stage == STAGE_QUARTERFINAL:
        return advance_quarterfinals(session, match.category_id)
    if match.stage == STAGE_SEMIFINAL:
        return advance_semifinals(session, match.category_id)
    if match.stage == STAGE_FINAL:
        logger.info("Category %d: champion is team %d", match.category_id, match.winner_id)
        return ProgressionResult(
            signals=[
                EngineEvent(
                    type=EventType.CHAMPION_DECLARED,
                    payload={"category_id": match.category_id, "team_id": match.winner_id, "match_id": match.id},
                )
            ]
        )
    return ProgressionResult()


def resolve_category_progression(session: Session, category_id: int) -> ProgressionResult:
    """Re-run knockout advancement for a whole category (repair after imports). Idempotent."""
    result = advance_quarterfinals(session, category_id)
    session.flush()
    result.merge(advance_semifinals(session, category_id))
    return result
