"""
Tournament Engine Operations

Transport-agnostic entry points used by the HTTP routes:
- generate_group_schedule: draw groups + round-robin matches
- compute_standings: stored, ranked group standings
- preview_qualification: qualifiers without touching the database
- generate_bracket: qualification + knockout pairings + placeholder rounds
- record_match_result: score/status/winner update with inline progression
- resolve_progression: re-run knockout advancement for a category

Every mutating operation is a single unit of work: one commit on success,
rollback on any failure. Events are published only after the commit.
"""
import logging
import random
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlmodel import Session, select

from beachvolley.models.category import Category
from beachvolley.models.match import (
    KNOCKOUT_STAGES,
    STAGE_FINAL,
    STAGE_GROUP,
    STAGE_QUARTERFINAL,
    STAGE_SEMIFINAL,
    STAGE_THIRD_PLACE,
    STATUS_FINISHED,
    STATUS_IN_PROGRESS,
    STATUS_SCHEDULED,
    STATUS_WARMUP,
    Match,
)
from beachvolley.models.team import TEAM_REJECTED, Team
from beachvolley.models.tournament import Tournament
from beachvolley.services.bracket_pairing import plan_bracket
from beachvolley.services.errors import InconsistentStateError, NotFoundError, ValidationError
from beachvolley.services.notifier import EngineEvent, EventPublisher, EventType
from beachvolley.services.progression import (
    ProgressionResult,
    on_match_finished,
    resolve_category_progression,
)
from beachvolley.services.qualification import QualificationRecord, select_qualifiers
from beachvolley.services.round_robin import build_group_schedule, draw_groups
from beachvolley.services.score_parser import parse_set_scores, score_from_sets
from beachvolley.services.standings import build_standings, load_group_inputs, recompute_category_standings
from beachvolley.utils.courts import court_number_for_match

logger = logging.getLogger(__name__)

# Forward-only runtime order
STATUS_ORDER = [STATUS_SCHEDULED, STATUS_WARMUP, STATUS_IN_PROGRESS, STATUS_FINISHED]


# ============================================================================
# Lookups
# ============================================================================


def get_category(session: Session, category_id: int) -> Category:
    category = session.get(Category, category_id)
    if not category:
        raise NotFoundError(f"Category {category_id} not found")
    return category


def get_match(session: Session, match_id: int) -> Match:
    match = session.get(Match, match_id)
    if not match:
        raise NotFoundError(f"Match {match_id} not found")
    return match


def total_courts(session: Session, category: Category) -> int:
    tournament = session.get(Tournament, category.tournament_id)
    if tournament is None or not tournament.courts:
        return 1
    return max(tournament.courts, 1)


def draw_roster(session: Session, category_id: int) -> List[Team]:
    """Teams eligible for the draw: everyone not rejected, in registration order."""
    teams = session.exec(select(Team).where(Team.category_id == category_id).order_by(Team.id)).all()
    return [t for t in teams if t.status != TEAM_REJECTED]


def match_payload(match: Match) -> Dict[str, Any]:
    return match.model_dump(mode="json")


def _publish(
    session: Session,
    publisher: Optional[EventPublisher],
    changed: List[Match],
    signals: List[EngineEvent],
) -> None:
    if publisher is None:
        return
    for match in changed:
        session.refresh(match)
        publisher.publish(EngineEvent(type=EventType.MATCH_UPDATE, payload=match_payload(match)))
    for signal in signals:
        publisher.publish(signal)


# ============================================================================
# Group stage
# ============================================================================


def generate_group_schedule(
    session: Session,
    category_id: int,
    num_groups: int,
    seed: Optional[int] = None,
) -> List[Match]:
    """
    Draw the category's teams into groups and create the round-robin matches.

    Destructive: every existing match of the category is deleted and every
    team's group stats are reset.

    Raises:
        NotFoundError: unknown category
        ValidationError: fewer than 2 teams, fewer than 1 group, more groups than teams
    """
    category = get_category(session, category_id)
    roster = draw_roster(session, category_id)

    if len(roster) < 2:
        raise ValidationError(f"At least 2 teams are required to generate matches, got {len(roster)}")
    if num_groups < 1:
        raise ValidationError("num_groups must be >= 1")
    if num_groups > len(roster):
        raise ValidationError(f"Cannot draw {num_groups} groups from {len(roster)} teams")

    courts = total_courts(session, category)

    try:
        for existing in session.exec(select(Match).where(Match.category_id == category_id)).all():
            session.delete(existing)
        session.flush()

        groups = draw_groups([t.id for t in roster], num_groups, random.Random(seed))
        roster_by_id = {t.id: t for t in roster}

        for team in session.exec(select(Team).where(Team.category_id == category_id)).all():
            team.reset_stats()
            team.group_name = None
            session.add(team)
        for group_name, team_ids in groups.items():
            for team_id in team_ids:
                roster_by_id[team_id].group_name = group_name

        matches = [
            Match(
                category_id=category_id,
                stage=STAGE_GROUP,
                status=STATUS_SCHEDULED,
                match_number=s.match_number,
                round_number=s.round_number,
                group_name=s.group_name,
                team1_id=s.team1_id,
                team2_id=s.team2_id,
                court_number=s.court_number,
            )
            for s in build_group_schedule(groups, courts)
        ]
        session.add_all(matches)
        session.commit()
    except Exception:
        session.rollback()
        logger.exception("Group schedule generation failed for category %d, transaction rolled back", category_id)
        raise

    for match in matches:
        session.refresh(match)

    logger.info(
        "Category %d: drew %d teams into %d groups, %d group matches over %d courts",
        category_id,
        len(roster),
        num_groups,
        len(matches),
        courts,
    )
    return matches


def compute_standings(session: Session, category_id: int) -> Dict[str, List[Team]]:
    """Recompute, store and return ranked teams per group."""
    get_category(session, category_id)
    standings = recompute_category_standings(session, category_id)
    session.commit()
    return standings


# ============================================================================
# Qualification + bracket
# ============================================================================


def preview_qualification(
    session: Session, category_id: int, qualify_per_group: int, qualify_by_wildcard: int
) -> List[QualificationRecord]:
    """Who would qualify right now. Reads only; nothing is written."""
    get_category(session, category_id)
    teams, matches = load_group_inputs(session, category_id)
    standings = build_standings(teams, matches)
    if not standings:
        raise ValidationError("Category has no drawn groups")
    return select_qualifiers(standings, qualify_per_group, qualify_by_wildcard)


def generate_bracket(
    session: Session, category_id: int, qualify_per_group: int, qualify_by_wildcard: int
) -> List[Match]:
    """
    Select qualifiers and create the knockout matches.

    Existing knockout matches are deleted first. New matches are numbered
    after the last group match. The entry round gets team slots; the later
    rounds (semifinals when entering at quarterfinals, final, third place)
    start empty. Bye pairings are created finished and advanced immediately.

    Raises:
        NotFoundError: unknown category
        ValidationError: no groups, fewer than 2 or more than 8 qualifiers
    """
    category = get_category(session, category_id)
    teams, group_matches = load_group_inputs(session, category_id)
    standings = build_standings(teams, group_matches)
    if not standings:
        raise ValidationError("Category has no drawn groups")

    records = select_qualifiers(standings, qualify_per_group, qualify_by_wildcard)
    plan = plan_bracket(records, list(standings), qualify_per_group, qualify_by_wildcard)

    unfinished = sum(1 for m in group_matches if m.status != STATUS_FINISHED)
    if unfinished:
        logger.warning("Category %d: bracket generated with %d group matches unfinished", category_id, unfinished)
    for conflict in plan.conflicts:
        logger.warning("Category %d: bracket conflict: %s", category_id, conflict.reason)

    courts = total_courts(session, category)
    created: List[Match] = []

    try:
        recompute_category_standings(session, category_id)

        for existing in session.exec(
            select(Match).where(Match.category_id == category_id, Match.stage.in_(KNOCKOUT_STAGES))
        ).all():
            session.delete(existing)
        session.flush()

        next_number = max((m.match_number for m in group_matches), default=0) + 1

        def add_match(stage: str, team1_id: Optional[int] = None, team2_id: Optional[int] = None) -> Match:
            nonlocal next_number
            match = Match(
                category_id=category_id,
                stage=stage,
                status=STATUS_SCHEDULED,
                match_number=next_number,
                court_number=court_number_for_match(next_number, courts),
                team1_id=team1_id,
                team2_id=team2_id,
            )
            next_number += 1
            session.add(match)
            created.append(match)
            return match

        for first, second in plan.pairings:
            match = add_match(plan.entry_stage, first.team_id, second.team_id if second is not None else None)
            if second is None:
                # Bye: the lone team advances without playing
                match.status = STATUS_FINISHED
                match.winner_id = first.team_id
                match.completed_at = datetime.now(timezone.utc)

        if plan.entry_stage == STAGE_QUARTERFINAL:
            add_match(STAGE_SEMIFINAL)
            add_match(STAGE_SEMIFINAL)
        add_match(STAGE_FINAL)
        add_match(STAGE_THIRD_PLACE)
        session.flush()

        resolve_category_progression(session, category_id)
        session.commit()
    except Exception:
        session.rollback()
        logger.exception("Bracket generation failed for category %d, transaction rolled back", category_id)
        raise

    for match in created:
        session.refresh(match)

    logger.info(
        "Category %d: %s bracket (%s entry) for %d qualified teams, %d matches created",
        category_id,
        plan.mode,
        plan.entry_stage,
        len(records),
        len(created),
    )
    return created


# ============================================================================
# Results + progression
# ============================================================================


def _validate_status_transition(current: str, new: str) -> None:
    if new not in STATUS_ORDER:
        raise ValidationError(f"Invalid status: {new}")
    if current == STATUS_FINISHED:
        raise InconsistentStateError("finished is terminal; result cannot be changed")
    if STATUS_ORDER.index(new) < STATUS_ORDER.index(current):
        raise InconsistentStateError(f"Cannot move match from {current} back to {new}")


def record_match_result(
    session: Session,
    match_id: int,
    set_scores: Any = None,
    status: Optional[str] = None,
    winner_id: Optional[int] = None,
    expected_version: Optional[int] = None,
    publisher: Optional[EventPublisher] = None,
) -> Match:
    """
    Update a match's scores/status/winner and run progression when it finishes.

    When finishing without a winner_id, the side that won more sets wins.

    Raises:
        NotFoundError: unknown match
        ValidationError: malformed scores, unknown status, no decidable winner
        InconsistentStateError: stale version, backwards/terminal transition,
            winner not in the match, finishing with an empty team slot
    """
    match = get_match(session, match_id)
    current = match.status or STATUS_SCHEDULED

    if expected_version is not None and expected_version != match.version:
        raise InconsistentStateError(
            f"Match {match_id} was updated concurrently (version {match.version}, expected {expected_version})"
        )

    new_status = status or current
    _validate_status_transition(current, new_status)

    parsed = None
    if set_scores is not None:
        parsed = parse_set_scores(set_scores)
        if parsed is None:
            raise ValidationError("Malformed set scores: expected up to 3 sets of non-negative points")

    if winner_id is not None and winner_id not in (match.team1_id, match.team2_id):
        raise InconsistentStateError(f"Winner {winner_id} is not a team in match {match_id}")

    if new_status == STATUS_FINISHED:
        if match.team1_id is None or match.team2_id is None:
            raise InconsistentStateError("Cannot finish a match with an empty team slot")
        if winner_id is None:
            winner_id = match.winner_id
        if winner_id is None:
            score = parsed or score_from_sets(match.set_scores)
            side = score.decided_winner_side()
            if side is None:
                raise ValidationError("winner_id required when sets do not decide the match")
            winner_id = match.team1_id if side == 1 else match.team2_id

    progression = ProgressionResult()
    try:
        if parsed is not None:
            match.set_set_scores(parsed.entered)
        if winner_id is not None:
            match.winner_id = winner_id
        if new_status == STATUS_IN_PROGRESS and match.started_at is None:
            match.started_at = datetime.now(timezone.utc)
        if new_status == STATUS_FINISHED:
            match.completed_at = datetime.now(timezone.utc)
        match.status = new_status
        match.version += 1
        session.add(match)
        session.flush()

        if match.status == STATUS_FINISHED:
            progression = on_match_finished(session, match)
        session.commit()
    except Exception:
        session.rollback()
        logger.exception("Recording result for match %d failed, transaction rolled back", match_id)
        raise

    session.refresh(match)
    _publish(session, publisher, [match] + progression.updated_matches, progression.signals)
    return match


def resolve_progression(session: Session, category_id: int, publisher: Optional[EventPublisher] = None) -> int:
    """Fill every knockout slot whose upstream matches are finished. Returns slots filled."""
    get_category(session, category_id)
    try:
        result = resolve_category_progression(session, category_id)
        session.commit()
    except Exception:
        session.rollback()
        logger.exception("Progression repair failed for category %d, transaction rolled back", category_id)
        raise

    _publish(session, publisher, result.updated_matches, result.signals)
    return result.slots_filled
