"""
Runtime: match status + scoring.
When a match is finished, progression fills downstream knockout slots and
standings are recomputed for group matches.
"""
from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel import Session

from beachvolley.database import get_session
from beachvolley.routes.errors import http_error
from beachvolley.routes.schedule import MatchResponse, court_names_for_category, match_to_response
from beachvolley.services import tournament_engine
from beachvolley.services.errors import TournamentEngineError
from beachvolley.services.notifier import EventBus, get_event_bus

router = APIRouter()


class MatchResultUpdate(BaseModel):
    # [{"team1": 21, "team2": 18}, ...], [[21, 18], ...] or "21-18 19-21 15-12"
    sets: Optional[Any] = None
    status: Optional[str] = None
    winner_id: Optional[int] = None
    expected_version: Optional[int] = None


class ResolveProgressionResponse(BaseModel):
    category_id: int
    slots_filled: int


@router.patch("/matches/{match_id}", response_model=MatchResponse)
def update_match(
    match_id: int,
    payload: MatchResultUpdate,
    session: Session = Depends(get_session),
    bus: EventBus = Depends(get_event_bus),
):
    """Update scores/status/winner. Pass expected_version to guard against lost updates."""
    try:
        match = tournament_engine.record_match_result(
            session,
            match_id,
            set_scores=payload.sets,
            status=payload.status,
            winner_id=payload.winner_id,
            expected_version=payload.expected_version,
            publisher=bus,
        )
    except TournamentEngineError as e:
        raise http_error(e)

    return match_to_response(match, court_names_for_category(session, match.category_id))


@router.post("/categories/{category_id}/resolve-progression", response_model=ResolveProgressionResponse)
def resolve_progression(
    category_id: int,
    session: Session = Depends(get_session),
    bus: EventBus = Depends(get_event_bus),
):
    """Fill knockout slots whose upstream matches are already finished. Idempotent."""
    try:
        filled = tournament_engine.resolve_progression(session, category_id, publisher=bus)
    except TournamentEngineError as e:
        raise http_error(e)
    return ResolveProgressionResponse(category_id=category_id, slots_filled=filled)
