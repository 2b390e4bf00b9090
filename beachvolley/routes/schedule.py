"""
Schedule API Routes

Group draw + round-robin generation, standings, qualification preview and
knockout bracket generation for a category. Thin wrappers over
beachvolley.services.tournament_engine.
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field
from sqlmodel import Session, select

from beachvolley.database import get_session
from beachvolley.models.category import Category
from beachvolley.models.match import Match
from beachvolley.models.tournament import Tournament
from beachvolley.routes.errors import http_error
from beachvolley.services import tournament_engine
from beachvolley.services.errors import TournamentEngineError
from beachvolley.utils.courts import court_label_for_number

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class GenerateMatchesRequest(BaseModel):
    num_groups: int = Field(ge=1)
    seed: Optional[int] = None  # Reproducible draw


class GenerateBracketRequest(BaseModel):
    qualify_per_group: int = Field(default=2, ge=0)
    qualify_by_wildcard: int = Field(default=0, ge=0)


class SetScore(BaseModel):
    team1: int
    team2: int


class MatchResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    category_id: int
    team1_id: Optional[int] = None
    team2_id: Optional[int] = None
    stage: str
    status: str
    match_number: int
    round_number: Optional[int] = None
    group_name: Optional[str] = None
    court_number: int
    court_label: Optional[str] = None
    scheduled_time: Optional[datetime] = None
    sets: List[SetScore] = []
    winner_id: Optional[int] = None
    version: int
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class StandingRow(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    rank: int
    team_id: int
    name: str
    wins: int
    losses: int
    sets_won: int
    sets_lost: int
    points_scored: int
    points_conceded: int
    matches_played: int


class GroupStandings(BaseModel):
    group_name: str
    teams: List[StandingRow]


class StandingsResponse(BaseModel):
    category_id: int
    groups: List[GroupStandings]


class QualifiedTeam(BaseModel):
    team_id: int
    name: str
    group_name: str
    group_rank: int
    qualified_by: str
    wins: int
    set_diff: int
    point_diff: int
    points_scored: int


class QualificationResponse(BaseModel):
    category_id: int
    qualified: List[QualifiedTeam]


def match_to_response(match: Match, court_names: Optional[List[str]] = None) -> MatchResponse:
    response = MatchResponse.model_validate(match)
    sets = list(match.set_scores)
    # Trailing 0-0 sets were never played; inner ones keep their position
    while sets and sets[-1] == (0, 0):
        sets.pop()
    response.sets = [SetScore(team1=t1, team2=t2) for t1, t2 in sets]
    response.court_label = court_label_for_number(court_names, match.court_number)
    return response


def court_names_for_category(session: Session, category_id: int) -> Optional[List[str]]:
    category = session.get(Category, category_id)
    if category is None:
        return None
    tournament = session.get(Tournament, category.tournament_id)
    return tournament.court_names if tournament else None


# ============================================================================
# Endpoints
# ============================================================================


@router.get("/categories/{category_id}/matches", response_model=List[MatchResponse])
def list_matches(
    category_id: int,
    stage: Optional[str] = Query(default=None, description="Filter by stage, e.g. group or final"),
    session: Session = Depends(get_session),
):
    """All matches of a category ordered by match_number."""
    if not session.get(Category, category_id):
        raise HTTPException(status_code=404, detail="Category not found")

    query = select(Match).where(Match.category_id == category_id)
    if stage:
        query = query.where(Match.stage == stage)
    matches = session.exec(query.order_by(Match.match_number, Match.id)).all()
    court_names = court_names_for_category(session, category_id)
    return [match_to_response(m, court_names) for m in matches]


@router.post("/categories/{category_id}/generate-matches", response_model=List[MatchResponse], status_code=201)
def generate_matches(category_id: int, request: GenerateMatchesRequest, session: Session = Depends(get_session)):
    """
    Draw groups and generate the round-robin group stage.

    Replaces every existing match of the category.
    """
    try:
        matches = tournament_engine.generate_group_schedule(
            session, category_id, request.num_groups, seed=request.seed
        )
    except TournamentEngineError as e:
        raise http_error(e)

    court_names = court_names_for_category(session, category_id)
    return [match_to_response(m, court_names) for m in matches]


@router.get("/categories/{category_id}/standings", response_model=StandingsResponse)
def get_standings(category_id: int, session: Session = Depends(get_session)):
    try:
        standings = tournament_engine.compute_standings(session, category_id)
    except TournamentEngineError as e:
        raise http_error(e)

    groups = [
        GroupStandings(
            group_name=group_name,
            teams=[
                StandingRow(
                    rank=index + 1,
                    team_id=team.id,
                    name=team.name,
                    wins=team.wins,
                    losses=team.losses,
                    sets_won=team.sets_won,
                    sets_lost=team.sets_lost,
                    points_scored=team.points_scored,
                    points_conceded=team.points_conceded,
                    matches_played=team.matches_played,
                )
                for index, team in enumerate(teams)
            ],
        )
        for group_name, teams in standings.items()
    ]
    return StandingsResponse(category_id=category_id, groups=groups)


@router.get("/categories/{category_id}/qualification", response_model=QualificationResponse)
def get_qualification(
    category_id: int,
    qualify_per_group: int = Query(default=2, ge=0),
    qualify_by_wildcard: int = Query(default=0, ge=0),
    session: Session = Depends(get_session),
):
    """Preview who would qualify for the knockout stage. Read-only."""
    try:
        records = tournament_engine.preview_qualification(
            session, category_id, qualify_per_group, qualify_by_wildcard
        )
    except TournamentEngineError as e:
        raise http_error(e)

    return QualificationResponse(
        category_id=category_id,
        qualified=[
            QualifiedTeam(
                team_id=r.team_id,
                name=r.team.name,
                group_name=r.group_name,
                group_rank=r.group_rank,
                qualified_by=r.qualified_by,
                wins=r.team.wins,
                set_diff=r.team.set_diff,
                point_diff=r.team.point_diff,
                points_scored=r.team.points_scored,
            )
            for r in records
        ],
    )


@router.post("/categories/{category_id}/generate-bracket", response_model=List[MatchResponse], status_code=201)
def generate_bracket(category_id: int, request: GenerateBracketRequest, session: Session = Depends(get_session)):
    """
    Create the knockout bracket from the current standings.

    Replaces any existing knockout matches; group matches are untouched.
    """
    try:
        matches = tournament_engine.generate_bracket(
            session, category_id, request.qualify_per_group, request.qualify_by_wildcard
        )
    except TournamentEngineError as e:
        raise http_error(e)

    court_names = court_names_for_category(session, category_id)
    return [match_to_response(m, court_names) for m in matches]
