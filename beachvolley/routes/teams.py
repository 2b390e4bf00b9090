"""
Team Registration API Routes
Register, approve, reject and withdraw teams within a category.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, ConfigDict, field_validator
from sqlmodel import Session, or_, select

from beachvolley.database import get_session
from beachvolley.models.category import Category
from beachvolley.models.match import Match
from beachvolley.models.team import TEAM_APPROVED, TEAM_REJECTED, Team

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class TeamCreateRequest(BaseModel):
    player1_name: str
    player2_name: str
    name: Optional[str] = None  # Defaults to "Player1/Player2"
    seed: Optional[int] = None

    @field_validator("player1_name", "player2_name")
    @classmethod
    def validate_player_name(cls, v):
        if not v or not v.strip():
            raise ValueError("player name is required")
        return v.strip()


class TeamResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    category_id: int
    name: str
    player1_name: str
    player2_name: str
    seed: Optional[int] = None
    status: str
    group_name: Optional[str] = None
    wins: int
    losses: int
    sets_won: int
    sets_lost: int
    points_scored: int
    points_conceded: int
    matches_played: int
    created_at: datetime


def _get_team(session: Session, team_id: int) -> Team:
    team = session.get(Team, team_id)
    if not team:
        raise HTTPException(status_code=404, detail="Team not found")
    return team


# ============================================================================
# Team Endpoints
# ============================================================================


@router.get("/categories/{category_id}/teams", response_model=List[TeamResponse])
def get_teams(category_id: int, session: Session = Depends(get_session)):
    """All teams of a category in registration order."""
    if not session.get(Category, category_id):
        raise HTTPException(status_code=404, detail="Category not found")
    return session.exec(select(Team).where(Team.category_id == category_id).order_by(Team.id)).all()


@router.post("/categories/{category_id}/teams", response_model=TeamResponse, status_code=201)
def create_team(category_id: int, request: TeamCreateRequest, session: Session = Depends(get_session)):
    """
    Register a team in a category.

    Constraints:
    - (category_id, name) must be unique
    - the category's max_teams counts every team that is not rejected
    """
    category = session.get(Category, category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")

    name = (request.name or "").strip() or f"{request.player1_name}/{request.player2_name}"

    existing = session.exec(select(Team).where(Team.category_id == category_id)).all()
    if any(t.name == name for t in existing):
        raise HTTPException(status_code=409, detail=f"Team '{name}' is already registered in this category")
    if sum(1 for t in existing if t.status != TEAM_REJECTED) >= category.max_teams:
        raise HTTPException(status_code=400, detail=f"Category is full ({category.max_teams} teams)")

    team = Team(
        category_id=category_id,
        name=name,
        player1_name=request.player1_name,
        player2_name=request.player2_name,
        seed=request.seed,
    )
    session.add(team)
    session.commit()
    session.refresh(team)
    return team


@router.patch("/teams/{team_id}/approve", response_model=TeamResponse)
def approve_team(team_id: int, session: Session = Depends(get_session)):
    team = _get_team(session, team_id)
    team.status = TEAM_APPROVED
    session.add(team)
    session.commit()
    session.refresh(team)
    return team


@router.patch("/teams/{team_id}/reject", response_model=TeamResponse)
def reject_team(team_id: int, session: Session = Depends(get_session)):
    team = _get_team(session, team_id)
    team.status = TEAM_REJECTED
    session.add(team)
    session.commit()
    session.refresh(team)
    return team


@router.delete("/teams/{team_id}", status_code=204)
def delete_team(team_id: int, session: Session = Depends(get_session)):
    """Withdraw a team. Refused once the team appears in a generated match."""
    team = _get_team(session, team_id)

    in_match = session.exec(
        select(Match).where(or_(Match.team1_id == team_id, Match.team2_id == team_id)).limit(1)
    ).first()
    if in_match:
        raise HTTPException(
            status_code=409,
            detail="Team is already scheduled in a match; regenerate the schedule without it instead",
        )

    session.delete(team)
    session.commit()
    return Response(status_code=204)
