from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, ConfigDict, field_validator, model_validator
from sqlmodel import Session, func, select, text

from beachvolley.database import get_session
from beachvolley.models.category import Category, CategoryGender
from beachvolley.models.tournament import Tournament

router = APIRouter()


class TournamentCreate(BaseModel):
    name: str
    location: str
    start_date: date
    end_date: date
    description: Optional[str] = None
    courts: int = 1
    court_names: Optional[List[str]] = None

    @field_validator("name", "location")
    @classmethod
    def validate_not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError("must not be blank")
        return v.strip()

    @field_validator("courts")
    @classmethod
    def validate_courts(cls, v):
        if v < 1:
            raise ValueError("courts must be >= 1")
        return v

    @model_validator(mode="after")
    def validate_date_range(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must be >= start_date")
        return self


class TournamentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    location: str
    start_date: date
    end_date: date
    description: Optional[str] = None
    status: str
    courts: int
    court_names: Optional[List[str]] = None
    created_at: datetime


class CategoryCreate(BaseModel):
    name: str
    gender: CategoryGender
    min_teams: int = 4
    max_teams: int = 32

    @model_validator(mode="after")
    def validate_team_limits(self):
        if self.min_teams < 2:
            raise ValueError("min_teams must be >= 2")
        if self.max_teams < self.min_teams:
            raise ValueError("max_teams must be >= min_teams")
        return self


class CategoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tournament_id: int
    name: str
    gender: CategoryGender
    min_teams: int
    max_teams: int


@router.get("/tournaments", response_model=List[TournamentResponse])
def list_tournaments(session: Session = Depends(get_session)):
    """List all tournaments"""
    return session.exec(select(Tournament).order_by(Tournament.id)).all()


@router.post("/tournaments", response_model=TournamentResponse, status_code=201)
def create_tournament(request: TournamentCreate, session: Session = Depends(get_session)):
    tournament = Tournament(**request.model_dump())
    session.add(tournament)
    session.commit()
    session.refresh(tournament)
    return tournament


@router.get("/tournaments/{tournament_id}", response_model=TournamentResponse)
def get_tournament(tournament_id: int, session: Session = Depends(get_session)):
    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        raise HTTPException(status_code=404, detail="Tournament not found")
    return tournament


@router.delete("/tournaments/{tournament_id}", status_code=204)
def delete_tournament(tournament_id: int, session: Session = Depends(get_session)):
    """Delete a tournament and everything under it (categories, teams, matches)"""
    try:
        tournament_exists = session.exec(select(func.count(Tournament.id)).where(Tournament.id == tournament_id)).one()
        if tournament_exists == 0:
            raise HTTPException(status_code=404, detail="Tournament not found")

        # Children before parents
        params = {"tournament_id": tournament_id}
        session.execute(
            text("DELETE FROM match WHERE category_id IN (SELECT id FROM category WHERE tournament_id = :tournament_id)"),
            params,
        )
        session.execute(
            text("DELETE FROM team WHERE category_id IN (SELECT id FROM category WHERE tournament_id = :tournament_id)"),
            params,
        )
        session.execute(text("DELETE FROM category WHERE tournament_id = :tournament_id"), params)
        session.execute(text("DELETE FROM tournament WHERE id = :tournament_id"), params)
        session.commit()

        return Response(status_code=204)
    except HTTPException:
        raise
    except Exception as e:
        session.rollback()
        raise HTTPException(status_code=500, detail=f"Failed to delete tournament: {str(e)}")


# ============================================================================
# Categories
# ============================================================================


@router.get("/tournaments/{tournament_id}/categories", response_model=List[CategoryResponse])
def list_categories(tournament_id: int, session: Session = Depends(get_session)):
    if not session.get(Tournament, tournament_id):
        raise HTTPException(status_code=404, detail="Tournament not found")
    return session.exec(select(Category).where(Category.tournament_id == tournament_id).order_by(Category.id)).all()


@router.post("/tournaments/{tournament_id}/categories", response_model=CategoryResponse, status_code=201)
def create_category(tournament_id: int, request: CategoryCreate, session: Session = Depends(get_session)):
    if not session.get(Tournament, tournament_id):
        raise HTTPException(status_code=404, detail="Tournament not found")

    category = Category(tournament_id=tournament_id, **request.model_dump(mode="json"))
    session.add(category)
    session.commit()
    session.refresh(category)
    return category


@router.get("/categories/{category_id}", response_model=CategoryResponse)
def get_category(category_id: int, session: Session = Depends(get_session)):
    category = session.get(Category, category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    return category
