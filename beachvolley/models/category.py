from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import String
from sqlmodel import Column, Field, Relationship, SQLModel

if TYPE_CHECKING:
    from beachvolley.models.match import Match
    from beachvolley.models.team import Team
    from beachvolley.models.tournament import Tournament


class CategoryGender(str, Enum):
    male = "male"
    female = "female"
    mixed = "mixed"


class Category(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    name: str  # e.g. "Men's Pro", "U18 Female"
    gender: CategoryGender = Field(sa_column=Column(String))
    min_teams: int = Field(default=4)
    max_teams: int = Field(default=32)

    # Relationships
    tournament: "Tournament" = Relationship(back_populates="categories")
    teams: List["Team"] = Relationship(back_populates="category")
    matches: List["Match"] = Relationship(back_populates="category")
