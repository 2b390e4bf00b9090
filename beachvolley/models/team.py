from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from beachvolley.models.category import Category

TEAM_PENDING = "pending"
TEAM_APPROVED = "approved"
TEAM_REJECTED = "rejected"


class Team(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("category_id", "name", name="uq_category_team_name"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    category_id: int = Field(foreign_key="category.id", index=True)
    name: str  # e.g. "Alison/Bruno"
    player1_name: str
    player2_name: str
    seed: Optional[int] = Field(default=None)
    status: str = Field(default=TEAM_PENDING)  # "pending" | "approved" | "rejected"
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Assigned at draw time (nullable until groups are drawn)
    group_name: Optional[str] = Field(default=None, index=True)

    # Group-stage statistics; derived by the standings calculator, never edited by hand
    wins: int = Field(default=0)
    losses: int = Field(default=0)
    sets_won: int = Field(default=0)
    sets_lost: int = Field(default=0)
    points_scored: int = Field(default=0)
    points_conceded: int = Field(default=0)
    matches_played: int = Field(default=0)

    # Relationships
    category: "Category" = Relationship(back_populates="teams")

    def reset_stats(self) -> None:
        self.wins = 0
        self.losses = 0
        self.sets_won = 0
        self.sets_lost = 0
        self.points_scored = 0
        self.points_conceded = 0
        self.matches_played = 0
