from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import JSON
from sqlmodel import Column, Field, Relationship, SQLModel

if TYPE_CHECKING:
    from beachvolley.models.category import Category


class Tournament(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    location: str
    start_date: date
    end_date: date
    description: Optional[str] = None
    status: str = Field(default="draft")  # "draft" | "open" | "ongoing" | "completed"
    courts: int = Field(default=1)  # Court cycle length for match numbering
    court_names: Optional[List[str]] = Field(default=None, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Relationships
    categories: List["Category"] = Relationship(back_populates="tournament")
