from datetime import datetime, timezone
from typing import TYPE_CHECKING, List, Optional, Tuple

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from beachvolley.models.category import Category

STAGE_GROUP = "group"
STAGE_QUARTERFINAL = "quarterfinal"
STAGE_SEMIFINAL = "semifinal"
STAGE_FINAL = "final"
STAGE_THIRD_PLACE = "third_place"

KNOCKOUT_STAGES = (STAGE_QUARTERFINAL, STAGE_SEMIFINAL, STAGE_FINAL, STAGE_THIRD_PLACE)

STATUS_SCHEDULED = "scheduled"
STATUS_WARMUP = "warmup"
STATUS_IN_PROGRESS = "in_progress"
STATUS_FINISHED = "finished"

MAX_SETS = 3


class Match(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    category_id: int = Field(foreign_key="category.id", index=True)

    # Team slots (nullable - knockout slots are filled by progression)
    team1_id: Optional[int] = Field(default=None, foreign_key="team.id")
    team2_id: Optional[int] = Field(default=None, foreign_key="team.id")

    stage: str = Field(default=STAGE_GROUP)  # group | quarterfinal | semifinal | final | third_place
    status: str = Field(default=STATUS_SCHEDULED)  # scheduled | warmup | in_progress | finished
    match_number: int  # Global sequence within the category
    round_number: Optional[int] = Field(default=None)  # Group stage only
    group_name: Optional[str] = Field(default=None)  # Group stage only
    court_number: int = Field(default=1)
    scheduled_time: Optional[datetime] = Field(default=None)

    # Scores (best of 3)
    score_team1_set1: int = Field(default=0)
    score_team2_set1: int = Field(default=0)
    score_team1_set2: int = Field(default=0)
    score_team2_set2: int = Field(default=0)
    score_team1_set3: int = Field(default=0)
    score_team2_set3: int = Field(default=0)

    winner_id: Optional[int] = Field(default=None, foreign_key="team.id")
    version: int = Field(default=1)  # Bumped on every result write
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    started_at: Optional[datetime] = Field(default=None)
    completed_at: Optional[datetime] = Field(default=None)

    # Relationships
    category: "Category" = Relationship(back_populates="matches")

    @property
    def set_scores(self) -> List[Tuple[int, int]]:
        return [
            (self.score_team1_set1, self.score_team2_set1),
            (self.score_team1_set2, self.score_team2_set2),
            (self.score_team1_set3, self.score_team2_set3),
        ]

    def set_set_scores(self, sets: List[Tuple[int, int]]) -> None:
        padded = list(sets) + [(0, 0)] * (MAX_SETS - len(sets))
        (
            (self.score_team1_set1, self.score_team2_set1),
            (self.score_team1_set2, self.score_team2_set2),
            (self.score_team1_set3, self.score_team2_set3),
        ) = padded[:MAX_SETS]

    def loser_id(self) -> Optional[int]:
        if self.winner_id is None:
            return None
        if self.winner_id == self.team1_id:
            return self.team2_id
        if self.winner_id == self.team2_id:
            return self.team1_id
        return None
