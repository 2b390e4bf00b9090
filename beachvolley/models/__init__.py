from beachvolley.models.category import Category, CategoryGender
from beachvolley.models.match import Match
from beachvolley.models.team import Team
from beachvolley.models.tournament import Tournament

__all__ = [
    "Tournament",
    "Category",
    "CategoryGender",
    "Team",
    "Match",
]
