import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from datetime import date  # noqa: E402
from typing import List  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

from beachvolley.database import get_session  # noqa: E402
from beachvolley.main import app  # noqa: E402
from beachvolley.services.notifier import EngineEvent, EventBus, get_event_bus  # noqa: E402

TEST_DATABASE_URL = "sqlite:///:memory:"

# ============================================================================
# Test Database Setup with StaticPool
# ============================================================================
# 1. sqlite:///:memory: with StaticPool so ALL sessions share the same DB
# 2. check_same_thread=False required for TestClient/threaded access
# 3. All models imported before create_all() (see session_fixture)
# 4. App dependency overridden to use test_engine (see client_fixture)
# 5. Tables dropped and recreated per test so tests never see each other's rows
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


def override_get_session():
    """Override session to use test engine"""
    with Session(test_engine) as session:
        yield session


class RecordingBus(EventBus):
    """EventBus that keeps every published event for assertions."""

    def __init__(self) -> None:
        super().__init__()
        self.events: List[EngineEvent] = []
        self.subscribe(self.events.append)

    def of_type(self, event_type) -> List[EngineEvent]:
        return [e for e in self.events if e.type == event_type]


@pytest.fixture(name="session", scope="function")
def session_fixture():
    """Provide a test database session on a fresh schema"""
    # Import all models to ensure they're registered BEFORE create_all
    from beachvolley.models.category import Category  # noqa: F401
    from beachvolley.models.match import Match  # noqa: F401
    from beachvolley.models.team import Team  # noqa: F401
    from beachvolley.models.tournament import Tournament  # noqa: F401

    SQLModel.metadata.drop_all(test_engine)
    SQLModel.metadata.create_all(test_engine)

    with Session(test_engine) as session:
        yield session


@pytest.fixture(name="events")
def events_fixture() -> RecordingBus:
    return RecordingBus()


@pytest.fixture(name="client")
def client_fixture(session: Session, events: RecordingBus):
    """Provide a test client with overridden database session and event bus

    Overrides MUST be set BEFORE TestClient() and stay in place for the
    entire duration so the app never uses its own engine.
    """
    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_event_bus] = lambda: events

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def make_category(session: Session):
    """Factory: tournament + category + `team_count` teams named T1..Tn. Returns (category, teams)."""
    from beachvolley.models.category import Category
    from beachvolley.models.team import Team
    from beachvolley.models.tournament import Tournament

    def _make(team_count: int, courts: int = 1, court_names=None):
        tournament = Tournament(
            name="Copacabana Open",
            location="Rio de Janeiro",
            start_date=date(2026, 2, 6),
            end_date=date(2026, 2, 8),
            courts=courts,
            court_names=court_names,
        )
        session.add(tournament)
        session.commit()
        session.refresh(tournament)

        category = Category(tournament_id=tournament.id, name="Men's Pro", gender="male")
        session.add(category)
        session.commit()
        session.refresh(category)

        teams = []
        for i in range(1, team_count + 1):
            team = Team(
                category_id=category.id,
                name=f"T{i}",
                player1_name=f"P{i}a",
                player2_name=f"P{i}b",
            )
            session.add(team)
            teams.append(team)
        session.commit()
        for team in teams:
            session.refresh(team)
        return category, teams

    return _make
