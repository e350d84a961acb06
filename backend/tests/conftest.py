"""
Pytest configuration and fixtures for backend tests.
"""

import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Set test environment variables before importing config
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["CORS_ORIGINS"] = '["http://localhost:3000"]'
os.environ["PUNISHMENT_EXECUTOR"] = "none"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["OPENAI_API_KEY"] = ""
os.environ["CLASSIFIER_RETRY_DELAY"] = "0"

from repositories.database import Base, get_db  # noqa: E402
import repositories.db_models as db_models  # noqa: E402
from repositories.db_models import PunishmentType  # noqa: E402
from services.classifier import ClassifierVerdict  # noqa: E402
from services.punishment_executor import (  # noqa: E402
    ExecutionResult,
    NullPunishmentExecutor,
    get_default_executor,
)

# Test database engine (in-memory SQLite)
TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeClassifier:
    """
    Classifier double returning scripted answers in order.

    Each script item is a ClassifierVerdict to return or an exception to
    raise. The last item repeats once the script runs out.
    """

    def __init__(self, *script):
        self.script = list(script) or [ClassifierVerdict.clean()]
        self.calls = []

    def classify(self, text, context):
        self.calls.append((text, list(context)))
        index = min(len(self.calls) - 1, len(self.script) - 1)
        item = self.script[index]
        if isinstance(item, Exception):
            raise item
        return item


class FailingExecutor(NullPunishmentExecutor):
    """Executor double whose platform calls always fail."""

    def apply(self, user_id, punishment_type, duration_minutes, reason):
        self.calls.append(("apply", user_id, punishment_type, duration_minutes))
        return ExecutionResult(success=False, error="Discord ban failed with HTTP 503")

    def lift(self, user_id, punishment_type):
        self.calls.append(("lift", user_id, punishment_type, None))
        return ExecutionResult(success=False, error="Discord unban failed with HTTP 503")


def violation(level_name: str, explanation: str = "Broke a rule") -> ClassifierVerdict:
    """Build a violation verdict for ``level_name``."""
    return ClassifierVerdict(
        violation_detected=True, level_name=level_name, explanation=explanation
    )


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh in-memory database session for each test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db(db_session):
    """Alias for db_session."""
    return db_session


@pytest.fixture(scope="function")
def file_session_factory(tmp_path):
    """
    Session factory on a file-backed SQLite database.

    Threads each open their own session (and connection), which the shared
    in-memory StaticPool engine cannot provide.
    """
    from repositories.database import create_db_engine

    file_engine = create_db_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    Base.metadata.create_all(bind=file_engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=file_engine)
    yield factory
    file_engine.dispose()


@pytest.fixture
def executor() -> NullPunishmentExecutor:
    """Executor that records calls and always succeeds."""
    return NullPunishmentExecutor()


@pytest.fixture
def failing_executor() -> FailingExecutor:
    return FailingExecutor()


@pytest.fixture
def fake_classifier() -> FakeClassifier:
    return FakeClassifier()


@pytest.fixture(scope="function")
def client(db_session, executor, fake_classifier):
    """Create a test client with database, classifier and executor overridden."""
    from main import app
    from helpers.rate_limiter import limiter
    from routers.moderation_router import get_classifier

    # Reset rate limiter storage before each test to prevent rate limit errors
    limiter.reset()

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_default_executor] = lambda: executor
    app.dependency_overrides[get_classifier] = lambda: fake_classifier
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def make_levels(session) -> dict[str, db_models.WarningLevel]:
    """Insert yellow (1), orange (3) and red (5) levels."""
    levels = {
        "yellow": db_models.WarningLevel(
            name="yellow", color="#facc15", points=1, description="Minor"
        ),
        "orange": db_models.WarningLevel(
            name="orange",
            color="#fb923c",
            points=3,
            delete_message=True,
            description="Medium",
        ),
        "red": db_models.WarningLevel(
            name="red", color="#ef4444", points=5, delete_message=True, description="Severe"
        ),
    }
    session.add_all(levels.values())
    session.commit()
    for level in levels.values():
        session.refresh(level)
    return levels


def make_punishment_rules(session) -> dict[str, db_models.PunishmentRule]:
    """Insert mute@5 (60 minutes) and ban@10."""
    rules = {
        "ban": db_models.PunishmentRule(
            punishment_type=PunishmentType.BAN, point_threshold=10, duration=None
        ),
        "mute": db_models.PunishmentRule(
            punishment_type=PunishmentType.MUTE, point_threshold=5, duration=60
        ),
    }
    session.add_all(rules.values())
    session.commit()
    for rule in rules.values():
        session.refresh(rule)
    return rules


@pytest.fixture
def levels(db_session) -> dict[str, db_models.WarningLevel]:
    """Default warning levels keyed by name."""
    return make_levels(db_session)


@pytest.fixture
def punishment_rules(db_session) -> dict[str, db_models.PunishmentRule]:
    """Default punishment rules keyed by type."""
    return make_punishment_rules(db_session)


@pytest.fixture
def active_prompt(db_session) -> db_models.PromptTemplate:
    template = db_models.PromptTemplate(
        name="Default",
        system_prompt="Rules:\n{{RULES_LIST}}\nAnswer in JSON.",
        is_active=True,
    )
    db_session.add(template)
    db_session.commit()
    db_session.refresh(template)
    return template
