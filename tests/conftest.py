"""
Pytest configuration and shared fixtures.

Every test gets its own in-memory SQLite database with foreign keys on.
"""
import os

# Must be set before coursevault modules read settings
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("CREATE_TABLES_ON_STARTUP", "false")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from coursevault.db.base import Base
from coursevault.db.sessions import get_db
from coursevault.services.authoring import AuthoringService
from coursevault.services.learning_engine import LearningEngine
import coursevault.models  # noqa: F401

from helpers import FixedChoice, make_user


# ============================================================================
# Database
# ============================================================================


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


# ============================================================================
# Factories
# ============================================================================


@pytest.fixture
def teacher(db):
    return make_user(db, "teacher")


@pytest.fixture
def student(db):
    return make_user(db, "student")


@pytest.fixture
def authoring(db):
    return AuthoringService(db)


@pytest.fixture
def rng():
    return FixedChoice(0)


@pytest.fixture
def learning(db, rng):
    return LearningEngine(db, rng=rng)


@pytest.fixture
def course(authoring, teacher):
    """A course with two empty modules."""
    return authoring.create_course(teacher.id, "Algebra", "Numbers and symbols", ["Intro", "Equations"], ["Start", "Solve"])


@pytest.fixture
def module_ids(course):
    return [m.id for m in course.modules]


# ============================================================================
# HTTP
# ============================================================================


@pytest.fixture
def client(engine):
    from fastapi.testclient import TestClient
    from coursevault.main import app

    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        session = TestingSession()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
