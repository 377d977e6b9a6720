"""Shared test fixtures: in-memory SQLite database and API client."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from models import Base, UserProfile, University

TEST_EMAIL = "student@example.com"


@pytest.fixture
def engine():
    """SQLite engine shared across threads (stage sync runs in a worker thread)."""
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
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def complete_profile_data():
    """Form data for a fully filled profile."""
    return {
        "education_level": "bachelors",
        "degree_major": "Computer Science",
        "graduation_year": 2024,
        "gpa_percentage": 3.6,
        "intended_degree": "masters",
        "field_of_study": "Data Science",
        "target_intake_year": 2026,
        "target_intake_term": "fall",
        "preferred_countries": ["US", "CA"],
        "budget_min": 20000,
        "budget_max": 50000,
        "funding_plan": "self_funded",
        "ielts_toefl_status": "taken",
        "ielts_toefl_score": 7.5,
        "gre_gmat_status": "planned",
        "gre_gmat_score": None,
        "sop_status": "draft",
    }


@pytest.fixture
def onboarded_profile(db, complete_profile_data):
    """Profile that finished onboarding."""
    profile = UserProfile(
        email=TEST_EMAIL,
        name="Test Student",
        onboarding_completed=True,
        onboarding_step=4,
        current_stage="discover",
        **complete_profile_data,
    )
    db.add(profile)
    db.commit()
    db.refresh(profile)
    return profile


def make_university(db, profile, name="University of Toronto", **overrides):
    """Insert a shortlisted university for a profile."""
    fields = {
        "name": name,
        "country": "CA",
        "degree_type": "masters",
        "category": "target",
        "is_shortlisted": True,
        "is_locked": False,
    }
    fields.update(overrides)
    university = University(user_id=profile.id, **fields)
    db.add(university)
    db.commit()
    db.refresh(university)
    return university


@pytest.fixture
def api_client(session_factory):
    """TestClient with database dependencies pointed at the test engine."""
    from main import app
    from database import get_db, get_session_factory

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    client = TestClient(app)
    yield client

    app.dependency_overrides.clear()
