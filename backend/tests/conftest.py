"""
Pytest configuration and fixtures for backend tests.

Provides shared fixtures for:
- Test database sessions (in-memory SQLite with foreign keys)
- FastAPI test client with the database dependency overridden
- Sample data factories for households, members, events and overrides
"""

import os
import pytest
from datetime import date
from sqlalchemy.orm import sessionmaker

# Set test environment variables before importing app modules
os.environ['FAMHUB_DB_URL'] = 'sqlite:///:memory:'

from backend.src.db.database import build_engine
from backend.src.models import (
    Base,
    Household,
    FamilyMember,
    FamilyEvent,
    EventInstance,
)


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture(scope='function')
def test_db_engine():
    """Create an in-memory SQLite database engine for testing."""
    engine = build_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope='function')
def test_db_session(test_db_engine):
    """Create a test database session."""
    TestingSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=test_db_engine
    )
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


# ============================================================================
# Sample Data Factories
# ============================================================================

@pytest.fixture
def sample_household(test_db_session):
    """Factory for creating Household models in the database."""
    def _create(name='Test Family', timezone='UTC', legacy_names=None):
        household = Household(name=name, timezone=timezone, legacy_names=legacy_names)
        test_db_session.add(household)
        test_db_session.commit()
        test_db_session.refresh(household)
        return household
    return _create


@pytest.fixture
def test_household(sample_household):
    """A UTC household with no members."""
    return sample_household()


@pytest.fixture
def sample_member(test_db_session):
    """Factory for creating FamilyMember models in the database."""
    def _create(household, name='Alex', member_type='parent', legacy_role=None,
                display_order=0, is_active=True):
        member = FamilyMember(
            household_id=household.id,
            name=name,
            member_type=member_type,
            legacy_role=legacy_role,
            display_order=display_order,
            is_active=is_active,
        )
        test_db_session.add(member)
        test_db_session.commit()
        test_db_session.refresh(member)
        test_db_session.refresh(household)
        return member
    return _create


@pytest.fixture
def sample_event(test_db_session):
    """
    Factory for creating FamilyEvent models in the database.

    Defaults to a weekly Monday 16:00-18:00 slot starting Monday 2026-03-02.
    """
    def _create(household, title='BJJ Training', category='sports',
                start_date=date(2026, 3, 2), end_date=None,
                recurrence_slots=None, participants=None, transportation=None,
                location=None, notes=None, description=None):
        if recurrence_slots is None:
            recurrence_slots = [{'dayOfWeek': 1, 'startTime': '16:00', 'endTime': '18:00'}]
        family_event = FamilyEvent(
            household_id=household.id,
            title=title,
            category=category,
            start_date=start_date,
            end_date=end_date,
            recurrence_slots=recurrence_slots,
            participants=participants or [],
            transportation=transportation,
            location=location,
            notes=notes,
            description=description,
        )
        test_db_session.add(family_event)
        test_db_session.commit()
        test_db_session.refresh(family_event)
        return family_event
    return _create


@pytest.fixture
def sample_override(test_db_session):
    """Factory for creating EventInstance overrides in the database."""
    def _create(family_event, occurrence_date, cancelled=False,
                transportation=None, participants=None):
        instance = EventInstance(
            event_id=family_event.id,
            household_id=family_event.household_id,
            occurrence_date=occurrence_date,
            cancelled=cancelled,
            transportation=transportation,
            participants=participants,
        )
        test_db_session.add(instance)
        test_db_session.commit()
        test_db_session.refresh(instance)
        return instance
    return _create


# ============================================================================
# API Fixtures
# ============================================================================

@pytest.fixture(scope='function')
def test_client(test_db_session):
    """Create a test client for FastAPI application."""
    from fastapi.testclient import TestClient
    from backend.src.main import app
    from backend.src.db.database import get_db

    def get_test_db():
        try:
            yield test_db_session
        finally:
            pass

    app.dependency_overrides[get_db] = get_test_db

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
