"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from typing import Generator

import pytest
from fastapi.testclient import TestClient

from family_tree.core.database import FamilyDatabase
from family_tree.core.models import Family, Gender, Person
from family_tree.core.storage import MemoryStorage
from family_tree.guide.sequencer import GuideSequencer
from family_tree.web import app, get_database, get_guide


# =============================================================================
# Sample Data Fixtures
# =============================================================================

@pytest.fixture
def sample_members() -> list[Person]:
    """
    Two roots; the first has three generations.

    Jean Martin (1)
    ├── Alice Martin (2)
    │   └── Lucas Bernard (4)
    └── Paul Martin (3)
    Marie Durand (5)
    """
    lucas = Person(id=4, given_name="Lucas", surname="Bernard", gender=Gender.MALE, parent_id=2)
    alice = Person(
        id=2,
        given_name="Alice",
        surname="Martin",
        gender=Gender.FEMALE,
        email="alice@example.com",
        parent_id=1,
        children=[lucas],
    )
    paul = Person(id=3, given_name="Paul", surname="Martin", gender=Gender.MALE, parent_id=1)
    jean = Person(
        id=1,
        given_name="Jean",
        surname="Martin",
        gender=Gender.MALE,
        phone="0102030405",
        children=[alice, paul],
    )
    marie = Person(id=5, given_name="Marie", surname="Durand", gender=Gender.FEMALE, address="Paris")
    return [jean, marie]


@pytest.fixture
def sample_family(sample_members: list[Person]) -> Family:
    """A family holding the sample members."""
    return Family(id=100, name="Martin", members=sample_members)


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def db(storage: MemoryStorage) -> FamilyDatabase:
    """Empty database on in-memory storage."""
    return FamilyDatabase(storage)


@pytest.fixture
def populated_db(db: FamilyDatabase, sample_family: Family) -> FamilyDatabase:
    """Database containing the sample family (ID 100)."""
    db.import_family(sample_family)
    return db


@pytest.fixture
def guide() -> GuideSequencer:
    return GuideSequencer(MemoryStorage())


# =============================================================================
# Web Fixtures
# =============================================================================

@pytest.fixture
def client(populated_db: FamilyDatabase, guide: GuideSequencer) -> Generator[TestClient, None, None]:
    """API client bound to the populated database."""
    app.dependency_overrides[get_database] = lambda: populated_db
    app.dependency_overrides[get_guide] = lambda: guide
    yield TestClient(app)
    app.dependency_overrides.clear()
