"""
Shared pytest fixtures for the Training Program Provisioning Service test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - directory: Pre-seeded facilitators, locations and participants
    - make_payload: Builder for program creation payloads
"""

import copy
from datetime import date

import pytest

from app import create_app
from app.models import db as _db
from app.models.directory import Facilitator, Location, Participant, User


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Directory factories ──────────────────────────────────────────────────


def add_facilitator(email, name, skills, *, active=True):
    user = User(email=email, name=name, role="FACILITATOR", is_active=active)
    _db.session.add(user)
    _db.session.flush()
    facilitator = Facilitator(user_id=user.id, qualifications=list(skills))
    _db.session.add(facilitator)
    _db.session.commit()
    return facilitator


def add_location(name, loc_type, capacity, *, address="1 Main St"):
    location = Location(name=name, type=loc_type, capacity=capacity, equipment=[], address=address)
    _db.session.add(location)
    _db.session.commit()
    return location


def add_participant(email, *, region="North America", department="Engineering",
                    job_title="Engineer", hire_date=date(2024, 1, 15), status="active"):
    first, _, last = email.split("@")[0].partition(".")
    participant = Participant(
        first_name=first.title(), last_name=(last or "x").title(), email=email,
        department=department, job_title=job_title, location=region,
        hire_date=hire_date, status=status,
    )
    _db.session.add(participant)
    _db.session.commit()
    return participant


@pytest.fixture()
def directory():
    """Seed a small directory.

    Facilitators (name order): Bob Baker (Safety Training only),
    Emily Rodriguez (Safety + Compliance + Onboarding).
    Locations: Main Auditorium (200), Small Auditorium (80), Training Room A (20).
    Participants: two active in North America, one active in Europe, one
    inactive in North America.
    """
    return {
        "facilitators": [
            add_facilitator("bob.baker@tms.com", "Bob Baker", ["Safety Training"]),
            add_facilitator(
                "emily.rodriguez@tms.com", "Emily Rodriguez",
                ["Safety Training", "Compliance Training", "Onboarding"],
            ),
        ],
        "locations": [
            add_location("Main Auditorium", "Auditorium", 200),
            add_location("Small Auditorium", "Auditorium", 80),
            add_location("Training Room A", "Training Room", 20),
        ],
        "participants": [
            add_participant("john.doe@company.com"),
            add_participant("jane.smith@company.com", department="Marketing",
                            job_title="Marketing Manager", hire_date=date(2024, 2, 10)),
            add_participant("emma.mueller@company.com", region="Europe"),
            add_participant("old.timer@company.com", status="inactive"),
        ],
    }


# ── Payload builder ──────────────────────────────────────────────────────


_BASE_PAYLOAD = {
    "programName": "Safety Onboarding",
    "region": "North America",
    "description": "Two-week onboarding track",
    "sessions": [
        {
            "id": "s1",
            "name": "Safety Basics",
            "groupSizeMin": 10,
            "groupSizeMax": 150,
            "facilitatorSkills": ["Safety Training", "Compliance Training"],
            "locationTypes": ["Auditorium"],
        },
        {
            "id": "s2",
            "name": "Virtual Q&A",
            "groupSizeMax": 40,
            "locationTypes": ["Virtual"],
            "requiresFacilitator": False,
        },
    ],
    "scheduledSessions": [
        {"sessionId": "s1", "startWeek": 0, "startDay": "Mon", "startTime": "09:00",
         "endWeek": 0, "endDay": "Mon", "endTime": "10:00"},
        {"sessionId": "s2", "startWeek": 1, "startDay": "Wed", "startTime": "14:00",
         "endWeek": 1, "endDay": "Wed", "endTime": "15:00"},
    ],
    "cohortDetails": [
        {"id": "c1", "name": "Cohort A", "startDate": "2025-10-01"},
    ],
    "facilitatorAssignments": [],
    "locationAssignments": [],
}


@pytest.fixture()
def make_payload():
    """Return a builder: make_payload(**top_level_overrides) → fresh payload dict."""

    def _build(**overrides):
        payload = copy.deepcopy(_BASE_PAYLOAD)
        payload.update(copy.deepcopy(overrides))
        return payload

    return _build
