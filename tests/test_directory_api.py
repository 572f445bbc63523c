"""
Training Program Provisioning Service
Tests — Directory listings (facilitators, locations, participants).
"""

from app.models import db
from app.models.directory import Facilitator, Location, User
from app.services import directory_service


def test_facilitators_in_matcher_order(client, directory):
    user = User(email="aaron.inactive@tms.com", name="Aaron Inactive", role="FACILITATOR", is_active=False)
    db.session.add(user)
    db.session.flush()
    db.session.add(Facilitator(user_id=user.id, qualifications=["Onboarding"]))
    db.session.commit()

    res = client.get("/api/v1/facilitators")
    assert res.status_code == 200
    names = [f["name"] for f in res.get_json()["data"]]
    assert names == ["Bob Baker", "Emily Rodriguez"]


def test_locations_sorted_by_name(client, directory):
    res = client.get("/api/v1/locations")
    names = [loc["name"] for loc in res.get_json()["data"]]
    assert names == ["Main Auditorium", "Small Auditorium", "Training Room A"]


def test_participants_default_to_active(client, directory):
    res = client.get("/api/v1/participants")
    emails = [p["email"] for p in res.get_json()["data"]]
    assert "old.timer@company.com" not in emails
    assert len(emails) == 3


def test_participants_status_all(client, directory):
    res = client.get("/api/v1/participants?status=all")
    assert len(res.get_json()["data"]) == 4


def test_participants_by_status(client, directory):
    res = client.get("/api/v1/participants?status=inactive")
    [participant] = res.get_json()["data"]
    assert participant["email"] == "old.timer@company.com"


def test_listing_order_ignores_case_like_the_matcher(client, directory):
    user = User(email="carla.lopez@tms.com", name="carla Lopez", role="FACILITATOR")
    db.session.add(user)
    db.session.flush()
    db.session.add(Facilitator(user_id=user.id, qualifications=["Onboarding"]))
    db.session.add(Location(name="annex Room", type="Training Room", capacity=12, equipment=[]))
    db.session.commit()

    facilitators = [f["name"] for f in client.get("/api/v1/facilitators").get_json()["data"]]
    locations = [loc["name"] for loc in client.get("/api/v1/locations").get_json()["data"]]
    assert facilitators == ["Bob Baker", "carla Lopez", "Emily Rodriguez"]
    assert locations == ["annex Room", "Main Auditorium", "Small Auditorium", "Training Room A"]

    assert [c.name for c in directory_service.facilitator_candidates()] == facilitators
    assert [c.name for c in directory_service.location_candidates()] == locations


def test_participants_unknown_status_is_rejected(client, directory):
    res = client.get("/api/v1/participants?status=retired")
    assert res.status_code == 400
    body = res.get_json()
    assert body["code"] == "ERR_VALIDATION_INVALID"
    assert body["details"][0]["field"] == "status"
