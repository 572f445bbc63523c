"""
Training Program Provisioning Service
Tests — Enrollment sync, move and remove.
"""

from datetime import date

import pytest

from app.models import db
from app.models.directory import Participant


@pytest.fixture()
def provisioned(client, directory, make_payload):
    payload = make_payload(cohortDetails=[
        {"id": "c1", "name": "Cohort A", "startDate": "2025-10-01"},
        {"id": "c2", "name": "Cohort B", "startDate": "2025-11-03",
         "participantFilters": {"regions": ["Europe"]}},
    ])
    body = client.post("/api/v1/programs", json=payload).get_json()
    cohorts = {c["name"]: c for c in body["data"]["cohorts"]}
    return {
        "program_id": body["data"]["id"],
        "cohort_a": cohorts["Cohort A"]["id"],
        "cohort_b": cohorts["Cohort B"]["id"],
        "john": directory["participants"][0].id,
        "emma": directory["participants"][2].id,
    }


def _members(client, program_id, cohort_name):
    program = client.get(f"/api/v1/programs/{program_id}").get_json()["data"]
    [cohort] = [c for c in program["cohorts"] if c["name"] == cohort_name]
    return sorted(p["participantId"] for p in cohort["participants"])


# ── Sync ─────────────────────────────────────────────────────────────────────


def test_sync_is_idempotent(client, provisioned):
    url = f"/api/v1/cohorts/{provisioned['cohort_a']}/enrollments/sync"

    res = client.post(url)
    assert res.status_code == 200
    assert res.get_json()["data"] == {"created": 0, "skipped": 2}
    assert client.post(url).get_json()["data"] == {"created": 0, "skipped": 2}


def test_sync_enrolls_new_hires(client, provisioned):
    newcomer = Participant(
        first_name="New", last_name="Hire", email="new.hire@company.com",
        department="Engineering", job_title="Engineer", location="North America",
        hire_date=date(2025, 9, 1), status="active",
    )
    db.session.add(newcomer)
    db.session.commit()

    res = client.post(f"/api/v1/cohorts/{provisioned['cohort_a']}/enrollments/sync")
    assert res.get_json()["data"] == {"created": 1, "skipped": 2}
    assert newcomer.id in _members(client, provisioned["program_id"], "Cohort A")


def test_sync_uses_updated_filters(client, provisioned):
    client.put(f"/api/v1/cohorts/{provisioned['cohort_b']}", json={
        "participantFilters": {"regions": ["Europe", "North America"]},
    })
    res = client.post(f"/api/v1/cohorts/{provisioned['cohort_b']}/enrollments/sync")
    assert res.get_json()["data"] == {"created": 2, "skipped": 1}


def test_sync_missing_cohort(client):
    assert client.post("/api/v1/cohorts/999/enrollments/sync").status_code == 404


# ── Move ─────────────────────────────────────────────────────────────────────


def test_move_participant(client, provisioned):
    res = client.post("/api/v1/cohort-enrollments/move", json={
        "participantId": provisioned["john"],
        "fromCohortId": provisioned["cohort_a"],
        "toCohortId": provisioned["cohort_b"],
    })
    assert res.status_code == 200
    assert res.get_json()["data"]["cohortId"] == provisioned["cohort_b"]

    assert provisioned["john"] not in _members(client, provisioned["program_id"], "Cohort A")
    assert provisioned["john"] in _members(client, provisioned["program_id"], "Cohort B")


def test_move_into_cohort_already_containing_participant(client, provisioned):
    client.put(f"/api/v1/cohorts/{provisioned['cohort_b']}", json={
        "participantFilters": {"regions": ["Global"]},
    })
    client.post(f"/api/v1/cohorts/{provisioned['cohort_b']}/enrollments/sync")

    res = client.post("/api/v1/cohort-enrollments/move", json={
        "participantId": provisioned["john"],
        "fromCohortId": provisioned["cohort_a"],
        "toCohortId": provisioned["cohort_b"],
    })
    assert res.status_code == 409
    assert provisioned["john"] in _members(client, provisioned["program_id"], "Cohort A")


def test_move_participant_not_in_source(client, provisioned):
    res = client.post("/api/v1/cohort-enrollments/move", json={
        "participantId": provisioned["emma"],
        "fromCohortId": provisioned["cohort_a"],
        "toCohortId": provisioned["cohort_b"],
    })
    assert res.status_code == 404


def test_move_to_missing_cohort(client, provisioned):
    res = client.post("/api/v1/cohort-enrollments/move", json={
        "participantId": provisioned["john"],
        "fromCohortId": provisioned["cohort_a"],
        "toCohortId": 9999,
    })
    assert res.status_code == 404


def test_move_requires_ids(client, provisioned):
    res = client.post("/api/v1/cohort-enrollments/move", json={"participantId": provisioned["john"]})
    assert res.status_code == 400
    assert res.get_json()["details"][0]["field"] == "fromCohortId"


def test_move_to_same_cohort(client, provisioned):
    res = client.post("/api/v1/cohort-enrollments/move", json={
        "participantId": provisioned["john"],
        "fromCohortId": provisioned["cohort_a"],
        "toCohortId": provisioned["cohort_a"],
    })
    assert res.status_code == 400


# ── Remove ───────────────────────────────────────────────────────────────────


def test_remove_participant(client, provisioned):
    data = {"participantId": provisioned["john"], "cohortId": provisioned["cohort_a"]}

    res = client.post("/api/v1/cohort-enrollments/remove", json=data)
    assert res.status_code == 200
    assert provisioned["john"] not in _members(client, provisioned["program_id"], "Cohort A")

    assert client.post("/api/v1/cohort-enrollments/remove", json=data).status_code == 404
