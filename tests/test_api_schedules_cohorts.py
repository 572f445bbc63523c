"""
Training Program Provisioning Service
Tests — Post-provisioning schedule and cohort edits.
"""

import pytest


@pytest.fixture()
def program(client, directory, make_payload):
    body = client.post("/api/v1/programs", json=make_payload()).get_json()
    return body["data"]


def _first_schedule(program):
    return program["cohorts"][0]["schedules"][0]


# ═════════════════════════════════════════════════════════════════════════════
# SCHEDULES
# ═════════════════════════════════════════════════════════════════════════════


def test_unassign_facilitator_and_location(client, program):
    schedule = _first_schedule(program)
    res = client.put(f"/api/v1/schedules/{schedule['id']}", json={
        "facilitatorId": None, "locationId": None,
    })
    assert res.status_code == 200
    data = res.get_json()["data"]
    assert data["facilitator"] is None
    assert data["location"] is None
    assert data["startTime"] == schedule["startTime"]


def test_reassign_facilitator(client, directory, program):
    bob = directory["facilitators"][0]
    schedule = _first_schedule(program)
    res = client.put(f"/api/v1/schedules/{schedule['id']}", json={"facilitatorId": bob.id})
    assert res.status_code == 200
    assert res.get_json()["data"]["facilitator"]["name"] == "Bob Baker"


def test_move_schedule_window(client, program):
    schedule = _first_schedule(program)
    res = client.put(f"/api/v1/schedules/{schedule['id']}", json={
        "startTime": "2025-10-07T13:00:00", "endTime": "2025-10-07T14:30:00Z",
    })
    assert res.status_code == 200
    data = res.get_json()["data"]
    assert data["startTime"] == "2025-10-07T13:00:00"
    assert data["endTime"] == "2025-10-07T14:30:00"


def test_schedule_end_must_follow_start(client, program):
    schedule = _first_schedule(program)
    res = client.put(f"/api/v1/schedules/{schedule['id']}", json={"endTime": "2025-10-06T08:00:00"})
    assert res.status_code == 400
    assert res.get_json()["details"][0]["field"] == "endTime"


def test_schedule_unknown_facilitator(client, program):
    schedule = _first_schedule(program)
    res = client.put(f"/api/v1/schedules/{schedule['id']}", json={"facilitatorId": 9999})
    assert res.status_code == 404


def test_missing_schedule(client):
    assert client.put("/api/v1/schedules/9999", json={"locationId": None}).status_code == 404


# ═════════════════════════════════════════════════════════════════════════════
# COHORTS
# ═════════════════════════════════════════════════════════════════════════════


def test_update_cohort_fields(client, program):
    cohort = program["cohorts"][0]
    res = client.put(f"/api/v1/cohorts/{cohort['id']}", json={
        "name": "Cohort A (Autumn)",
        "maxParticipants": 45,
        "status": "active",
        "participantFilters": {"employeeStartDateFrom": "2024-01-01"},
    })
    assert res.status_code == 200
    data = res.get_json()["data"]
    assert data["name"] == "Cohort A (Autumn)"
    assert data["capacity"] == 45
    assert data["status"] == "active"
    assert data["formData"]["participantFilters"] == {"employeeStartDateFrom": "2024-01-01"}


@pytest.mark.parametrize("body, field", [
    ({"status": "cancelled"}, "status"),
    ({"name": "  "}, "name"),
    ({"capacity": 0}, "capacity"),
    ({"capacity": "many"}, "capacity"),
    ({"participantFilters": {"employeeStartDateTo": "soon"}}, "participantFilters.employeeStartDateTo"),
])
def test_update_cohort_rejects_bad_input(client, program, body, field):
    cohort = program["cohorts"][0]
    res = client.put(f"/api/v1/cohorts/{cohort['id']}", json=body)
    assert res.status_code == 400
    assert res.get_json()["details"][0]["field"] == field


def test_update_missing_cohort(client):
    assert client.put("/api/v1/cohorts/9999", json={"status": "active"}).status_code == 404
