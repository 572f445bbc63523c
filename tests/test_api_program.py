"""
Training Program Provisioning Service
Tests — Program provisioning API.

Covers:
    - Health endpoint
    - POST /programs: full graph, resource matching, enrollment, warnings
    - Validation rejects before any write
    - PUT /programs/<id>: additive cohorts
    - List / pagination / archive / delete cascade
    - POST /programs/preview: no writes
"""

from app.models import db
from app.models.directory import Facilitator, User
from app.models.program import Cohort, CohortParticipant, Program, Schedule, TrainingSession


def _create(client, payload):
    res = client.post("/api/v1/programs", json=payload)
    return res, res.get_json()


def _row_counts():
    return {
        "programs": db.session.query(Program).count(),
        "sessions": db.session.query(TrainingSession).count(),
        "cohorts": db.session.query(Cohort).count(),
        "schedules": db.session.query(Schedule).count(),
        "enrollments": db.session.query(CohortParticipant).count(),
    }


# ═════════════════════════════════════════════════════════════════════════════
# HEALTH
# ═════════════════════════════════════════════════════════════════════════════


def test_health(client):
    res = client.get("/api/v1/health")
    assert res.status_code == 200
    assert res.get_json()["status"] == "ok"


def test_unknown_route_returns_envelope(client):
    res = client.get("/api/v1/nope")
    assert res.status_code == 404
    assert res.get_json()["success"] is False


# ═════════════════════════════════════════════════════════════════════════════
# PROVISIONING
# ═════════════════════════════════════════════════════════════════════════════


def test_provision_full_graph(client, directory, make_payload):
    res, body = _create(client, make_payload())
    assert res.status_code == 201
    assert body["success"] is True

    program = body["data"]
    assert program["name"] == "Safety Onboarding"
    assert program["duration"] == 2
    assert [s["title"] for s in program["sessions"]] == ["Safety Basics", "Virtual Q&A"]

    [cohort] = program["cohorts"]
    assert cohort["name"] == "Cohort A"
    assert cohort["status"] == "scheduled"
    assert cohort["startDate"] == "2025-10-01T00:00:00"
    assert cohort["endDate"] == "2025-10-15T15:00:00"

    first, second = cohort["schedules"]
    assert first["startTime"] == "2025-10-06T09:00:00"
    assert first["endTime"] == "2025-10-06T10:00:00"
    assert first["facilitator"]["name"] == "Emily Rodriguez"
    assert first["location"]["name"] == "Main Auditorium"

    assert second["startTime"] == "2025-10-15T14:00:00"
    assert second["facilitator"] is None
    assert second["location"] is None

    emails = sorted(p["participant"]["email"] for p in cohort["participants"])
    assert emails == ["jane.smith@company.com", "john.doe@company.com"]

    assert body["enrollments"] == {"Cohort A": 2}
    assert body["createdCohorts"] == ["Cohort A"]
    assert body["warnings"] == {"unmatched": [], "skippedPlacements": []}


def test_provision_keeps_form_data(client, directory, make_payload):
    payload = make_payload(customWizardState={"step": 4})
    _, body = _create(client, payload)
    assert body["data"]["formData"]["customWizardState"] == {"step": 4}


def test_unmatched_skills_leave_facilitator_empty_with_warning(client, directory, make_payload):
    payload = make_payload()
    payload["sessions"][0]["facilitatorSkills"] = ["Leadership Development"]

    res, body = _create(client, payload)
    assert res.status_code == 201
    schedule = body["data"]["cohorts"][0]["schedules"][0]
    assert schedule["facilitator"] is None

    [warning] = body["warnings"]["unmatched"]
    assert warning["kind"] == "facilitator"
    assert warning["cohortId"] == "c1"
    assert warning["sessionId"] == "s1"
    assert warning["requiredSkills"] == ["Leadership Development"]


def test_location_without_enough_capacity_is_unmatched(client, directory, make_payload):
    payload = make_payload()
    payload["sessions"][0]["groupSizeMax"] = 500

    _, body = _create(client, payload)
    assert body["data"]["cohorts"][0]["schedules"][0]["location"] is None
    [warning] = body["warnings"]["unmatched"]
    assert warning["kind"] == "location"
    assert warning["requiredCapacity"] == 500


def test_client_assignments_are_revalidated(client, directory, make_payload):
    payload = make_payload(
        facilitatorAssignments=[
            {"cohortId": "c1", "sessionId": "s1", "facilitatorEmail": "bob.baker@tms.com"},
        ],
        locationAssignments=[
            {"cohortId": "c1", "sessionId": "s1", "locationName": "Small Auditorium"},
        ],
    )
    _, body = _create(client, payload)

    schedule = body["data"]["cohorts"][0]["schedules"][0]
    assert schedule["facilitator"] is None
    assert schedule["location"] is None
    reasons = {w["kind"]: w["reason"] for w in body["warnings"]["unmatched"]}
    assert "lacks required skills" in reasons["facilitator"]
    assert "does not fit" in reasons["location"]


def test_client_assignment_resolved_by_natural_key(client, directory, make_payload):
    payload = make_payload(
        facilitatorAssignments=[
            {"cohortId": "c1", "sessionId": "s1", "facilitatorEmail": "Emily.Rodriguez@tms.com"},
        ],
        locationAssignments=[
            {"cohortId": "c1", "sessionId": "s1", "locationName": "Main Auditorium"},
        ],
    )
    _, body = _create(client, payload)
    schedule = body["data"]["cohorts"][0]["schedules"][0]
    assert schedule["facilitator"]["email"] == "emily.rodriguez@tms.com"
    assert schedule["location"]["name"] == "Main Auditorium"
    assert body["warnings"]["unmatched"] == []


def test_unknown_assignment_email_is_a_warning(client, directory, make_payload):
    payload = make_payload(facilitatorAssignments=[
        {"cohortId": "c1", "sessionId": "s1", "facilitatorEmail": "nobody@tms.com"},
    ])
    res, body = _create(client, payload)
    assert res.status_code == 201
    [warning] = body["warnings"]["unmatched"]
    assert warning["reason"] == "Facilitator nobody@tms.com not found"


def test_inactive_facilitator_assignment_is_a_warning(client, directory, make_payload):
    user = User(email="gone@tms.com", name="Gone Facilitator", role="FACILITATOR", is_active=False)
    db.session.add(user)
    db.session.flush()
    db.session.add(Facilitator(user_id=user.id, qualifications=["Safety Training", "Compliance Training"]))
    db.session.commit()

    payload = make_payload(facilitatorAssignments=[
        {"cohortId": "c1", "sessionId": "s1", "facilitatorEmail": "gone@tms.com"},
    ])
    res, body = _create(client, payload)
    assert res.status_code == 201
    assert body["data"]["cohorts"][0]["schedules"][0]["facilitator"] is None
    [warning] = body["warnings"]["unmatched"]
    assert warning["reason"] == "Facilitator gone@tms.com not found"


def test_placement_for_unknown_session_is_skipped(client, directory, make_payload):
    payload = make_payload()
    payload["scheduledSessions"].append(
        {"sessionId": "ghost", "startWeek": 0, "startDay": "Tue", "startTime": "09:00", "endTime": "10:00"},
    )
    res, body = _create(client, payload)
    assert res.status_code == 201
    assert len(body["data"]["cohorts"][0]["schedules"]) == 2
    [skipped] = body["warnings"]["skippedPlacements"]
    assert skipped["sessionId"] == "ghost"


def test_round_robin_continues_across_cohorts(client, directory, make_payload):
    payload = make_payload(
        sessions=[{"id": "s1", "name": "Open Forum", "locationTypes": ["Virtual"]}],
        scheduledSessions=[
            {"sessionId": "s1", "startWeek": 0, "startDay": "Mon", "startTime": "09:00", "endTime": "10:00"},
        ],
        cohortDetails=[
            {"id": "c1", "name": "Cohort A", "startDate": "2025-10-06"},
            {"id": "c2", "name": "Cohort B", "startDate": "2025-11-03"},
        ],
    )
    _, body = _create(client, payload)
    names = [c["schedules"][0]["facilitator"]["name"] for c in body["data"]["cohorts"]]
    assert names == ["Bob Baker", "Emily Rodriguez"]


def test_cohort_filters_narrow_enrollment(client, directory, make_payload):
    payload = make_payload(cohortDetails=[
        {"id": "c1", "name": "Cohort A", "startDate": "2025-10-01",
         "participantFilters": {"employeeStartDateFrom": "2024-02-01"}},
        {"id": "c2", "name": "Cohort EU", "startDate": "2025-10-01",
         "participantFilters": {"regions": ["Europe"]}},
    ])
    _, body = _create(client, payload)
    assert body["enrollments"] == {"Cohort A": 1, "Cohort EU": 1}


def test_global_region_enrolls_every_active_participant(client, directory, make_payload):
    _, body = _create(client, make_payload(region="Global"))
    assert body["enrollments"] == {"Cohort A": 3}


def test_participant_types_restrict_enrollment(client, directory, make_payload):
    payload = make_payload()
    payload["sessions"][0]["participantTypes"] = ["Marketing"]
    _, body = _create(client, payload)
    [participant] = body["data"]["cohorts"][0]["participants"]
    assert participant["participant"]["email"] == "jane.smith@company.com"


def test_configured_minimum_duration(app, client, directory, make_payload, monkeypatch):
    monkeypatch.setitem(app.config, "MIN_PROGRAM_DURATION_WEEKS", 4)
    _, body = _create(client, make_payload())
    assert body["data"]["duration"] == 4


def test_program_without_schedule_uses_default_duration(client, directory, make_payload):
    _, body = _create(client, make_payload(scheduledSessions=[]))
    cohort = body["data"]["cohorts"][0]
    assert body["data"]["duration"] == 12
    assert cohort["schedules"] == []
    assert cohort["endDate"] == "2025-12-24T00:00:00"


# ═════════════════════════════════════════════════════════════════════════════
# VALIDATION
# ═════════════════════════════════════════════════════════════════════════════


def test_invalid_cohort_date_rejects_whole_request(client, directory, make_payload):
    payload = make_payload(cohortDetails=[
        {"id": "c1", "name": "Cohort A", "startDate": "2025-10-01"},
        {"id": "c2", "name": "Cohort B", "startDate": "31/10/2025"},
    ])
    res, body = _create(client, payload)
    assert res.status_code == 400
    assert body["code"] == "ERR_VALIDATION_INVALID"
    assert "Cohort B" in body["error"]
    assert body["details"][0]["field"] == "cohortDetails[1].startDate"
    assert all(v == 0 for v in _row_counts().values())


def test_missing_program_name(client, make_payload):
    res, body = _create(client, make_payload(programName=""))
    assert res.status_code == 400
    assert any(d["field"] == "programName" for d in body["details"])


def test_missing_region_skips_region_level(client, directory, make_payload):
    res, body = _create(client, make_payload(region=None))
    assert res.status_code == 201
    assert body["data"]["region"] is None
    assert body["enrollments"] == {"Cohort A": 3}


def test_non_object_body(client):
    res = client.post("/api/v1/programs", json=[1, 2, 3])
    assert res.status_code == 400


def test_non_json_body_is_415(client):
    res = client.post("/api/v1/programs", data="programName=x", content_type="text/plain")
    assert res.status_code == 415


# ═════════════════════════════════════════════════════════════════════════════
# UPDATE
# ═════════════════════════════════════════════════════════════════════════════


def test_update_adds_only_new_cohorts(client, directory, make_payload):
    _, created = _create(client, make_payload())
    program_id = created["data"]["id"]

    res = client.put(f"/api/v1/programs/{program_id}", json={
        "description": "Updated",
        "cohortDetails": [
            {"id": "c1", "name": "Cohort A", "startDate": "2025-10-01"},
            {"id": "c2", "name": "Cohort B", "startDate": "2025-11-03"},
        ],
    })
    assert res.status_code == 200
    body = res.get_json()
    assert body["createdCohorts"] == ["Cohort B"]
    assert body["enrollments"] == {"Cohort B": 2}

    program = body["data"]
    assert program["description"] == "Updated"
    assert program["name"] == "Safety Onboarding"
    assert [c["name"] for c in program["cohorts"]] == ["Cohort A", "Cohort B"]
    assert all(len(c["schedules"]) == 2 for c in program["cohorts"])
    assert program["cohorts"][1]["schedules"][0]["startTime"] == "2025-11-03T09:00:00"
    assert _row_counts()["schedules"] == 4


def test_update_renames_program_and_sessions(client, directory, make_payload):
    _, created = _create(client, make_payload())
    program_id = created["data"]["id"]
    session_ids = [s["id"] for s in created["data"]["sessions"]]

    payload = make_payload(programName="Safety Onboarding v2")
    payload["sessions"][0]["name"] = "Safety Fundamentals"
    res = client.put(f"/api/v1/programs/{program_id}", json={"formData": payload})
    assert res.status_code == 200

    program = res.get_json()["data"]
    assert program["name"] == "Safety Onboarding v2"
    assert [s["id"] for s in program["sessions"]] == session_ids
    assert program["sessions"][0]["title"] == "Safety Fundamentals"
    assert res.get_json()["createdCohorts"] == []


def test_update_after_cohort_rename_does_not_reprovision(client, directory, make_payload):
    _, created = _create(client, make_payload())
    program_id = created["data"]["id"]
    cohort_id = created["data"]["cohorts"][0]["id"]
    client.put(f"/api/v1/cohorts/{cohort_id}", json={"name": "Cohort A1"})

    res = client.put(f"/api/v1/programs/{program_id}", json={"description": "edited"})
    assert res.status_code == 200
    body = res.get_json()
    assert body["createdCohorts"] == []
    assert [c["name"] for c in body["data"]["cohorts"]] == ["Cohort A1"]
    assert body["data"]["formData"]["cohortDetails"][0]["name"] == "Cohort A1"
    assert _row_counts()["schedules"] == 2


def test_update_missing_program_is_404(client):
    res = client.put("/api/v1/programs/9999", json={"description": "x"})
    assert res.status_code == 404
    assert res.get_json()["code"] == "ERR_NOT_FOUND"


def test_update_validation_error_writes_nothing(client, directory, make_payload):
    _, created = _create(client, make_payload())
    program_id = created["data"]["id"]

    res = client.put(f"/api/v1/programs/{program_id}", json={
        "cohortDetails": [{"name": "Cohort Z", "startDate": "garbage"}],
    })
    assert res.status_code == 400
    assert _row_counts()["cohorts"] == 1


# ═════════════════════════════════════════════════════════════════════════════
# READ / LIST / ARCHIVE / DELETE
# ═════════════════════════════════════════════════════════════════════════════


def test_get_program_detail(client, directory, make_payload):
    _, created = _create(client, make_payload())
    res = client.get(f"/api/v1/programs/{created['data']['id']}")
    assert res.status_code == 200
    assert len(res.get_json()["data"]["cohorts"]) == 1


def test_get_missing_program(client):
    assert client.get("/api/v1/programs/404").status_code == 404


def test_list_paginates_and_hides_archived(client, directory, make_payload):
    ids = []
    for i in range(3):
        _, body = _create(client, make_payload(programName=f"Program {i}"))
        ids.append(body["data"]["id"])

    res = client.get("/api/v1/programs?page=1&pageSize=2")
    body = res.get_json()
    assert len(body["data"]) == 2
    assert body["pagination"]["total"] == 3
    assert body["pagination"]["totalPages"] == 2

    archived = client.post(f"/api/v1/programs/{ids[0]}/archive")
    assert archived.get_json()["data"]["archived"] is True

    assert client.get("/api/v1/programs").get_json()["pagination"]["total"] == 2
    assert client.get("/api/v1/programs?includeArchived=true").get_json()["pagination"]["total"] == 3


def test_delete_cascades(client, directory, make_payload):
    _, created = _create(client, make_payload())
    program_id = created["data"]["id"]

    res = client.delete(f"/api/v1/programs/{program_id}")
    assert res.status_code == 200
    assert all(v == 0 for v in _row_counts().values())
    assert client.delete(f"/api/v1/programs/{program_id}").status_code == 404


# ═════════════════════════════════════════════════════════════════════════════
# PREVIEW
# ═════════════════════════════════════════════════════════════════════════════


def test_preview_matches_provisioning_without_writing(client, directory, make_payload):
    res = client.post("/api/v1/programs/preview", json=make_payload())
    assert res.status_code == 200
    preview = res.get_json()["data"]

    assert preview["durationWeeks"] == 2
    [cohort] = preview["cohorts"]
    assert cohort["eligibleParticipants"] == 2
    first, second = cohort["schedules"]
    assert first["startTime"] == "2025-10-06T09:00:00"
    assert first["facilitator"]["facilitatorName"] == "Emily Rodriguez"
    assert first["location"]["locationName"] == "Main Auditorium"
    assert second["location"] == {"locationName": "Virtual", "placeholder": True}
    assert all(v == 0 for v in _row_counts().values())


def test_preview_validates(client, make_payload):
    res = client.post("/api/v1/programs/preview", json=make_payload(sessions=[]))
    assert res.status_code == 400
