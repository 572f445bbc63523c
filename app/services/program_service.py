"""Program service layer — reads and edits outside the provisioning run.

Transaction policy: public functions call db.session.commit() on success and
roll back on storage errors. None of these re-run provisioning.

Provides:
- Program list (paginated) / detail / delete / archive
- Cohort field edits (name, capacity, status, participantFilters)
- Schedule reassignment and time moves
- Enrollment move / remove between cohorts
"""
import logging
from datetime import datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.models import db
from app.models.directory import Facilitator, Location
from app.models.program import COHORT_STATUSES, Cohort, CohortParticipant, Program, Schedule
from app.utils.helpers import get_or_404, parse_date_input

logger = logging.getLogger(__name__)


def _validate_length(value: str, max_len: int, field_name: str) -> str | None:
    """Return error message if value exceeds max_len, else None."""
    if value and len(value) > max_len:
        return f"{field_name} exceeds maximum length of {max_len} characters"
    return None


def _commit(action: str) -> None:
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Database error while trying to %s", action)
        raise


def _parse_datetime(value, field_name: str):
    if not isinstance(value, str) or not value.strip():
        raise ValidationError.for_field(field_name, f"{field_name} is required")
    text = value.strip().replace("Z", "+00:00")
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as exc:
        raise ValidationError.for_field(field_name, f"Invalid {field_name}: {value!r}") from exc
    return parsed.replace(tzinfo=None)


# ═════════════════════════════════════════════════════════════════════════════
# PROGRAMS
# ═════════════════════════════════════════════════════════════════════════════


def list_programs(*, page: int = 1, page_size: int = 20, include_archived: bool = False) -> dict:
    """Return one page of programs, newest first.

    Returns:
        {"items": [Program, ...], "page", "pageSize", "total", "totalPages"}
    """
    query = Program.query.order_by(Program.created_at.desc(), Program.id.desc())
    if not include_archived:
        query = query.filter(Program.archived.is_(False))
    paginated = query.paginate(page=page, per_page=page_size, error_out=False)
    return {
        "items": paginated.items,
        "page": paginated.page,
        "pageSize": page_size,
        "total": paginated.total,
        "totalPages": paginated.pages,
    }


def get_program(program_id: int) -> Program:
    return get_or_404(Program, program_id)


def delete_program(program_id: int) -> None:
    """Delete a program and, by cascade, its sessions, cohorts, schedules and enrollments."""
    program = get_or_404(Program, program_id)
    name = program.name
    db.session.delete(program)
    _commit(f"delete program {program_id}")
    logger.info("Deleted program %d (%s)", program_id, name)


def archive_program(program_id: int) -> Program:
    program = get_or_404(Program, program_id)
    program.archived = True
    _commit(f"archive program {program_id}")
    logger.info("Archived program %d", program_id)
    return program


# ═════════════════════════════════════════════════════════════════════════════
# COHORTS
# ═════════════════════════════════════════════════════════════════════════════


def _rename_in_program_document(cohort: Cohort, new_name: str) -> None:
    """Keep the program's stored cohortDetails in step with a cohort rename."""
    program = cohort.program
    details = (program.form_data or {}).get("cohortDetails")
    if not isinstance(details, list):
        return
    renamed = [
        {**entry, "name": new_name}
        if isinstance(entry, dict) and str(entry.get("name") or "").strip() == cohort.name
        else entry
        for entry in details
    ]
    program.form_data = {**program.form_data, "cohortDetails": renamed}


def update_cohort(cohort_id: int, data: dict[str, Any]) -> Cohort:
    """Edit cohort fields in place. Schedules and enrollments are untouched."""
    cohort = get_or_404(Cohort, cohort_id)

    if "name" in data:
        name = (data.get("name") or "").strip()
        if not name:
            raise ValidationError.for_field("name", "Cohort name is required")
        if err := _validate_length(name, 200, "Cohort name"):
            raise ValidationError.for_field("name", err)
        _rename_in_program_document(cohort, name)
        cohort.name = name

    if "capacity" in data or "maxParticipants" in data:
        raw = data.get("capacity", data.get("maxParticipants"))
        try:
            capacity = int(raw)
        except (TypeError, ValueError) as exc:
            raise ValidationError.for_field("capacity", "capacity must be an integer") from exc
        if capacity < 1:
            raise ValidationError.for_field("capacity", "capacity must be >= 1")
        cohort.capacity = capacity

    if "status" in data:
        status = data.get("status")
        if status not in COHORT_STATUSES:
            raise ValidationError.for_field(
                "status", f"Invalid status: '{status}'. Allowed: {sorted(COHORT_STATUSES)}",
            )
        cohort.status = status

    if "participantFilters" in data:
        filters = data.get("participantFilters") or {}
        if not isinstance(filters, dict):
            raise ValidationError.for_field("participantFilters", "participantFilters must be an object")
        for bound in ("employeeStartDateFrom", "employeeStartDateTo"):
            try:
                parse_date_input(filters.get(bound))
            except ValueError as exc:
                raise ValidationError.for_field(f"participantFilters.{bound}", str(exc)) from exc
        form_data = dict(cohort.form_data or {})
        form_data["participantFilters"] = filters
        cohort.form_data = form_data

    _commit(f"update cohort {cohort_id}")
    return cohort


# ═════════════════════════════════════════════════════════════════════════════
# SCHEDULES
# ═════════════════════════════════════════════════════════════════════════════


def update_schedule(schedule_id: int, data: dict[str, Any]) -> Schedule:
    """Reassign facilitator/location (null unassigns) and/or move the time window."""
    schedule = get_or_404(Schedule, schedule_id)

    if "facilitatorId" in data:
        facilitator_id = data["facilitatorId"]
        if facilitator_id is not None:
            get_or_404(Facilitator, facilitator_id)
        schedule.facilitator_id = facilitator_id

    if "locationId" in data:
        location_id = data["locationId"]
        if location_id is not None:
            get_or_404(Location, location_id)
        schedule.location_id = location_id

    start = _parse_datetime(data["startTime"], "startTime") if "startTime" in data else schedule.start_time
    end = _parse_datetime(data["endTime"], "endTime") if "endTime" in data else schedule.end_time
    if end <= start:
        raise ValidationError.for_field("endTime", "endTime must be after startTime")
    schedule.start_time, schedule.end_time = start, end

    _commit(f"update schedule {schedule_id}")
    return schedule


# ═════════════════════════════════════════════════════════════════════════════
# ENROLLMENTS
# ═════════════════════════════════════════════════════════════════════════════


def _enrollment(participant_id: int, cohort_id: int) -> CohortParticipant | None:
    return CohortParticipant.query.filter_by(
        participant_id=participant_id, cohort_id=cohort_id,
    ).first()


def _require_ids(data: dict, *fields: str) -> list[int]:
    values = []
    for name in fields:
        try:
            values.append(int(data[name]))
        except (KeyError, TypeError, ValueError) as exc:
            raise ValidationError.for_field(name, f"{name} is required") from exc
    return values


def move_participant(data: dict[str, Any]) -> CohortParticipant:
    """Move one enrollment from a source cohort to a target cohort atomically.

    Raises:
        NotFoundError: target cohort missing, or participant not in the source.
        ConflictError: participant already enrolled in the target.
    """
    participant_id, from_id, to_id = _require_ids(data, "participantId", "fromCohortId", "toCohortId")
    if from_id == to_id:
        raise ValidationError.for_field("toCohortId", "Source and target cohort must differ")
    get_or_404(Cohort, to_id)

    current = _enrollment(participant_id, from_id)
    if current is None:
        raise NotFoundError(resource="Enrollment", resource_id=f"{participant_id}@{from_id}")
    if _enrollment(participant_id, to_id) is not None:
        raise ConflictError(resource="Enrollment", field="cohortId", value=str(to_id))

    db.session.delete(current)
    db.session.flush()
    moved = CohortParticipant(cohort_id=to_id, participant_id=participant_id)
    db.session.add(moved)
    _commit(f"move participant {participant_id} from cohort {from_id} to {to_id}")
    logger.info("Moved participant %d from cohort %d to cohort %d", participant_id, from_id, to_id)
    return moved


def remove_participant(data: dict[str, Any]) -> None:
    participant_id, cohort_id = _require_ids(data, "participantId", "cohortId")
    enrollment = _enrollment(participant_id, cohort_id)
    if enrollment is None:
        raise NotFoundError(resource="Enrollment", resource_id=f"{participant_id}@{cohort_id}")
    db.session.delete(enrollment)
    _commit(f"remove participant {participant_id} from cohort {cohort_id}")
    logger.info("Removed participant %d from cohort %d", participant_id, cohort_id)
