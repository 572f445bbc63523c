"""
Training Program Provisioning Service
Program Blueprint — provisioning and post-provisioning edits.

Endpoints:
    Programs:
        GET    /api/v1/programs                              — List (paginated)
        POST   /api/v1/programs                              — Provision (create graph)
        POST   /api/v1/programs/preview                      — Dry run, no writes
        GET    /api/v1/programs/<id>                          — Detail (+ children)
        PUT    /api/v1/programs/<id>                          — Update (+ new cohorts)
        DELETE /api/v1/programs/<id>                          — Delete (cascade)
        POST   /api/v1/programs/<id>/archive                  — Archive

    Cohorts:
        PUT    /api/v1/cohorts/<id>                           — Update fields
        POST   /api/v1/cohorts/<id>/enrollments/sync          — Re-run eligibility

    Schedules:
        PUT    /api/v1/schedules/<id>                         — Reassign / move

    Enrollments:
        POST   /api/v1/cohort-enrollments/move                — Move between cohorts
        POST   /api/v1/cohort-enrollments/remove              — Remove from cohort
"""

import logging

from flask import Blueprint, request
from werkzeug.exceptions import HTTPException

from app.blueprints import page_params
from app.core.exceptions import ConflictError, NotFoundError, TransactionFailure, ValidationError
from app.models import db
from app.services import program_service, provisioning_service
from app.utils.errors import E, api_error, api_success
from app.utils.helpers import parse_bool

logger = logging.getLogger(__name__)

program_bp = Blueprint("program", __name__, url_prefix="/api/v1")


# ── Error handlers ───────────────────────────────────────────────────────────


@program_bp.errorhandler(ValidationError)
def _handle_validation(error: ValidationError):
    db.session.rollback()
    return api_error(E.VALIDATION_INVALID, str(error), details=error.details)


@program_bp.errorhandler(NotFoundError)
def _handle_not_found(error: NotFoundError):
    db.session.rollback()
    return api_error(E.NOT_FOUND, str(error))


@program_bp.errorhandler(ConflictError)
def _handle_conflict(error: ConflictError):
    db.session.rollback()
    return api_error(E.CONFLICT_DUPLICATE, str(error))


@program_bp.errorhandler(TransactionFailure)
def _handle_transaction_failure(error: TransactionFailure):
    details = {"stage": error.stage}
    if error.cohort_name:
        details["cohortName"] = error.cohort_name
    return api_error(
        E.DATABASE,
        f"Provisioning of program '{error.program_name}' failed; no changes were saved",
        details=details,
    )


@program_bp.errorhandler(Exception)
def _handle_unexpected(error: Exception):
    if isinstance(error, HTTPException):
        return error
    db.session.rollback()
    logger.exception("Unexpected error in program_bp endpoint=%s", request.endpoint)
    return api_error(E.INTERNAL, "Internal server error")


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError.for_field("", "Request body must be a JSON object")
    return data


def _provisioning_response(result, status: int):
    return api_success(
        result.program.to_dict(include_children=True),
        status=status,
        warnings=result.warnings.to_dict(),
        enrollments=result.enrollments,
        createdCohorts=result.created_cohorts,
    )


# ═════════════════════════════════════════════════════════════════════════════
# PROGRAMS
# ═════════════════════════════════════════════════════════════════════════════


@program_bp.route("/programs", methods=["GET"])
def list_programs():
    """Return one page of programs, newest first."""
    page, page_size = page_params()
    result = program_service.list_programs(
        page=page,
        page_size=page_size,
        include_archived=parse_bool(request.args.get("includeArchived")),
    )
    return api_success(
        [p.to_dict() for p in result["items"]],
        pagination={
            "page": result["page"],
            "pageSize": result["pageSize"],
            "total": result["total"],
            "totalPages": result["totalPages"],
        },
    )


@program_bp.route("/programs", methods=["POST"])
def create_program():
    """Provision a program with sessions, cohorts, schedules and enrollments."""
    result = provisioning_service.provision_program(_json_body())
    return _provisioning_response(result, 201)


@program_bp.route("/programs/preview", methods=["POST"])
def preview_program():
    return api_success(provisioning_service.preview_program(_json_body()))


@program_bp.route("/programs/<int:program_id>", methods=["GET"])
def get_program(program_id):
    program = program_service.get_program(program_id)
    return api_success(program.to_dict(include_children=True))


@program_bp.route("/programs/<int:program_id>", methods=["PUT"])
def update_program(program_id):
    """Update program fields; cohorts not already present (by name) are provisioned."""
    result = provisioning_service.update_program(program_id, _json_body())
    return _provisioning_response(result, 200)


@program_bp.route("/programs/<int:program_id>", methods=["DELETE"])
def delete_program(program_id):
    program_service.delete_program(program_id)
    return api_success(message=f"Program {program_id} deleted")


@program_bp.route("/programs/<int:program_id>/archive", methods=["POST"])
def archive_program(program_id):
    program = program_service.archive_program(program_id)
    return api_success(program.to_dict())


# ═════════════════════════════════════════════════════════════════════════════
# COHORTS
# ═════════════════════════════════════════════════════════════════════════════


@program_bp.route("/cohorts/<int:cohort_id>", methods=["PUT"])
def update_cohort(cohort_id):
    cohort = program_service.update_cohort(cohort_id, _json_body())
    return api_success(cohort.to_dict())


@program_bp.route("/cohorts/<int:cohort_id>/enrollments/sync", methods=["POST"])
def sync_cohort_enrollments(cohort_id):
    """Re-run the eligibility filter and enroll anyone not yet enrolled."""
    return api_success(provisioning_service.sync_cohort_enrollments(cohort_id))


# ═════════════════════════════════════════════════════════════════════════════
# SCHEDULES
# ═════════════════════════════════════════════════════════════════════════════


@program_bp.route("/schedules/<int:schedule_id>", methods=["PUT"])
def update_schedule(schedule_id):
    schedule = program_service.update_schedule(schedule_id, _json_body())
    return api_success(schedule.to_dict())


# ═════════════════════════════════════════════════════════════════════════════
# ENROLLMENTS
# ═════════════════════════════════════════════════════════════════════════════


@program_bp.route("/cohort-enrollments/move", methods=["POST"])
def move_participant():
    enrollment = program_service.move_participant(_json_body())
    return api_success(enrollment.to_dict())


@program_bp.route("/cohort-enrollments/remove", methods=["POST"])
def remove_participant():
    program_service.remove_participant(_json_body())
    return api_success(message="Participant removed from cohort")
