"""
Training Program Provisioning Service
Directory Blueprint — read-only resource pools.

Endpoints:
    GET /api/v1/facilitators                 — Active facilitators (name, email order)
    GET /api/v1/locations                    — Locations (name order)
    GET /api/v1/participants?status=active   — Participants by status ("all" for every row)

Listings are returned in the same order the matchers iterate, so a client
preview run over them agrees with the server.
"""

import logging

from flask import Blueprint, request
from werkzeug.exceptions import HTTPException

from app.core.exceptions import ValidationError
from app.services import directory_service
from app.utils.errors import E, api_error, api_success

logger = logging.getLogger(__name__)

directory_bp = Blueprint("directory", __name__, url_prefix="/api/v1")


@directory_bp.errorhandler(ValidationError)
def _handle_validation(error: ValidationError):
    return api_error(E.VALIDATION_INVALID, str(error), details=error.details)


@directory_bp.errorhandler(Exception)
def _handle_unexpected(error: Exception):
    if isinstance(error, HTTPException):
        return error
    logger.exception("Unexpected error in directory_bp endpoint=%s", request.endpoint)
    return api_error(E.INTERNAL, "Internal server error")


@directory_bp.route("/facilitators", methods=["GET"])
def list_facilitators():
    return api_success([f.to_dict() for f in directory_service.list_facilitators()])


@directory_bp.route("/locations", methods=["GET"])
def list_locations():
    return api_success([loc.to_dict() for loc in directory_service.list_locations()])


@directory_bp.route("/participants", methods=["GET"])
def list_participants():
    status = request.args.get("status", "active")
    participants = directory_service.list_participants(None if status == "all" else status)
    return api_success([p.to_dict() for p in participants])
