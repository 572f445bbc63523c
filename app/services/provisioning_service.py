"""Provisioning service — program wizard payload → persisted program graph.

State machine per request:

    Validating → Expanding → Persisting → Enrolling → Complete
         └───────────┴────────────┴───────────┴────→ Failed

Transaction policy: one db.session.commit() at the end of Enrolling.
Internal helpers use flush() for ID generation. Any exception raised while
Persisting or Enrolling rolls the whole graph back and is re-raised as
TransactionFailure carrying the program name, cohort name and stage.

Provides:
- provision_program: create program, sessions, cohorts, schedules, enrollments
- update_program: edit fields, sync sessions by index, additively provision new cohorts
- preview_program: the same expansion, matching and eligibility without writes
- sync_cohort_enrollments: idempotent re-run of the eligibility pass for one cohort
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any

from flask import current_app

from app.core.exceptions import TransactionFailure, ValidationError
from app.models import db
from app.models.program import Cohort, CohortParticipant, Program, Schedule, TrainingSession
from app.services import directory_service
from app.services.eligibility import build_criteria, filter_eligible
from app.services.program_payload import (
    CohortSpec,
    EngineSettings,
    ProgramRequest,
    SessionSpec,
    parse_program_request,
)
from app.services.resource_matcher import (
    KIND_FACILITATOR,
    KIND_LOCATION,
    FacilitatorCandidate,
    LocationCandidate,
    UnmatchedRecord,
    facilitator_qualifies,
    location_qualifies,
    match_facilitator,
    match_location,
    virtual_placeholder,
)
from app.services.temporal_expander import (
    ExpandedPlacement,
    cohort_window,
    expand_placements,
    total_duration_weeks,
)
from app.utils.helpers import get_or_404

logger = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════════════
# State machine
# ═════════════════════════════════════════════════════════════════════════════


class ProvisioningStage(str, Enum):
    VALIDATING = "validating"
    EXPANDING = "expanding"
    PERSISTING = "persisting"
    ENROLLING = "enrolling"
    COMPLETE = "complete"
    FAILED = "failed"


_TRANSITIONS: dict[ProvisioningStage, set[ProvisioningStage]] = {
    ProvisioningStage.VALIDATING: {ProvisioningStage.EXPANDING, ProvisioningStage.FAILED},
    ProvisioningStage.EXPANDING: {ProvisioningStage.PERSISTING, ProvisioningStage.FAILED},
    ProvisioningStage.PERSISTING: {ProvisioningStage.ENROLLING, ProvisioningStage.FAILED},
    ProvisioningStage.ENROLLING: {ProvisioningStage.COMPLETE, ProvisioningStage.FAILED},
    ProvisioningStage.COMPLETE: set(),
    ProvisioningStage.FAILED: set(),
}


class ProvisioningRun:
    """Tracks the stage of one request and logs every transition."""

    def __init__(self, program_name: str | None):
        self.program_name = program_name or ""
        self.cohort_name: str | None = None
        self.stage = ProvisioningStage.VALIDATING
        self.history = [self.stage]

    def _log_extra(self) -> dict:
        return {
            "program_name": self.program_name,
            "cohort_name": self.cohort_name,
            "stage": self.stage.value,
        }

    def advance(self, stage: ProvisioningStage) -> None:
        if stage not in _TRANSITIONS[self.stage]:
            raise RuntimeError(f"Illegal provisioning transition {self.stage.value} → {stage.value}")
        self.stage = stage
        self.history.append(stage)
        logger.info("Provisioning '%s' → %s", self.program_name, stage.value, extra=self._log_extra())

    def fail(self) -> ProvisioningStage:
        """Move to Failed, returning the stage the failure happened in."""
        failed_in = self.stage
        if self.stage not in (ProvisioningStage.COMPLETE, ProvisioningStage.FAILED):
            self.stage = ProvisioningStage.FAILED
            self.history.append(self.stage)
        return failed_in


# ═════════════════════════════════════════════════════════════════════════════
# Results
# ═════════════════════════════════════════════════════════════════════════════


@dataclass
class ProvisioningWarnings:
    unmatched: list[UnmatchedRecord] = field(default_factory=list)
    skipped_placements: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "unmatched": [u.to_dict() for u in self.unmatched],
            "skippedPlacements": list(self.skipped_placements),
        }


@dataclass
class ProvisioningResult:
    program: Program
    warnings: ProvisioningWarnings
    enrollments: dict[str, int] = field(default_factory=dict)
    created_cohorts: list[str] = field(default_factory=list)


@dataclass
class CohortPlan:
    """A cohort spec resolved to concrete dates for one anchor."""

    spec: CohortSpec
    expanded: list[ExpandedPlacement]
    start: datetime
    end: datetime


@dataclass
class ScheduleDraft:
    """One (cohort × placement) pair with its resolved resources, before any write."""

    expanded: ExpandedPlacement
    session: SessionSpec
    facilitator: FacilitatorCandidate | None = None
    facilitator_method: str | None = None
    location: LocationCandidate | None = None
    location_placeholder: str | None = None

    def to_dict(self) -> dict:
        result = self.expanded.to_dict()
        result["facilitator"] = (
            {**self.facilitator.to_dict(), "method": self.facilitator_method}
            if self.facilitator else None
        )
        if self.location is not None:
            result["location"] = self.location.to_dict()
        elif self.location_placeholder:
            result["location"] = {"locationName": self.location_placeholder, "placeholder": True}
        else:
            result["location"] = None
        return result


@dataclass
class ResourcePools:
    facilitators: list[FacilitatorCandidate]
    locations: list[LocationCandidate]
    cursor: int = 0

    @classmethod
    def snapshot(cls) -> "ResourcePools":
        return cls(
            facilitators=directory_service.facilitator_candidates(),
            locations=directory_service.location_candidates(),
        )


def _settings() -> EngineSettings:
    return EngineSettings.from_config(current_app.config)


# ═════════════════════════════════════════════════════════════════════════════
# Expanding
# ═════════════════════════════════════════════════════════════════════════════


def _usable_placements(request: ProgramRequest, warnings: ProvisioningWarnings):
    """Drop placements whose session is not part of the program, recording each."""
    sessions = request.session_by_client_id()
    usable = []
    for placement in request.placements:
        if placement.session_id in sessions:
            usable.append(placement)
            continue
        logger.warning(
            "Skipping placement for unknown session '%s' in program '%s'",
            placement.session_name or placement.session_id, request.program_name,
        )
        warnings.skipped_placements.append({
            "sessionId": placement.session_id,
            "sessionName": placement.session_name,
            "reason": "Session not found in program",
        })
    return usable


def _expand_cohorts(request: ProgramRequest, placements, settings: EngineSettings) -> list[CohortPlan]:
    plans = []
    for spec in request.cohorts:
        expanded = expand_placements(placements, request.blocks, request.block_delays, spec.start_date)
        start, end = cohort_window(
            spec.start_date, expanded,
            explicit_end=spec.end_date,
            default_weeks=settings.default_program_duration_weeks,
        )
        plans.append(CohortPlan(spec=spec, expanded=expanded, start=start, end=end))
    return plans


def _program_duration(plans: list[CohortPlan], placements, request: ProgramRequest,
                      settings: EngineSettings) -> int:
    if plans:
        first = plans[0]
        return total_duration_weeks(
            first.expanded,
            fallback_start=first.start if first.spec.end_date else None,
            fallback_end=first.end if first.spec.end_date else None,
            default_weeks=settings.default_program_duration_weeks,
            minimum_weeks=settings.min_program_duration_weeks,
        )
    if placements:
        expanded = expand_placements(placements, request.blocks, request.block_delays, date.today())
        return total_duration_weeks(
            expanded,
            default_weeks=settings.default_program_duration_weeks,
            minimum_weeks=settings.min_program_duration_weeks,
        )
    return max(settings.min_program_duration_weeks, settings.default_program_duration_weeks)


# ═════════════════════════════════════════════════════════════════════════════
# Resource resolution (shared by preview and provisioning)
# ═════════════════════════════════════════════════════════════════════════════


def _facilitator_candidate(row) -> FacilitatorCandidate:
    return FacilitatorCandidate(
        email=row.email, name=row.name or "",
        skills=frozenset(s for s in (row.qualifications or []) if s), id=row.id,
    )


def _location_candidate(row) -> LocationCandidate:
    return LocationCandidate(name=row.name, type=row.type, capacity=row.capacity or 0, id=row.id)


def _assign_resources(
    request: ProgramRequest,
    plan: CohortPlan,
    pools: ResourcePools,
    warnings: ProvisioningWarnings,
) -> list[ScheduleDraft]:
    """Resolve facilitator and location for every placement of one cohort.

    A client-sent assignment is re-resolved by natural key and re-validated
    against the session's requirements. Pairs without one run the matchers
    against the pool snapshot; ``pools.cursor`` carries round-robin state
    across cohorts.
    """
    sessions = request.session_by_client_id()
    cohort_id = plan.spec.client_id
    drafts = []

    for expanded in plan.expanded:
        spec = sessions[expanded.session_id]
        draft = ScheduleDraft(expanded=expanded, session=spec)

        if spec.requires_facilitator:
            client = request.facilitator_assignment(cohort_id, spec.client_id)
            if client is not None:
                row = directory_service.find_facilitator_by_email(client.facilitator_email)
                candidate = _facilitator_candidate(row) if row is not None else None
                if candidate is None:
                    reason = f"Facilitator {client.facilitator_email} not found"
                elif not facilitator_qualifies(candidate, spec.facilitator_skills):
                    reason = f"Facilitator {client.facilitator_email} lacks required skills"
                    candidate = None
                else:
                    reason = None
                if candidate is not None:
                    draft.facilitator, draft.facilitator_method = candidate, "assigned"
                else:
                    warnings.unmatched.append(UnmatchedRecord(
                        kind=KIND_FACILITATOR, cohort_id=cohort_id, session_id=spec.client_id,
                        reason=reason, required_skills=spec.facilitator_skills,
                    ))
            else:
                match, pools.cursor = match_facilitator(
                    spec.facilitator_skills, pools.facilitators, pools.cursor,
                    cohort_id=cohort_id, session_id=spec.client_id,
                )
                if match.unmatched:
                    warnings.unmatched.append(match.unmatched)
                draft.facilitator, draft.facilitator_method = match.facilitator, match.method

        placeholder = virtual_placeholder(spec.location_types)
        client_location = request.location_assignment(cohort_id, spec.client_id)
        if placeholder:
            draft.location_placeholder = placeholder
        elif client_location is not None:
            row = directory_service.find_location_by_name(client_location.location_name)
            candidate = _location_candidate(row) if row is not None else None
            if candidate is None:
                reason = f"Location {client_location.location_name!r} not found"
            elif not location_qualifies(candidate, spec.location_types, spec.group_size_max):
                reason = f"Location {client_location.location_name!r} does not fit the session"
                candidate = None
            else:
                reason = None
            if candidate is not None:
                draft.location = candidate
            else:
                warnings.unmatched.append(UnmatchedRecord(
                    kind=KIND_LOCATION, cohort_id=cohort_id, session_id=spec.client_id,
                    reason=reason, required_types=spec.location_types,
                    required_capacity=spec.group_size_max,
                ))
        else:
            located = match_location(
                spec.location_types, spec.group_size_max, pools.locations,
                cohort_id=cohort_id, session_id=spec.client_id,
            )
            if located.unmatched:
                warnings.unmatched.append(located.unmatched)
            draft.location = located.location

        drafts.append(draft)

    for record in warnings.unmatched:
        if record.cohort_id == cohort_id:
            logger.warning("Unmatched %s for cohort '%s' session '%s': %s",
                           record.kind, plan.spec.name, record.session_id, record.reason)
    return drafts


# ═════════════════════════════════════════════════════════════════════════════
# Persisting
# ═════════════════════════════════════════════════════════════════════════════


def _create_program_row(request: ProgramRequest, duration: int) -> Program:
    program = Program(
        name=request.program_name,
        description=request.description,
        region=request.region,
        duration=duration,
        form_data=request.form_data,
    )
    db.session.add(program)
    db.session.flush()
    return program


def _apply_session_spec(row: TrainingSession, spec: SessionSpec, order: int) -> None:
    row.title = spec.name
    row.description = spec.description
    row.order = order
    row.duration = spec.duration_minutes
    row.block_id = spec.block_id
    row.group_size_min = spec.group_size_min
    row.group_size_max = spec.group_size_max
    row.participant_types = list(spec.participant_types)
    row.facilitator_skills = list(spec.facilitator_skills)
    row.location_types = list(spec.location_types)
    row.requires_facilitator = spec.requires_facilitator


def _create_session_rows(program: Program, sessions: list[SessionSpec]) -> dict[str, TrainingSession]:
    """Insert session templates; returns client session id → row."""
    rows = {}
    for order, spec in enumerate(sessions):
        row = TrainingSession(program_id=program.id)
        _apply_session_spec(row, spec, order)
        db.session.add(row)
        rows[spec.client_id] = row
    db.session.flush()
    return rows


def _create_cohort_rows(program: Program, plans: list[CohortPlan], run: ProvisioningRun) -> list[tuple[CohortPlan, Cohort]]:
    created = []
    for plan in plans:
        run.cohort_name = plan.spec.name
        cohort = Cohort(
            program_id=program.id,
            name=plan.spec.name,
            start_date=plan.start,
            end_date=plan.end,
            capacity=plan.spec.capacity,
            status="scheduled",
            form_data={"participantFilters": plan.spec.participant_filters},
        )
        db.session.add(cohort)
        created.append((plan, cohort))
    db.session.flush()
    run.cohort_name = None
    return created


def _create_schedule_rows(
    cohorts: list[tuple[CohortPlan, Cohort]],
    session_rows: dict[str, TrainingSession],
    request: ProgramRequest,
    pools: ResourcePools,
    warnings: ProvisioningWarnings,
    run: ProvisioningRun,
) -> int:
    count = 0
    for plan, cohort in cohorts:
        run.cohort_name = cohort.name
        for draft in _assign_resources(request, plan, pools, warnings):
            db.session.add(Schedule(
                cohort_id=cohort.id,
                session_id=session_rows[draft.session.client_id].id,
                start_time=draft.expanded.start,
                end_time=draft.expanded.end,
                facilitator_id=draft.facilitator.id if draft.facilitator else None,
                location_id=draft.location.id if draft.location else None,
            ))
            count += 1
    db.session.flush()
    run.cohort_name = None
    return count


# ═════════════════════════════════════════════════════════════════════════════
# Enrolling
# ═════════════════════════════════════════════════════════════════════════════


def _program_participant_types(program: Program) -> set[str]:
    types: set[str] = set()
    for session in program.sessions:
        types.update(t for t in (session.participant_types or []) if t)
    return types


def _enroll_cohort(cohort: Cohort, participant_types, population, settings: EngineSettings) -> tuple[int, int]:
    """Additively enroll the eligible subset; returns (created, skipped)."""
    criteria = build_criteria(
        region=cohort.program.region,
        cohort_filters=cohort.participant_filters,
        participant_types=participant_types,
        global_region=settings.global_region,
    )
    eligible = filter_eligible(population, criteria)
    existing = {
        pid for (pid,) in db.session.query(CohortParticipant.participant_id)
        .filter(CohortParticipant.cohort_id == cohort.id)
    }
    created = skipped = 0
    for participant in eligible:
        if participant.id in existing:
            skipped += 1
            continue
        db.session.add(CohortParticipant(cohort_id=cohort.id, participant_id=participant.id))
        existing.add(participant.id)
        created += 1
    db.session.flush()
    return created, skipped


def _enroll_cohorts(program: Program, cohorts: list[Cohort], run: ProvisioningRun,
                    settings: EngineSettings) -> dict[str, int]:
    population = directory_service.active_participants()
    participant_types = _program_participant_types(program)
    counts = {}
    for cohort in cohorts:
        run.cohort_name = cohort.name
        created, _ = _enroll_cohort(cohort, participant_types, population, settings)
        counts[cohort.name] = created
        logger.info("Enrolled %d participants into cohort '%s'", created, cohort.name,
                    extra={"program_name": run.program_name, "cohort_name": cohort.name,
                           "stage": run.stage.value})
    run.cohort_name = None
    return counts


def _rollback_and_wrap(run: ProvisioningRun, exc: Exception) -> TransactionFailure:
    db.session.rollback()
    failed_in = run.fail()
    logger.exception(
        "Provisioning of program '%s' failed during %s (cohort: %s)",
        run.program_name, failed_in.value, run.cohort_name or "-",
        extra={"program_name": run.program_name, "cohort_name": run.cohort_name,
               "stage": failed_in.value},
    )
    return TransactionFailure(
        str(exc) or exc.__class__.__name__,
        program_name=run.program_name,
        cohort_name=run.cohort_name,
        stage=failed_in.value,
    )


def _validate(payload, run: ProvisioningRun, **kwargs) -> ProgramRequest:
    try:
        return parse_program_request(payload, _settings(), **kwargs)
    except ValidationError as exc:
        run.fail()
        logger.info("Provisioning '%s' rejected: %s", run.program_name, exc,
                    extra={"program_name": run.program_name, "cohort_name": None,
                           "stage": ProvisioningStage.VALIDATING.value})
        raise


def _payload_name(payload) -> str:
    if isinstance(payload, dict):
        return str(payload.get("programName") or payload.get("name") or "")
    return ""


# ═════════════════════════════════════════════════════════════════════════════
# Public operations
# ═════════════════════════════════════════════════════════════════════════════


def provision_program(payload: dict[str, Any]) -> ProvisioningResult:
    """Create a program and its whole graph in one transaction.

    Raises:
        ValidationError: before any storage access.
        TransactionFailure: after rollback when persisting or enrolling fails.
    """
    settings = _settings()
    run = ProvisioningRun(_payload_name(payload))
    request = _validate(payload, run)
    warnings = ProvisioningWarnings()

    run.advance(ProvisioningStage.EXPANDING)
    placements = _usable_placements(request, warnings)
    plans = _expand_cohorts(request, placements, settings)
    duration = _program_duration(plans, placements, request, settings)

    try:
        run.advance(ProvisioningStage.PERSISTING)
        pools = ResourcePools.snapshot()
        program = _create_program_row(request, duration)
        session_rows = _create_session_rows(program, request.sessions)
        cohorts = _create_cohort_rows(program, plans, run)
        _create_schedule_rows(cohorts, session_rows, request, pools, warnings, run)

        run.advance(ProvisioningStage.ENROLLING)
        enrollments = _enroll_cohorts(program, [c for _, c in cohorts], run, settings)
        db.session.commit()
    except Exception as exc:
        raise _rollback_and_wrap(run, exc) from exc

    run.advance(ProvisioningStage.COMPLETE)
    return ProvisioningResult(
        program=program,
        warnings=warnings,
        enrollments=enrollments,
        created_cohorts=[c.name for _, c in cohorts],
    )


def _update_document(program: Program, payload: dict[str, Any]) -> dict:
    """Merge the stored formData with the edit payload into one parseable document."""
    incoming = payload.get("formData") or payload.get("originalFormData") or {}
    document = dict(program.form_data or {})
    document.update(incoming if isinstance(incoming, dict) else {})
    for key, value in payload.items():
        if key not in ("formData", "originalFormData", "name") and value is not None:
            document[key] = value
    if payload.get("name") is not None:
        document["programName"] = payload["name"]
    document.setdefault("programName", program.name)
    document.setdefault("region", program.region)
    document.setdefault("description", program.description or "")
    if not document.get("sessions"):
        document["sessions"] = [
            {
                "id": str(row.id),
                "name": row.title,
                "description": row.description,
                "duration": row.duration,
                "blockId": row.block_id,
                "groupSizeMin": row.group_size_min,
                "groupSizeMax": row.group_size_max,
                "participantTypes": row.participant_types,
                "facilitatorSkills": row.facilitator_skills,
                "locationTypes": row.location_types,
                "requiresFacilitator": row.requires_facilitator,
            }
            for row in program.sessions
        ]
    return document


def _requested_cohorts(payload: dict[str, Any]) -> list:
    """Cohorts named by this edit. Stored cohortDetails are never provisioned again."""
    if payload.get("cohortDetails") is not None:
        return payload["cohortDetails"]
    incoming = payload.get("formData") or payload.get("originalFormData") or {}
    if isinstance(incoming, dict) and incoming.get("cohortDetails") is not None:
        return incoming["cohortDetails"]
    return []


def _sync_session_rows(program: Program, sessions: list[SessionSpec]) -> dict[str, TrainingSession]:
    """Update templates by index, append extra ones; existing schedules stay intact."""
    existing = list(program.sessions)
    rows = {}
    for order, spec in enumerate(sessions):
        if order < len(existing):
            row = existing[order]
        else:
            row = TrainingSession(program_id=program.id)
            db.session.add(row)
        _apply_session_spec(row, spec, order)
        rows[spec.client_id] = row
    db.session.flush()
    return rows


def update_program(program_id: int, payload: dict[str, Any]) -> ProvisioningResult:
    """Edit a program and provision only the cohorts not already present (by name).

    Raises:
        NotFoundError: when the program does not exist.
        ValidationError: before any write.
        TransactionFailure: after rollback.
    """
    settings = _settings()
    program = get_or_404(Program, program_id)
    run = ProvisioningRun(_payload_name(payload) or program.name)
    existing_names = frozenset(c.name for c in program.cohorts)
    document = _update_document(program, payload)
    request = _validate(
        {**document, "cohortDetails": _requested_cohorts(payload)}, run,
        require_cohorts=False, skip_cohort_names=existing_names,
    )
    request.form_data = document
    warnings = ProvisioningWarnings()

    run.advance(ProvisioningStage.EXPANDING)
    placements = _usable_placements(request, warnings)
    plans = _expand_cohorts(request, placements, settings)

    try:
        run.advance(ProvisioningStage.PERSISTING)
        program.name = request.program_name
        program.description = request.description
        program.region = request.region
        program.form_data = request.form_data
        if placements:
            program.duration = _program_duration(plans, placements, request, settings)
        session_rows = _sync_session_rows(program, request.sessions)

        cohorts = []
        if plans:
            pools = ResourcePools.snapshot()
            cohorts = _create_cohort_rows(program, plans, run)
            _create_schedule_rows(cohorts, session_rows, request, pools, warnings, run)

        run.advance(ProvisioningStage.ENROLLING)
        enrollments = _enroll_cohorts(program, [c for _, c in cohorts], run, settings)
        db.session.commit()
    except Exception as exc:
        raise _rollback_and_wrap(run, exc) from exc

    run.advance(ProvisioningStage.COMPLETE)
    return ProvisioningResult(
        program=program,
        warnings=warnings,
        enrollments=enrollments,
        created_cohorts=[c.name for _, c in cohorts],
    )


def preview_program(payload: dict[str, Any]) -> dict:
    """Run expansion, matching and eligibility against live pools without writing."""
    settings = _settings()
    run = ProvisioningRun(_payload_name(payload))
    request = _validate(payload, run)
    warnings = ProvisioningWarnings()

    placements = _usable_placements(request, warnings)
    plans = _expand_cohorts(request, placements, settings)
    pools = ResourcePools.snapshot()
    population = directory_service.active_participants()
    participant_types = request.participant_types()

    cohorts = []
    for plan in plans:
        drafts = _assign_resources(request, plan, pools, warnings)
        criteria = build_criteria(
            region=request.region,
            cohort_filters=plan.spec.participant_filters,
            participant_types=participant_types,
            global_region=settings.global_region,
        )
        eligible = filter_eligible(population, criteria)
        cohorts.append({
            "cohortId": plan.spec.client_id,
            "name": plan.spec.name,
            "startDate": plan.start.isoformat(),
            "endDate": plan.end.isoformat(),
            "capacity": plan.spec.capacity,
            "schedules": [d.to_dict() for d in drafts],
            "eligibleParticipants": len(eligible),
            "eligibleParticipantIds": [p.id for p in eligible],
            "criteria": criteria.to_dict(),
        })

    return {
        "programName": request.program_name,
        "durationWeeks": _program_duration(plans, placements, request, settings),
        "cohorts": cohorts,
        "warnings": warnings.to_dict(),
    }


def sync_cohort_enrollments(cohort_id: int) -> dict[str, int]:
    """Re-run the eligibility pass for one cohort. Idempotent.

    Returns:
        ``{"created": n, "skipped": m}``; skipped counts eligible participants
        already enrolled.
    """
    settings = _settings()
    cohort = get_or_404(Cohort, cohort_id)
    program = cohort.program
    try:
        created, skipped = _enroll_cohort(
            cohort, _program_participant_types(program),
            directory_service.active_participants(), settings,
        )
    except ValueError as exc:
        db.session.rollback()
        raise ValidationError.for_field("participantFilters", str(exc)) from exc
    try:
        db.session.commit()
    except Exception as exc:
        db.session.rollback()
        logger.exception("Enrollment sync failed for cohort '%s'", cohort.name,
                         extra={"program_name": program.name, "cohort_name": cohort.name,
                                "stage": ProvisioningStage.ENROLLING.value})
        raise TransactionFailure(str(exc), program_name=program.name,
                                 cohort_name=cohort.name,
                                 stage=ProvisioningStage.ENROLLING.value) from exc
    logger.info("Enrollment sync for cohort '%s': %d created, %d skipped",
                cohort.name, created, skipped)
    return {"created": created, "skipped": skipped}
