"""Program wizard payload → validated, typed request.

The wizard sends a loosely-typed JSON document. Only the subset the engine
consumes is validated and converted here; the full document is kept as-is in
``ProgramRequest.form_data`` so later edits round-trip untouched fields.

Every problem is collected as ``{"field", "message"}`` (field paths such as
``cohortDetails[1].startDate``) and raised together as one ValidationError
whose summary is the first message. Cohort date problems name the cohort.

Usage:
    settings = EngineSettings.from_config(current_app.config)
    request = parse_program_request(payload, settings)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Mapping

from app.core.exceptions import ValidationError
from app.services.temporal_expander import (
    SIMPLE_BLOCK_ID,
    WEEKDAY_INDEX,
    Block,
    Placement,
    normalize_day,
)
from app.utils.helpers import parse_bool, parse_date_input, parse_time_of_day

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineSettings:
    default_program_duration_weeks: int = 12
    min_program_duration_weeks: int = 1
    default_cohort_capacity: int = 20
    max_cohort_capacity: int = 10000
    default_group_size_min: int = 1
    default_group_size_max: int = 20
    max_group_size: int = 1000
    global_region: str = "Global"

    @classmethod
    def from_config(cls, cfg: Mapping[str, Any]) -> "EngineSettings":
        return cls(
            default_program_duration_weeks=cfg.get("DEFAULT_PROGRAM_DURATION_WEEKS", 12),
            min_program_duration_weeks=cfg.get("MIN_PROGRAM_DURATION_WEEKS", 1),
            default_cohort_capacity=cfg.get("DEFAULT_COHORT_CAPACITY", 20),
            max_cohort_capacity=cfg.get("MAX_COHORT_CAPACITY", 10000),
            default_group_size_min=cfg.get("DEFAULT_GROUP_SIZE_MIN", 1),
            default_group_size_max=cfg.get("DEFAULT_GROUP_SIZE_MAX", 20),
            max_group_size=cfg.get("MAX_GROUP_SIZE", 1000),
            global_region=cfg.get("GLOBAL_REGION", "Global"),
        )


@dataclass(frozen=True)
class SessionSpec:
    client_id: str
    name: str
    description: str = ""
    duration_minutes: int = 60
    block_id: str | None = None
    group_size_min: int = 1
    group_size_max: int = 20
    participant_types: tuple[str, ...] = ()
    facilitator_skills: tuple[str, ...] = ()
    location_types: tuple[str, ...] = ()
    requires_facilitator: bool = True


@dataclass(frozen=True)
class CohortSpec:
    client_id: str
    name: str
    start_date: date
    end_date: date | None = None
    capacity: int = 20
    participant_filters: dict = field(default_factory=dict)
    index: int = 0


@dataclass(frozen=True)
class FacilitatorAssignment:
    cohort_id: str
    session_id: str
    facilitator_email: str
    facilitator_name: str = ""


@dataclass(frozen=True)
class LocationAssignment:
    cohort_id: str
    session_id: str
    location_name: str


@dataclass
class ProgramRequest:
    program_name: str
    region: str | None
    description: str
    blocks: list[Block]
    block_delays: dict[str, int]
    sessions: list[SessionSpec]
    placements: list[Placement]
    cohorts: list[CohortSpec]
    facilitator_assignments: list[FacilitatorAssignment]
    location_assignments: list[LocationAssignment]
    form_data: dict

    def session_by_client_id(self) -> dict[str, SessionSpec]:
        return {s.client_id: s for s in self.sessions}

    def facilitator_assignment(self, cohort_id: str, session_id: str) -> FacilitatorAssignment | None:
        for fa in self.facilitator_assignments:
            if fa.cohort_id == cohort_id and fa.session_id == session_id:
                return fa
        return None

    def location_assignment(self, cohort_id: str, session_id: str) -> LocationAssignment | None:
        for la in self.location_assignments:
            if la.cohort_id == cohort_id and la.session_id == session_id:
                return la
        return None

    def participant_types(self) -> set[str]:
        types: set[str] = set()
        for s in self.sessions:
            types.update(t for t in s.participant_types if t)
        return types


# ═════════════════════════════════════════════════════════════════════════════
# Parsing helpers
# ═════════════════════════════════════════════════════════════════════════════


class _Errors:
    def __init__(self):
        self.items: list[dict] = []

    def add(self, field_path: str, message: str) -> None:
        self.items.append({"field": field_path, "message": message})

    def raise_if_any(self) -> None:
        if not self.items:
            return
        summary = self.items[0]["message"]
        if len(self.items) > 1:
            summary += f" (and {len(self.items) - 1} more)"
        raise ValidationError(summary, details=self.items)


def _str_list(value) -> tuple[str, ...]:
    if not value:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(str(v) for v in value if v not in (None, ""))


def _int(value, field_path: str, errors: _Errors, *, default=None, minimum=None, maximum=None):
    if value is None or value == "":
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        errors.add(field_path, f"{field_path} must be an integer")
        return default
    if isinstance(value, float) and value != number:
        errors.add(field_path, f"{field_path} must be an integer")
        return default
    if minimum is not None and number < minimum:
        errors.add(field_path, f"{field_path} must be >= {minimum}")
        return default
    if maximum is not None and number > maximum:
        errors.add(field_path, f"{field_path} must be <= {maximum}")
        return default
    return number


def _lookup(payload: Mapping, key: str, fallback: Mapping | None = None, default=None):
    if key in payload and payload[key] is not None:
        return payload[key]
    if fallback and key in fallback and fallback[key] is not None:
        return fallback[key]
    return default


# ═════════════════════════════════════════════════════════════════════════════
# Sections
# ═════════════════════════════════════════════════════════════════════════════


def _parse_blocks(payload: Mapping, form: Mapping, errors: _Errors) -> tuple[list[Block], dict[str, int]]:
    raw_blocks = _lookup(payload, "blocks", form, []) or []
    use_blocks = parse_bool(_lookup(payload, "useBlocks", form), default=bool(raw_blocks))

    if not use_blocks or not raw_blocks:
        duration = _int(
            _lookup(payload, "programDuration", form), "programDuration", errors,
            default=1, minimum=1,
        )
        return [Block(id=SIMPLE_BLOCK_ID, duration_weeks=duration, name="Program")], {}

    blocks: list[Block] = []
    seen: set[str] = set()
    for i, raw in enumerate(raw_blocks):
        path = f"blocks[{i}]"
        if not isinstance(raw, Mapping):
            errors.add(path, f"{path} must be an object")
            continue
        block_id = str(raw.get("id") or "").strip()
        if not block_id:
            errors.add(f"{path}.id", "Block id is required")
            continue
        if block_id in seen:
            errors.add(f"{path}.id", f"Duplicate block id {block_id!r}")
            continue
        seen.add(block_id)
        duration = _int(raw.get("duration"), f"{path}.duration", errors, minimum=1)
        if duration is None:
            if raw.get("duration") in (None, ""):
                errors.add(f"{path}.duration", "Block duration (weeks) is required")
            continue
        blocks.append(Block(id=block_id, duration_weeks=duration, name=str(raw.get("name") or "")))

    delays: dict[str, int] = {}
    raw_delays = _lookup(payload, "blockDelays", form, {}) or {}
    if not isinstance(raw_delays, Mapping):
        errors.add("blockDelays", "blockDelays must be an object of blockId → weeks")
        raw_delays = {}
    for block_id, weeks in raw_delays.items():
        value = _int(weeks, f"blockDelays.{block_id}", errors, default=0, minimum=0)
        delays[str(block_id)] = value or 0
    return blocks, delays


def _parse_sessions(raw_sessions, settings: EngineSettings, errors: _Errors) -> list[SessionSpec]:
    if not isinstance(raw_sessions, list) or not raw_sessions:
        errors.add("sessions", "At least one session is required")
        return []

    sessions: list[SessionSpec] = []
    seen: set[str] = set()
    for i, raw in enumerate(raw_sessions):
        path = f"sessions[{i}]"
        if not isinstance(raw, Mapping):
            errors.add(path, f"{path} must be an object")
            continue
        name = str(raw.get("name") or raw.get("title") or "").strip()
        if not name:
            errors.add(f"{path}.name", "Session name is required")
            continue
        if len(name) > 200:
            errors.add(f"{path}.name", "Session name exceeds maximum length of 200 characters")
            continue
        client_id = str(raw.get("id") if raw.get("id") not in (None, "") else f"session-{i}")
        if client_id in seen:
            errors.add(f"{path}.id", f"Duplicate session id {client_id!r}")
            continue
        seen.add(client_id)

        group_min = _int(raw.get("groupSizeMin"), f"{path}.groupSizeMin", errors,
                         default=settings.default_group_size_min, minimum=1)
        group_max = _int(raw.get("groupSizeMax"), f"{path}.groupSizeMax", errors,
                         default=settings.default_group_size_max, minimum=1,
                         maximum=settings.max_group_size)
        if group_min is not None and group_max is not None and group_max < group_min:
            errors.add(f"{path}.groupSizeMax", "groupSizeMax must be >= groupSizeMin")

        sessions.append(SessionSpec(
            client_id=client_id,
            name=name,
            description=str(raw.get("description") or ""),
            duration_minutes=_int(raw.get("duration"), f"{path}.duration", errors,
                                  default=60, minimum=1) or 60,
            block_id=str(raw["blockId"]) if raw.get("blockId") else None,
            group_size_min=group_min or settings.default_group_size_min,
            group_size_max=group_max or settings.default_group_size_max,
            participant_types=_str_list(raw.get("participantTypes")),
            facilitator_skills=_str_list(raw.get("facilitatorSkills")),
            location_types=_str_list(raw.get("locationTypes")),
            requires_facilitator=parse_bool(raw.get("requiresFacilitator"), default=True),
        ))
    return sessions


def _parse_placements(
    raw_placements,
    sessions: list[SessionSpec],
    blocks: list[Block],
    errors: _Errors,
) -> list[Placement]:
    if raw_placements in (None, ""):
        return []
    if not isinstance(raw_placements, list):
        errors.add("scheduledSessions", "scheduledSessions must be a list")
        return []

    block_ids = {b.id for b in blocks}
    by_id = {s.client_id: s for s in sessions}
    by_name = {s.name: s for s in sessions}
    placements: list[Placement] = []

    for i, raw in enumerate(raw_placements):
        path = f"scheduledSessions[{i}]"
        if not isinstance(raw, Mapping):
            errors.add(path, f"{path} must be an object")
            continue
        session_id = str(raw.get("sessionId") or "").strip()
        session_name = str(raw.get("sessionName") or "").strip()
        if not session_id and not session_name:
            errors.add(f"{path}.sessionId", "sessionId is required")
            continue
        session = by_id.get(session_id) or by_name.get(session_name)

        block_id = str(raw.get("blockId") or "").strip()
        if not block_id and session is not None and session.block_id:
            block_id = session.block_id
        if not block_id and len(blocks) == 1:
            block_id = blocks[0].id
        if not block_id:
            errors.add(f"{path}.blockId", "blockId is required when the program has several blocks")
            continue
        if block_id not in block_ids:
            errors.add(f"{path}.blockId", f"Unknown block {block_id!r}")
            continue

        start_week = _int(raw.get("startWeek"), f"{path}.startWeek", errors, minimum=0)
        raw_end_week = raw.get("endWeek")
        if raw_end_week in (None, ""):
            raw_end_week = raw.get("startWeek")
        end_week = _int(raw_end_week, f"{path}.endWeek", errors, minimum=0)
        if start_week is None or end_week is None:
            if raw.get("startWeek") in (None, ""):
                errors.add(f"{path}.startWeek", "startWeek is required")
            continue

        try:
            start_day = normalize_day(raw.get("startDay"))
            end_day = normalize_day(raw.get("endDay") or raw.get("startDay"))
        except ValueError as exc:
            errors.add(f"{path}.startDay", str(exc))
            continue
        try:
            start_time = parse_time_of_day(raw.get("startTime"))
            end_time = parse_time_of_day(raw.get("endTime"))
        except ValueError as exc:
            errors.add(f"{path}.startTime", str(exc))
            continue

        start_key = (start_week, WEEKDAY_INDEX[start_day], start_time)
        end_key = (end_week, WEEKDAY_INDEX[end_day], end_time)
        if end_key <= start_key:
            errors.add(f"{path}.endTime", "Session must end after it starts")
            continue

        placements.append(Placement(
            session_id=session.client_id if session is not None else session_id,
            session_name=session.name if session is not None else session_name,
            block_id=block_id,
            start_week=start_week,
            start_day=start_day,
            start_time=start_time,
            end_week=end_week,
            end_day=end_day,
            end_time=end_time,
        ))
    return placements


def _parse_cohorts(
    raw_cohorts,
    settings: EngineSettings,
    errors: _Errors,
    *,
    require: bool,
    skip_names: frozenset[str],
) -> list[CohortSpec]:
    if not isinstance(raw_cohorts, list) or not raw_cohorts:
        if require:
            errors.add("cohortDetails", "At least one cohort is required")
        return []

    cohorts: list[CohortSpec] = []
    seen: set[str] = set()
    for i, raw in enumerate(raw_cohorts):
        path = f"cohortDetails[{i}]"
        if not isinstance(raw, Mapping):
            errors.add(path, f"{path} must be an object")
            continue
        name = str(raw.get("name") or "").strip()
        if not name:
            errors.add(f"{path}.name", "Cohort name is required")
            continue
        if name in skip_names:
            continue
        if name in seen:
            errors.add(f"{path}.name", f'Duplicate cohort name "{name}"')
            continue
        seen.add(name)

        raw_start = raw.get("startDate")
        if raw_start in (None, ""):
            errors.add(f"{path}.startDate", f'Start date is required for cohort "{name}"')
            continue
        try:
            start_date = parse_date_input(raw_start)
        except ValueError:
            errors.add(f"{path}.startDate", f'Invalid start date for cohort "{name}"')
            continue

        try:
            end_date = parse_date_input(raw.get("endDate"))
        except ValueError:
            errors.add(f"{path}.endDate", f'Invalid end date for cohort "{name}"')
            continue
        if end_date is not None and end_date <= start_date:
            errors.add(f"{path}.endDate", f'End date must be after start date for cohort "{name}"')
            continue

        filters = raw.get("participantFilters") or {}
        if not isinstance(filters, Mapping):
            errors.add(f"{path}.participantFilters", "participantFilters must be an object")
            continue
        bad_bound = False
        for bound in ("employeeStartDateFrom", "employeeStartDateTo"):
            try:
                parse_date_input(filters.get(bound))
            except ValueError:
                errors.add(f"{path}.participantFilters.{bound}",
                           f'Invalid {bound} for cohort "{name}"')
                bad_bound = True
        if bad_bound:
            continue

        capacity = _int(raw.get("maxParticipants", raw.get("capacity")), f"{path}.maxParticipants",
                        errors, default=settings.default_cohort_capacity, minimum=1,
                        maximum=settings.max_cohort_capacity)

        cohorts.append(CohortSpec(
            client_id=str(raw.get("id") if raw.get("id") not in (None, "") else f"cohort-{i}"),
            name=name,
            start_date=start_date,
            end_date=end_date,
            capacity=capacity or settings.default_cohort_capacity,
            participant_filters=dict(filters),
            index=i,
        ))
    return cohorts


def _parse_assignments(payload: Mapping, form: Mapping):
    facilitators = []
    for raw in _lookup(payload, "facilitatorAssignments", form, []) or []:
        if isinstance(raw, Mapping) and raw.get("facilitatorEmail"):
            facilitators.append(FacilitatorAssignment(
                cohort_id=str(raw.get("cohortId") or ""),
                session_id=str(raw.get("sessionId") or ""),
                facilitator_email=str(raw["facilitatorEmail"]).strip(),
                facilitator_name=str(raw.get("facilitatorName") or ""),
            ))
    locations = []
    for raw in _lookup(payload, "locationAssignments", form, []) or []:
        if isinstance(raw, Mapping) and raw.get("locationName"):
            locations.append(LocationAssignment(
                cohort_id=str(raw.get("cohortId") or ""),
                session_id=str(raw.get("sessionId") or ""),
                location_name=str(raw["locationName"]).strip(),
            ))
    return facilitators, locations


# ═════════════════════════════════════════════════════════════════════════════
# Entry point
# ═════════════════════════════════════════════════════════════════════════════


def parse_program_request(
    payload: Mapping[str, Any] | None,
    settings: EngineSettings | None = None,
    *,
    require_name: bool = True,
    require_cohorts: bool = True,
    skip_cohort_names: frozenset[str] = frozenset(),
) -> ProgramRequest:
    """Validate a wizard payload and return the typed request.

    Raises:
        ValidationError: with every field problem found, before any storage access.
    """
    settings = settings or EngineSettings()
    errors = _Errors()
    if not isinstance(payload, Mapping):
        raise ValidationError.for_field("", "Request body must be a JSON object")

    form = payload.get("originalFormData")
    form = form if isinstance(form, Mapping) else {}

    program_name = str(_lookup(payload, "programName", form, "") or "").strip()
    if require_name and not program_name:
        errors.add("programName", "Program name is required")
    elif len(program_name) > 200:
        errors.add("programName", "Program name exceeds maximum length of 200 characters")

    region = _lookup(payload, "region", form)
    region = (str(region).strip() if region else "") or None

    blocks, delays = _parse_blocks(payload, form, errors)
    sessions = _parse_sessions(_lookup(payload, "sessions", form), settings, errors)
    placements = _parse_placements(_lookup(payload, "scheduledSessions", form), sessions, blocks, errors)
    cohorts = _parse_cohorts(
        _lookup(payload, "cohortDetails", form), settings, errors,
        require=require_cohorts, skip_names=skip_cohort_names,
    )
    facilitator_assignments, location_assignments = _parse_assignments(payload, form)

    errors.raise_if_any()

    return ProgramRequest(
        program_name=program_name,
        region=region,
        description=str(_lookup(payload, "description", form, "") or ""),
        blocks=blocks,
        block_delays=delays,
        sessions=sessions,
        placements=placements,
        cohorts=cohorts,
        facilitator_assignments=facilitator_assignments,
        location_assignments=location_assignments,
        form_data=dict(form) if form else dict(payload),
    )
