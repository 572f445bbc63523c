"""Resource matcher — facilitator and location assignment per scheduled session.

Both matchers are first-fit over a pool in stable order (name ascending) and
never mutate the pool, so preview and authoritative runs over the same
snapshot produce the same assignments.

Facilitator:
    * empty required-skill set → round-robin over the pool. The cursor is an
      explicit argument and return value, threaded by the caller across the
      whole cohort × session iteration.
    * non-empty set → first facilitator whose qualifications are a superset
      of every required skill. No partial or best-effort matches.

Location:
    * any declared type of "virtual" / "off-site" (case-insensitive) → no
      physical room; a placeholder description is returned and the pool is
      never consulted.
    * type preferences set → first room whose type is preferred AND whose
      capacity ≥ the session's maximum group size.
    * no preference → first room with sufficient capacity.

Misses produce an ``UnmatchedRecord`` rather than an exception.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Sequence

VIRTUAL_LOCATION_TYPES = frozenset({"virtual", "off-site"})

KIND_FACILITATOR = "facilitator"
KIND_LOCATION = "location"


# ═════════════════════════════════════════════════════════════════════════════
# Pool entries & results
# ═════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class FacilitatorCandidate:
    email: str
    name: str
    skills: frozenset[str]
    id: int | None = None

    def to_dict(self) -> dict:
        return {
            "facilitatorId": self.id,
            "facilitatorName": self.name,
            "facilitatorEmail": self.email,
            "skills": sorted(self.skills),
        }


@dataclass(frozen=True)
class LocationCandidate:
    name: str
    type: str
    capacity: int
    id: int | None = None

    def to_dict(self) -> dict:
        return {
            "locationId": self.id,
            "locationName": self.name,
            "locationType": self.type,
            "capacity": self.capacity,
        }


@dataclass(frozen=True)
class UnmatchedRecord:
    """A facilitator or location requirement the pool could not satisfy."""

    kind: str
    cohort_id: str | int | None
    session_id: str | int | None
    reason: str
    required_skills: tuple[str, ...] = ()
    required_types: tuple[str, ...] = ()
    required_capacity: int | None = None

    def to_dict(self) -> dict:
        result = {
            "kind": self.kind,
            "cohortId": self.cohort_id,
            "sessionId": self.session_id,
            "reason": self.reason,
        }
        if self.kind == KIND_FACILITATOR:
            result["requiredSkills"] = list(self.required_skills)
        else:
            result["requiredTypes"] = list(self.required_types)
            result["requiredCapacity"] = self.required_capacity
        return result


@dataclass(frozen=True)
class FacilitatorMatch:
    facilitator: FacilitatorCandidate | None
    method: str
    match_percent: int = 0
    unmatched: UnmatchedRecord | None = None

    @property
    def matched(self) -> bool:
        return self.facilitator is not None


@dataclass(frozen=True)
class LocationMatch:
    location: LocationCandidate | None
    placeholder: str | None = None
    unmatched: UnmatchedRecord | None = None

    @property
    def satisfied(self) -> bool:
        return self.location is not None or self.placeholder is not None


@dataclass(frozen=True)
class SessionRequirement:
    """What one session needs from the pools."""

    session_id: str | int
    requires_facilitator: bool = True
    facilitator_skills: tuple[str, ...] = ()
    location_types: tuple[str, ...] = ()
    group_size_max: int = 20


@dataclass
class SessionAssignment:
    cohort_id: str | int | None
    session_id: str | int
    facilitator: FacilitatorMatch | None = None
    location: LocationMatch | None = None

    def to_dict(self) -> dict:
        result: dict = {"cohortId": self.cohort_id, "sessionId": self.session_id}
        if self.facilitator is not None and self.facilitator.facilitator is not None:
            result["facilitator"] = {
                **self.facilitator.facilitator.to_dict(),
                "method": self.facilitator.method,
                "matchPercent": self.facilitator.match_percent,
            }
        else:
            result["facilitator"] = None
        if self.location is not None and self.location.location is not None:
            result["location"] = self.location.location.to_dict()
        elif self.location is not None and self.location.placeholder:
            result["location"] = {"locationName": self.location.placeholder, "placeholder": True}
        else:
            result["location"] = None
        return result


@dataclass
class AssignmentPlan:
    assignments: list[SessionAssignment] = field(default_factory=list)
    unmatched: list[UnmatchedRecord] = field(default_factory=list)
    cursor: int = 0

    def for_cohort(self, cohort_id) -> list[SessionAssignment]:
        return [a for a in self.assignments if a.cohort_id == cohort_id]


# ═════════════════════════════════════════════════════════════════════════════
# Pool ordering
# ═════════════════════════════════════════════════════════════════════════════


def sort_facilitator_pool(pool: Iterable[FacilitatorCandidate]) -> list[FacilitatorCandidate]:
    """Stable iteration order: name, then email (case-insensitive)."""
    return sorted(pool, key=lambda f: ((f.name or "").casefold(), (f.email or "").casefold()))


def sort_location_pool(pool: Iterable[LocationCandidate]) -> list[LocationCandidate]:
    return sorted(pool, key=lambda loc: ((loc.name or "").casefold(), loc.name or ""))


# ═════════════════════════════════════════════════════════════════════════════
# Matchers
# ═════════════════════════════════════════════════════════════════════════════


def match_facilitator(
    required_skills: Iterable[str],
    pool: Sequence[FacilitatorCandidate],
    cursor: int = 0,
    *,
    cohort_id=None,
    session_id=None,
) -> tuple[FacilitatorMatch, int]:
    """Assign a facilitator for one scheduled session.

    Returns ``(match, next_cursor)``. The cursor advances once per call so
    round-robin distribution continues across sessions and cohorts.
    """
    required = tuple(s for s in dict.fromkeys(required_skills or ()) if s)
    next_cursor = cursor + 1

    if not pool:
        return FacilitatorMatch(
            facilitator=None,
            method="round_robin" if not required else "skills",
            unmatched=UnmatchedRecord(
                kind=KIND_FACILITATOR,
                cohort_id=cohort_id,
                session_id=session_id,
                reason="No facilitators available",
                required_skills=required,
            ),
        ), next_cursor

    if not required:
        chosen = pool[cursor % len(pool)]
        return FacilitatorMatch(facilitator=chosen, method="round_robin", match_percent=100), next_cursor

    needed = frozenset(required)
    for candidate in pool:
        if needed <= candidate.skills:
            return FacilitatorMatch(facilitator=candidate, method="skills", match_percent=100), next_cursor

    return FacilitatorMatch(
        facilitator=None,
        method="skills",
        unmatched=UnmatchedRecord(
            kind=KIND_FACILITATOR,
            cohort_id=cohort_id,
            session_id=session_id,
            reason=f"No facilitator has all required skills: {', '.join(required)}",
            required_skills=required,
        ),
    ), next_cursor


def virtual_placeholder(location_types: Iterable[str]) -> str | None:
    """Return the placeholder label when a session needs no physical room."""
    for loc_type in location_types or ():
        if str(loc_type).strip().lower() in VIRTUAL_LOCATION_TYPES:
            return "Virtual" if str(loc_type).strip().lower() == "virtual" else "Off-site"
    return None


def match_location(
    location_types: Iterable[str],
    required_capacity: int,
    pool: Sequence[LocationCandidate],
    *,
    cohort_id=None,
    session_id=None,
) -> LocationMatch:
    """Assign a room for one scheduled session, first fit in pool order."""
    types = tuple(t for t in (location_types or ()) if t)

    placeholder = virtual_placeholder(types)
    if placeholder:
        return LocationMatch(location=None, placeholder=placeholder)

    preferred = frozenset(types)
    for candidate in pool:
        if preferred and candidate.type not in preferred:
            continue
        if candidate.capacity >= required_capacity:
            return LocationMatch(location=candidate)

    if preferred:
        reason = (
            f"No {' / '.join(types)} location with capacity >= {required_capacity}"
        )
    else:
        reason = f"No location with capacity >= {required_capacity}"
    return LocationMatch(
        location=None,
        unmatched=UnmatchedRecord(
            kind=KIND_LOCATION,
            cohort_id=cohort_id,
            session_id=session_id,
            reason=reason,
            required_types=types,
            required_capacity=required_capacity,
        ),
    )


def facilitator_qualifies(candidate: FacilitatorCandidate, required_skills: Iterable[str]) -> bool:
    return frozenset(s for s in (required_skills or ()) if s) <= candidate.skills


def location_qualifies(
    candidate: LocationCandidate,
    location_types: Iterable[str],
    required_capacity: int,
) -> bool:
    preferred = frozenset(t for t in (location_types or ()) if t)
    if preferred and candidate.type not in preferred:
        return False
    return candidate.capacity >= required_capacity


def plan_assignments(
    cohort_ids: Sequence,
    session_ids: Sequence,
    requirements: dict,
    facilitator_pool: Sequence[FacilitatorCandidate],
    location_pool: Sequence[LocationCandidate],
    *,
    cursor: int = 0,
) -> AssignmentPlan:
    """Run both matchers over every (cohort × scheduled session) pair.

    ``session_ids`` is the ordered list of scheduled sessions (one entry per
    placement); ``requirements`` maps a session id to its
    ``SessionRequirement``. Pools must already be in stable order.
    """
    plan = AssignmentPlan(cursor=cursor)
    for cohort_id in cohort_ids:
        for session_id in session_ids:
            requirement = requirements.get(session_id)
            if requirement is None:
                continue
            assignment = SessionAssignment(cohort_id=cohort_id, session_id=session_id)

            if requirement.requires_facilitator:
                match, plan.cursor = match_facilitator(
                    requirement.facilitator_skills,
                    facilitator_pool,
                    plan.cursor,
                    cohort_id=cohort_id,
                    session_id=session_id,
                )
                assignment.facilitator = match
                if match.unmatched:
                    plan.unmatched.append(match.unmatched)

            location = match_location(
                requirement.location_types,
                requirement.group_size_max,
                location_pool,
                cohort_id=cohort_id,
                session_id=session_id,
            )
            assignment.location = location
            if location.unmatched:
                plan.unmatched.append(location.unmatched)

            plan.assignments.append(assignment)
    return plan
