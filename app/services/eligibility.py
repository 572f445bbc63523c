"""Eligibility filter — which participants a cohort auto-enrolls.

Three cascading levels, combined with AND. A level whose trigger is absent
is skipped (vacuously true):

    1. Region      — program region set and not "Global": participant.location
                     must equal it exactly (case-sensitive). A cohort-level
                     ``regions`` override replaces the program region.
    2. Hire date   — either bound present: participant must have a hire date
                     within the inclusive window. A missing hire date under an
                     active window EXCLUDES the participant.
    3. Type        — union of the program's session participantTypes is
                     non-empty: participant.department OR participant.jobTitle
                     must be in it.

Pure and deterministic: returns an order-preserving subset of its input and
is used unchanged for UI preview and for authoritative enrollment. Accepts
ORM ``Participant`` rows or camelCase dicts from a preview payload.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, Sequence, TypeVar

from app.utils.helpers import parse_date_input

GLOBAL_REGION = "Global"

P = TypeVar("P")


@dataclass(frozen=True)
class EligibilityCriteria:
    region: str | None = None
    region_overrides: frozenset[str] = field(default_factory=frozenset)
    hire_date_from: date | None = None
    hire_date_to: date | None = None
    participant_types: frozenset[str] = field(default_factory=frozenset)
    global_region: str = GLOBAL_REGION

    @property
    def date_window_active(self) -> bool:
        return self.hire_date_from is not None or self.hire_date_to is not None

    def to_dict(self) -> dict:
        return {
            "region": self.region,
            "regionOverrides": sorted(self.region_overrides),
            "hireDateFrom": self.hire_date_from.isoformat() if self.hire_date_from else None,
            "hireDateTo": self.hire_date_to.isoformat() if self.hire_date_to else None,
            "participantTypes": sorted(self.participant_types),
        }


def union_participant_types(type_lists: Iterable[Iterable[str] | None]) -> frozenset[str]:
    """Union every session's participantTypes, dropping blanks."""
    merged: set[str] = set()
    for types in type_lists:
        merged.update(t for t in (types or []) if t)
    return frozenset(merged)


def build_criteria(
    *,
    region: str | None,
    cohort_filters: Mapping[str, Any] | None = None,
    participant_types: Iterable[str] = (),
    global_region: str = GLOBAL_REGION,
) -> EligibilityCriteria:
    """Assemble criteria from a program region and a cohort's participantFilters.

    Raises:
        ValueError: when a hire-date bound is not a valid date.
    """
    filters = cohort_filters or {}
    return EligibilityCriteria(
        region=region or None,
        region_overrides=frozenset(r for r in (filters.get("regions") or []) if r),
        hire_date_from=parse_date_input(filters.get("employeeStartDateFrom")),
        hire_date_to=parse_date_input(filters.get("employeeStartDateTo")),
        participant_types=frozenset(participant_types),
        global_region=global_region,
    )


def _attr(participant: Any, snake: str, camel: str):
    if isinstance(participant, Mapping):
        return participant.get(camel, participant.get(snake))
    return getattr(participant, snake, None)


def _hire_date(participant: Any) -> date | None:
    value = _attr(participant, "hire_date", "hireDate")
    try:
        return parse_date_input(value)
    except ValueError:
        return None


def passes_region(participant: Any, criteria: EligibilityCriteria) -> bool:
    location = _attr(participant, "location", "location")
    if criteria.region_overrides:
        if criteria.global_region in criteria.region_overrides:
            return True
        return location in criteria.region_overrides
    if criteria.region and criteria.region != criteria.global_region:
        return location == criteria.region
    return True


def passes_hire_window(participant: Any, criteria: EligibilityCriteria) -> bool:
    if not criteria.date_window_active:
        return True
    hired = _hire_date(participant)
    if hired is None:
        return False
    if criteria.hire_date_from is not None and hired < criteria.hire_date_from:
        return False
    if criteria.hire_date_to is not None and hired > criteria.hire_date_to:
        return False
    return True


def passes_participant_type(participant: Any, criteria: EligibilityCriteria) -> bool:
    if not criteria.participant_types:
        return True
    department = _attr(participant, "department", "department") or ""
    job_title = _attr(participant, "job_title", "jobTitle") or ""
    return department in criteria.participant_types or job_title in criteria.participant_types


def is_eligible(participant: Any, criteria: EligibilityCriteria) -> bool:
    return (
        passes_region(participant, criteria)
        and passes_hire_window(participant, criteria)
        and passes_participant_type(participant, criteria)
    )


def filter_eligible(participants: Sequence[P], criteria: EligibilityCriteria) -> list[P]:
    """Return the participants passing every applicable level, in input order."""
    return [p for p in participants if is_eligible(p, criteria)]
