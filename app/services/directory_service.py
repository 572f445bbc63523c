"""Read-only views over the collaborator-owned directory tables.

Provides:
- Resource pool snapshots in the stable order the matchers iterate
- Natural-key lookups (facilitator by user email, location by name)
- The active participant population for the eligibility pass

Nothing here writes. Lookups never create on miss.
"""
import logging

from app.core.exceptions import ValidationError
from app.models import db
from app.models.directory import PARTICIPANT_STATUSES, Facilitator, Location, Participant, User
from app.services.resource_matcher import (
    FacilitatorCandidate,
    LocationCandidate,
    sort_facilitator_pool,
    sort_location_pool,
)

logger = logging.getLogger(__name__)


def list_facilitators() -> list[Facilitator]:
    """Facilitators whose user account is active, in matcher order (name, then email)."""
    rows = (
        Facilitator.query.join(User, Facilitator.user_id == User.id)
        .filter(User.is_active.is_(True))
        .all()
    )
    return sort_facilitator_pool(rows)


def list_locations() -> list[Location]:
    return sort_location_pool(Location.query.all())


def list_participants(status: str | None = "active") -> list[Participant]:
    if status and status not in PARTICIPANT_STATUSES:
        raise ValidationError.for_field(
            "status", f"Invalid status: '{status}'. Allowed: {sorted(PARTICIPANT_STATUSES)} or 'all'",
        )
    query = Participant.query
    if status:
        query = query.filter_by(status=status)
    return query.order_by(Participant.id).all()


def facilitator_candidates() -> list[FacilitatorCandidate]:
    """Snapshot of the facilitator pool for one provisioning run."""
    pool = [
        FacilitatorCandidate(
            email=f.email,
            name=f.name or "",
            skills=frozenset(s for s in (f.qualifications or []) if s),
            id=f.id,
        )
        for f in list_facilitators()
    ]
    return sort_facilitator_pool(pool)


def location_candidates() -> list[LocationCandidate]:
    """Snapshot of the location pool for one provisioning run."""
    pool = [
        LocationCandidate(name=loc.name, type=loc.type, capacity=loc.capacity or 0, id=loc.id)
        for loc in list_locations()
    ]
    return sort_location_pool(pool)


def active_participants() -> list[Participant]:
    return list_participants("active")


def find_facilitator_by_email(email: str | None) -> Facilitator | None:
    if not email:
        return None
    return (
        Facilitator.query.join(User, Facilitator.user_id == User.id)
        .filter(User.is_active.is_(True))
        .filter(db.func.lower(User.email) == email.strip().lower())
        .first()
    )


def find_location_by_name(name: str | None) -> Location | None:
    if not name:
        return None
    return Location.query.filter_by(name=name.strip()).first()
