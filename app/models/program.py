"""
Training Program Provisioning Service
Program domain models.

Models:
    - Program: a multi-session training program (derived duration, formData snapshot)
    - TrainingSession: program-scoped session template (no timestamps)
    - Cohort: one running instance of a program over a concrete date range
    - Schedule: concrete, time-bound occurrence of a session for a cohort
    - CohortParticipant: enrollment of a participant into a cohort

Response serialisation uses camelCase keys to round-trip with the wizard
payloads the service receives.
"""

from datetime import datetime, timezone

from app.models import db


def _utcnow():
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


COHORT_STATUSES = {"scheduled", "active", "completed", "draft"}


# ── Program ──────────────────────────────────────────────────────────────────


class Program(db.Model):
    """
    A training program: the owner of session templates and cohorts.

    ``form_data`` keeps the wizard document opaquely so a later edit can
    round-trip fields the engine never reads.
    """

    __tablename__ = "programs"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, default="")
    region = db.Column(db.String(100), nullable=True,
                       comment='Participant region filter; "Global" disables it')
    duration = db.Column(db.Integer, nullable=False, default=1,
                         comment="Total duration in weeks (derived)")
    archived = db.Column(db.Boolean, nullable=False, default=False)
    form_data = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    # ── Relationships ────────────────────────────────────────────────────
    sessions = db.relationship(
        "TrainingSession", backref="program", lazy="dynamic",
        cascade="all, delete-orphan", order_by="TrainingSession.order",
    )
    cohorts = db.relationship(
        "Cohort", backref="program", lazy="dynamic",
        cascade="all, delete-orphan", order_by="Cohort.id",
    )

    def to_dict(self, include_children=False):
        """Serialize program to dictionary."""
        result = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "region": self.region,
            "duration": self.duration,
            "archived": self.archived,
            "formData": self.form_data,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }
        if include_children:
            result["sessions"] = [s.to_dict() for s in self.sessions]
            result["cohorts"] = [c.to_dict(include_children=True) for c in self.cohorts]
        return result

    def __repr__(self):
        return f"<Program {self.id}: {self.name}>"


# ── Session template ─────────────────────────────────────────────────────────


class TrainingSession(db.Model):
    """
    Reusable definition of one training unit and its requirements.

    participant_types  — department / job-title strings (eligibility, OR)
    facilitator_skills — required skills (AND)
    location_types     — acceptable location categories (OR); "virtual" or
                         "off-site" means no physical room is needed
    """

    __tablename__ = "sessions"

    id = db.Column(db.Integer, primary_key=True)
    program_id = db.Column(
        db.Integer, db.ForeignKey("programs.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, default="")
    order = db.Column(db.Integer, default=0, comment="Sort order within program")
    duration = db.Column(db.Integer, default=60, comment="Minutes")
    block_id = db.Column(db.String(100), nullable=True,
                         comment="Wizard block identifier the session belongs to")
    group_size_min = db.Column(db.Integer, nullable=False, default=1)
    group_size_max = db.Column(db.Integer, nullable=False, default=20)
    participant_types = db.Column(db.JSON, nullable=False, default=list)
    facilitator_skills = db.Column(db.JSON, nullable=False, default=list)
    location_types = db.Column(db.JSON, nullable=False, default=list)
    requires_facilitator = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "programId": self.program_id,
            "title": self.title,
            "description": self.description,
            "order": self.order,
            "duration": self.duration,
            "blockId": self.block_id,
            "groupSizeMin": self.group_size_min,
            "groupSizeMax": self.group_size_max,
            "participantTypes": list(self.participant_types or []),
            "facilitatorSkills": list(self.facilitator_skills or []),
            "locationTypes": list(self.location_types or []),
            "requiresFacilitator": self.requires_facilitator,
        }

    def __repr__(self):
        return f"<TrainingSession {self.id}: {self.title}>"


# ── Cohort ───────────────────────────────────────────────────────────────────


class Cohort(db.Model):
    """
    One running instance of a program. Instantiates every session template
    as a Schedule row.
    """

    __tablename__ = "cohorts"

    id = db.Column(db.Integer, primary_key=True)
    program_id = db.Column(
        db.Integer, db.ForeignKey("programs.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    name = db.Column(db.String(200), nullable=False)
    start_date = db.Column(db.DateTime, nullable=False)
    end_date = db.Column(db.DateTime, nullable=False)
    capacity = db.Column(db.Integer, nullable=False, default=20)
    status = db.Column(
        db.String(20), nullable=False, default="scheduled",
        comment="scheduled | active | completed | draft",
    )
    form_data = db.Column(db.JSON, nullable=True,
                          comment="{participantFilters: {...}}")

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    # ── Relationships ────────────────────────────────────────────────────
    schedules = db.relationship(
        "Schedule", backref="cohort", lazy="dynamic",
        cascade="all, delete-orphan", order_by="Schedule.start_time",
    )
    participants = db.relationship(
        "CohortParticipant", backref="cohort", lazy="dynamic",
        cascade="all, delete-orphan", order_by="CohortParticipant.id",
    )

    @property
    def participant_filters(self) -> dict:
        return (self.form_data or {}).get("participantFilters") or {}

    def to_dict(self, include_children=False):
        result = {
            "id": self.id,
            "programId": self.program_id,
            "name": self.name,
            "startDate": _iso(self.start_date),
            "endDate": _iso(self.end_date),
            "capacity": self.capacity,
            "status": self.status,
            "formData": self.form_data,
        }
        if include_children:
            result["schedules"] = [s.to_dict() for s in self.schedules]
            result["participants"] = [p.to_dict() for p in self.participants]
        return result

    def __repr__(self):
        return f"<Cohort {self.id}: {self.name}>"


# ── Schedule ─────────────────────────────────────────────────────────────────


class Schedule(db.Model):
    """
    Concrete occurrence of a session for a cohort.

    (cohort_id, session_id) is indexed but not unique: duplicates are a
    data-quality concern, not a structural one.
    """

    __tablename__ = "schedules"
    __table_args__ = (
        db.CheckConstraint("end_time > start_time", name="ck_schedules_end_after_start"),
        db.Index("ix_schedules_cohort_session", "cohort_id", "session_id"),
    )

    id = db.Column(db.Integer, primary_key=True)
    cohort_id = db.Column(
        db.Integer, db.ForeignKey("cohorts.id", ondelete="CASCADE"), nullable=False,
    )
    session_id = db.Column(
        db.Integer, db.ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False,
    )
    start_time = db.Column(db.DateTime, nullable=False)
    end_time = db.Column(db.DateTime, nullable=False)
    facilitator_id = db.Column(
        db.Integer, db.ForeignKey("facilitators.id", ondelete="SET NULL"), nullable=True,
    )
    location_id = db.Column(
        db.Integer, db.ForeignKey("locations.id", ondelete="SET NULL"), nullable=True,
    )

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    session = db.relationship("TrainingSession")
    facilitator = db.relationship("Facilitator")
    location = db.relationship("Location")

    def to_dict(self):
        return {
            "id": self.id,
            "cohortId": self.cohort_id,
            "sessionId": self.session_id,
            "startTime": _iso(self.start_time),
            "endTime": _iso(self.end_time),
            "facilitatorId": self.facilitator_id,
            "locationId": self.location_id,
            "session": self.session.to_dict() if self.session else None,
            "facilitator": self.facilitator.to_dict() if self.facilitator else None,
            "location": self.location.to_dict() if self.location else None,
        }

    def __repr__(self):
        return f"<Schedule {self.id}: cohort={self.cohort_id} session={self.session_id}>"


# ── Enrollment ───────────────────────────────────────────────────────────────


class CohortParticipant(db.Model):
    """Enrollment row, created only by the eligibility pass."""

    __tablename__ = "cohort_participants"
    __table_args__ = (
        db.UniqueConstraint("cohort_id", "participant_id", name="uq_cohort_participant"),
    )

    id = db.Column(db.Integer, primary_key=True)
    cohort_id = db.Column(
        db.Integer, db.ForeignKey("cohorts.id", ondelete="CASCADE"), nullable=False,
    )
    participant_id = db.Column(
        db.Integer, db.ForeignKey("participants.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    enrolled_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    participant = db.relationship("Participant")

    def to_dict(self):
        return {
            "cohortId": self.cohort_id,
            "participantId": self.participant_id,
            "enrolledAt": _iso(self.enrolled_at),
            "participant": self.participant.to_dict() if self.participant else None,
        }

    def __repr__(self):
        return f"<CohortParticipant cohort={self.cohort_id} participant={self.participant_id}>"
