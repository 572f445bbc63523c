"""
Training Program Provisioning Service
Directory models — read-side entities owned by collaborating services.

Models:
    - User: platform account (facilitators hang off a user)
    - Facilitator: user profile with a set of qualification (skill) strings
    - Location: physical or virtual room with type and capacity
    - Participant: employee eligible for auto-enrollment

The provisioning engine only ever reads these tables; user-management,
facility-management and participant-management own their writes.
"""

from datetime import datetime, timezone

from app.models import db


def _utcnow():
    return datetime.now(timezone.utc)


PARTICIPANT_STATUSES = {"active", "inactive", "terminated"}


class User(db.Model):
    """Platform account. Email is the natural key used to resolve facilitators."""

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(200), nullable=False, unique=True)
    name = db.Column(db.String(200), nullable=False)
    role = db.Column(db.String(20), nullable=False, default="FACILITATOR",
                     comment="ADMIN | COORDINATOR | HR | FACILITATOR")
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    facilitator_profile = db.relationship(
        "Facilitator", backref="user", uselist=False, cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "isActive": self.is_active,
        }

    def __repr__(self):
        return f"<User {self.id}: {self.email}>"


class Facilitator(db.Model):
    """Facilitator profile; ``qualifications`` is the skill set matched against sessions."""

    __tablename__ = "facilitators"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False, unique=True,
    )
    qualifications = db.Column(db.JSON, nullable=False, default=list)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    @property
    def email(self):
        return self.user.email if self.user else None

    @property
    def name(self):
        return self.user.name if self.user else None

    def to_dict(self):
        return {
            "id": self.id,
            "userId": self.user_id,
            "name": self.name,
            "email": self.email,
            "qualifications": list(self.qualifications or []),
        }

    def __repr__(self):
        return f"<Facilitator {self.id}: {self.email}>"


class Location(db.Model):
    """Training room. A location without an address is a virtual room."""

    __tablename__ = "locations"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False, unique=True)
    type = db.Column(db.String(50), nullable=False,
                     comment="Conference Room | Auditorium | Training Room | Virtual | ...")
    capacity = db.Column(db.Integer, nullable=False)
    equipment = db.Column(db.JSON, nullable=False, default=list)
    address = db.Column(db.String(500), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    @property
    def is_virtual(self) -> bool:
        return not self.address

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "capacity": self.capacity,
            "equipment": list(self.equipment or []),
            "address": self.address,
            "isVirtual": self.is_virtual,
        }

    def __repr__(self):
        return f"<Location {self.id}: {self.name}>"


class Participant(db.Model):
    """Employee record read by the eligibility pass."""

    __tablename__ = "participants"

    id = db.Column(db.Integer, primary_key=True)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(200), nullable=False, unique=True)
    department = db.Column(db.String(100), nullable=True)
    job_title = db.Column(db.String(200), nullable=True)
    location = db.Column(db.String(100), nullable=True, comment="Region string")
    hire_date = db.Column(db.Date, nullable=True)
    status = db.Column(db.String(20), nullable=False, default="active", index=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "department": self.department,
            "jobTitle": self.job_title,
            "location": self.location,
            "hireDate": self.hire_date.isoformat() if self.hire_date else None,
            "status": self.status,
        }

    def __repr__(self):
        return f"<Participant {self.id}: {self.email}>"
