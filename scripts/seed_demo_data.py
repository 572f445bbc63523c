#!/usr/bin/env python3
"""
Training Program Provisioning Service — Demo Seed.

Seeds the read-side directory the provisioning engine matches against:
  - facilitators (user + qualification set)
  - locations (conference rooms, auditoriums, training rooms, virtual rooms)
  - participants across three regions with hire dates

Usage:
    python scripts/seed_demo_data.py              # Reset DB + seed everything
    python scripts/seed_demo_data.py --no-reset   # Add missing rows only

Rows are upserted by natural key (user email, location name, participant
email), so running twice never duplicates.
"""

import argparse
import logging
import sys
from datetime import date

sys.path.insert(0, ".")

from app import create_app
from app.models import db
from app.models.directory import Facilitator, Location, Participant, User

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# DATA
# ═══════════════════════════════════════════════════════════════════════════

FACILITATORS = [
    ("sarah.johnson@tms.com", "Sarah Johnson",
     ["Leadership Development", "Team Building", "Change Management", "Performance Management"]),
    ("michael.chen@tms.com", "Michael Chen",
     ["Technical Skills", "Project Management", "Process Improvement", "Time Management"]),
    ("emily.rodriguez@tms.com", "Emily Rodriguez",
     ["Safety Training", "Compliance Training", "Onboarding", "Diversity & Inclusion"]),
    ("david.kumar@tms.com", "David Kumar",
     ["Communication", "Customer Service", "Sales Training", "Team Building"]),
    ("lisa.thompson@tms.com", "Lisa Thompson",
     ["Leadership Development", "Change Management", "Communication", "Performance Management"]),
    ("james.williams@tms.com", "James Williams",
     ["Technical Skills", "Safety Training", "Compliance Training", "Process Improvement"]),
    ("maria.garcia@tms.com", "Maria Garcia",
     ["Onboarding", "Diversity & Inclusion", "Team Building", "Communication"]),
    ("robert.anderson@tms.com", "Robert Anderson",
     ["Project Management", "Leadership Development", "Time Management", "Process Improvement"]),
    ("jennifer.lee@tms.com", "Jennifer Lee",
     ["Customer Service", "Communication", "Sales Training", "Performance Management"]),
    ("christopher.brown@tms.com", "Christopher Brown",
     ["Technical Skills", "Project Management", "Leadership Development", "Change Management"]),
]

LOCATIONS = [
    # name, type, capacity, equipment, address
    ("Executive Boardroom", "Conference Room", 16,
     ["Video Conference", "Smart Board", "Premium Audio", "4K Display"],
     "123 Main St, Building A, Floor 5"),
    ("Conference Room A", "Conference Room", 30, ["Projector", "Whiteboard"],
     "123 Main St, Building A, Floor 2"),
    ("Conference Room B", "Conference Room", 24, ["Projector", "Video Conference"],
     "123 Main St, Building B, Floor 3"),
    ("Main Auditorium", "Auditorium", 200, ["Stage", "PA System", "Projector"],
     "123 Main St, Building C, Ground Floor"),
    ("Small Auditorium", "Auditorium", 80, ["PA System", "Projector"],
     "123 Main St, Building C, Floor 1"),
    ("Training Room A", "Training Room", 20, ["Projector", "Laptops"],
     "123 Main St, Building B, Floor 2"),
    ("Training Room B", "Training Room", 25, ["Projector", "Whiteboard"],
     "123 Main St, Building B, Floor 2"),
    ("Training Room C", "Training Room", 18, ["Smart Board"],
     "123 Main St, Building D, Floor 2"),
    ("Meeting Room 1", "Meeting Room", 8, ["TV Display"], "123 Main St, Building A, Floor 3"),
    ("Meeting Room 2", "Meeting Room", 6, ["TV Display"], "123 Main St, Building A, Floor 4"),
    ("Classroom A", "Classroom", 30, ["Projector", "Whiteboard"], "123 Main St, Building B, Floor 1"),
    ("Zoom Virtual Room 1", "Virtual", 500, ["Zoom"], None),
    ("Teams Virtual Room", "Virtual", 300, ["Microsoft Teams"], None),
]

PARTICIPANTS = [
    # first, last, email, job title, department, region, hire date
    ("John", "Doe", "john.doe@company.com", "Engineer", "Engineering",
     "North America", date(2024, 1, 15)),
    ("Jane", "Smith", "jane.smith@company.com", "Marketing Manager", "Marketing",
     "North America", date(2024, 2, 10)),
    ("Mike", "Johnson", "mike.johnson@company.com", "Designer", "Design",
     "North America", date(2024, 3, 5)),
    ("Sarah", "Williams", "sarah.williams@company.com", "Product Manager", "Product",
     "North America", date(2024, 4, 12)),
    ("David", "Brown", "david.brown@company.com", "Sales Representative", "Sales",
     "North America", date(2024, 5, 20)),
    ("Emma", "Mueller", "emma.mueller@company.com", "Engineer", "Engineering",
     "Europe", date(2024, 1, 22)),
    ("Luca", "Rossi", "luca.rossi@company.com", "Designer", "Design",
     "Europe", date(2024, 2, 18)),
    ("Sophie", "Dupont", "sophie.dupont@company.com", "Product Manager", "Product",
     "Europe", date(2024, 3, 15)),
    ("Oliver", "Schmidt", "oliver.schmidt@company.com", "Marketing Manager", "Marketing",
     "Europe", date(2024, 4, 8)),
    ("Yuki", "Tanaka", "yuki.tanaka@company.com", "Engineer", "Engineering",
     "Asia Pacific", date(2024, 1, 8)),
    ("Priya", "Patel", "priya.patel@company.com", "Product Manager", "Product",
     "Asia Pacific", date(2024, 2, 25)),
    ("Chen", "Wei", "chen.wei@company.com", "Designer", "Design",
     "Asia Pacific", date(2024, 3, 30)),
]


# ═══════════════════════════════════════════════════════════════════════════
# SEEDERS
# ═══════════════════════════════════════════════════════════════════════════


def seed_facilitators() -> int:
    created = 0
    for email, name, skills in FACILITATORS:
        user = User.query.filter_by(email=email).first()
        if user is None:
            user = User(email=email, name=name, role="FACILITATOR", is_active=True)
            db.session.add(user)
            db.session.flush()
        if user.facilitator_profile is None:
            db.session.add(Facilitator(user_id=user.id, qualifications=skills))
            created += 1
    db.session.flush()
    return created


def seed_locations() -> int:
    created = 0
    for name, loc_type, capacity, equipment, address in LOCATIONS:
        if Location.query.filter_by(name=name).first() is not None:
            continue
        db.session.add(Location(
            name=name, type=loc_type, capacity=capacity,
            equipment=equipment, address=address,
        ))
        created += 1
    db.session.flush()
    return created


def seed_participants() -> int:
    created = 0
    for first, last, email, title, dept, region, hired in PARTICIPANTS:
        if Participant.query.filter_by(email=email).first() is not None:
            continue
        db.session.add(Participant(
            first_name=first, last_name=last, email=email,
            job_title=title, department=dept, location=region,
            hire_date=hired, status="active",
        ))
        created += 1
    db.session.flush()
    return created


def seed_demo() -> dict[str, int]:
    counts = {
        "facilitators": seed_facilitators(),
        "locations": seed_locations(),
        "participants": seed_participants(),
    }
    db.session.commit()
    return counts


def main():
    parser = argparse.ArgumentParser(description="Seed directory demo data")
    parser.add_argument("--no-reset", action="store_true",
                        help="Don't clear existing data")
    args = parser.parse_args()

    app = create_app()
    logger.info("DB: %s", app.config["SQLALCHEMY_DATABASE_URI"])

    with app.app_context():
        if not args.no_reset:
            db.drop_all()
            db.create_all()
            logger.info("Database reset complete")
        counts = seed_demo()
        logger.info("Seeded %(facilitators)d facilitators, %(locations)d locations, "
                    "%(participants)d participants", counts)


if __name__ == "__main__":
    main()
