"""create_provisioning_tables

Create the directory tables (users, facilitators, locations, participants)
and the program graph (programs, sessions, cohorts, schedules,
cohort_participants).

Revision ID: 7c1e2a9d4b10
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "7c1e2a9d4b10"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    # ── Directory ────────────────────────────────────────────────────────
    if "users" not in existing_tables:
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("email", sa.String(length=200), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("role", sa.String(length=20), nullable=False, server_default="FACILITATOR"),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("email", name="uq_users_email"),
        )

    if "facilitators" not in existing_tables:
        op.create_table(
            "facilitators",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("user_id", sa.Integer(), nullable=False),
            sa.Column("qualifications", sa.JSON(), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("user_id", name="uq_facilitators_user_id"),
        )

    if "locations" not in existing_tables:
        op.create_table(
            "locations",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("type", sa.String(length=50), nullable=False),
            sa.Column("capacity", sa.Integer(), nullable=False),
            sa.Column("equipment", sa.JSON(), nullable=False),
            sa.Column("address", sa.String(length=500), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("name", name="uq_locations_name"),
        )

    if "participants" not in existing_tables:
        op.create_table(
            "participants",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("first_name", sa.String(length=100), nullable=False),
            sa.Column("last_name", sa.String(length=100), nullable=False),
            sa.Column("email", sa.String(length=200), nullable=False),
            sa.Column("department", sa.String(length=100), nullable=True),
            sa.Column("job_title", sa.String(length=200), nullable=True),
            sa.Column("location", sa.String(length=100), nullable=True),
            sa.Column("hire_date", sa.Date(), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("email", name="uq_participants_email"),
        )
        op.create_index("ix_participants_status", "participants", ["status"])

    # ── Program graph ────────────────────────────────────────────────────
    if "programs" not in existing_tables:
        op.create_table(
            "programs",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("region", sa.String(length=100), nullable=True),
            sa.Column("duration", sa.Integer(), nullable=False, server_default="1"),
            sa.Column("archived", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("form_data", sa.JSON(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )

    if "sessions" not in existing_tables:
        op.create_table(
            "sessions",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("program_id", sa.Integer(), nullable=False),
            sa.Column("title", sa.String(length=200), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("order", sa.Integer(), nullable=True),
            sa.Column("duration", sa.Integer(), nullable=True),
            sa.Column("block_id", sa.String(length=100), nullable=True),
            sa.Column("group_size_min", sa.Integer(), nullable=False, server_default="1"),
            sa.Column("group_size_max", sa.Integer(), nullable=False, server_default="20"),
            sa.Column("participant_types", sa.JSON(), nullable=False),
            sa.Column("facilitator_skills", sa.JSON(), nullable=False),
            sa.Column("location_types", sa.JSON(), nullable=False),
            sa.Column("requires_facilitator", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(["program_id"], ["programs.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_sessions_program_id", "sessions", ["program_id"])

    if "cohorts" not in existing_tables:
        op.create_table(
            "cohorts",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("program_id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("start_date", sa.DateTime(), nullable=False),
            sa.Column("end_date", sa.DateTime(), nullable=False),
            sa.Column("capacity", sa.Integer(), nullable=False, server_default="20"),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="scheduled"),
            sa.Column("form_data", sa.JSON(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(["program_id"], ["programs.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_cohorts_program_id", "cohorts", ["program_id"])

    if "schedules" not in existing_tables:
        op.create_table(
            "schedules",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("cohort_id", sa.Integer(), nullable=False),
            sa.Column("session_id", sa.Integer(), nullable=False),
            sa.Column("start_time", sa.DateTime(), nullable=False),
            sa.Column("end_time", sa.DateTime(), nullable=False),
            sa.Column("facilitator_id", sa.Integer(), nullable=True),
            sa.Column("location_id", sa.Integer(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.CheckConstraint("end_time > start_time", name="ck_schedules_end_after_start"),
            sa.ForeignKeyConstraint(["cohort_id"], ["cohorts.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["session_id"], ["sessions.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["facilitator_id"], ["facilitators.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["location_id"], ["locations.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_schedules_cohort_session", "schedules", ["cohort_id", "session_id"])

    if "cohort_participants" not in existing_tables:
        op.create_table(
            "cohort_participants",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("cohort_id", sa.Integer(), nullable=False),
            sa.Column("participant_id", sa.Integer(), nullable=False),
            sa.Column("enrolled_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(["cohort_id"], ["cohorts.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["participant_id"], ["participants.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("cohort_id", "participant_id", name="uq_cohort_participant"),
        )
        op.create_index(
            "ix_cohort_participants_participant_id", "cohort_participants", ["participant_id"],
        )


def downgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    for table in (
        "cohort_participants",
        "schedules",
        "cohorts",
        "sessions",
        "programs",
        "participants",
        "locations",
        "facilitators",
        "users",
    ):
        if table in existing_tables:
            op.drop_table(table)
