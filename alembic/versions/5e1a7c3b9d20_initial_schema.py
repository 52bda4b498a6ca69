"""initial schema: users, participants, milestones, donations, events, registrations, surveys

Revision ID: 5e1a7c3b9d20
Revises:
Create Date: 2026-10-18 09:00:00

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "5e1a7c3b9d20"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "participant_info",
        sa.Column("participant_id", sa.Integer(), nullable=False),
        sa.Column("participant_email", sa.String(length=255), nullable=False),
        sa.Column("participant_first_name", sa.String(length=100), nullable=False),
        sa.Column("participant_last_name", sa.String(length=100), nullable=False),
        sa.Column("participant_dob", sa.Date(), nullable=True),
        sa.Column("participant_role", sa.String(length=20), nullable=False, server_default="participant"),
        sa.Column("participant_phone", sa.String(length=30), nullable=True),
        sa.Column("participant_city", sa.String(length=100), nullable=True),
        sa.Column("participant_state", sa.String(length=50), nullable=True),
        sa.Column("participant_zip", sa.String(length=10), nullable=True),
        sa.Column("participant_school_or_employer", sa.String(length=200), nullable=True),
        sa.Column("participant_field_of_interest", sa.String(length=100), nullable=True),
        sa.Column("total_donations", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("participant_id"),
    )
    op.create_index("ix_participant_info_participant_id", "participant_info", ["participant_id"])
    op.create_index("ix_participant_info_participant_email", "participant_info", ["participant_email"], unique=True)

    op.create_table(
        "users",
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("level", sa.String(length=1), nullable=False, server_default="u"),
        sa.Column("participant_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["participant_id"], ["participant_info.participant_id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("user_id"),
        sa.UniqueConstraint("participant_id"),
    )
    op.create_index("ix_users_user_id", "users", ["user_id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # (participant_id, number) is the numbering backstop for both child tables
    op.create_table(
        "participant_milestones",
        sa.Column("participant_id", sa.Integer(), nullable=False),
        sa.Column("milestone_number", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("milestone_title", sa.String(length=200), nullable=False),
        sa.Column("milestone_date", sa.Date(), nullable=False),
        sa.ForeignKeyConstraint(["participant_id"], ["participant_info.participant_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("participant_id", "milestone_number"),
    )
    op.create_table(
        "participant_donations",
        sa.Column("participant_id", sa.Integer(), nullable=False),
        sa.Column("donation_number", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("donation_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("donation_date", sa.Date(), nullable=False),
        sa.ForeignKeyConstraint(["participant_id"], ["participant_info.participant_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("participant_id", "donation_number"),
        sa.CheckConstraint("donation_amount > 0", name="ck_participant_donations_amount_positive"),
    )

    op.create_table(
        "event_templates",
        sa.Column("event_template_id", sa.Integer(), nullable=False),
        sa.Column("event_name", sa.String(length=200), nullable=False),
        sa.Column("event_type", sa.String(length=30), nullable=False, server_default="other"),
        sa.Column("event_description", sa.Text(), nullable=True),
        sa.Column("event_recurrence_pattern", sa.Text(), nullable=True),
        sa.Column("event_default_capacity", sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint("event_template_id"),
    )
    op.create_index("ix_event_templates_event_template_id", "event_templates", ["event_template_id"])

    op.create_table(
        "location_capacities",
        sa.Column("location_id", sa.Integer(), nullable=False),
        sa.Column("location_name", sa.String(length=200), nullable=False),
        sa.Column("location_capacity", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("location_id"),
        sa.UniqueConstraint("location_name"),
    )
    op.create_index("ix_location_capacities_location_id", "location_capacities", ["location_id"])

    op.create_table(
        "event_occurrences",
        sa.Column("occurrence_id", sa.Integer(), nullable=False),
        sa.Column("event_template_id", sa.Integer(), nullable=False),
        sa.Column("location_id", sa.Integer(), nullable=True),
        sa.Column("start_at", sa.DateTime(), nullable=False),
        sa.Column("end_at", sa.DateTime(), nullable=False),
        sa.Column("registration_deadline", sa.DateTime(), nullable=True),
        sa.Column("capacity", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["event_template_id"], ["event_templates.event_template_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["location_id"], ["location_capacities.location_id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("occurrence_id"),
    )
    op.create_index("ix_event_occurrences_occurrence_id", "event_occurrences", ["occurrence_id"])
    op.create_index("ix_event_occurrences_event_template_id", "event_occurrences", ["event_template_id"])

    op.create_table(
        "registrations",
        sa.Column("registration_id", sa.Integer(), nullable=False),
        sa.Column("participant_id", sa.Integer(), nullable=False),
        sa.Column("occurrence_id", sa.Integer(), nullable=False),
        sa.Column("registration_status", sa.String(length=20), nullable=False, server_default="requested"),
        sa.Column(
            "registration_created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.ForeignKeyConstraint(["participant_id"], ["participant_info.participant_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["occurrence_id"], ["event_occurrences.occurrence_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("registration_id"),
        sa.UniqueConstraint("participant_id", "occurrence_id", name="uq_registrations_participant_occurrence"),
    )
    op.create_index("ix_registrations_registration_id", "registrations", ["registration_id"])
    op.create_index("ix_registrations_participant_id", "registrations", ["participant_id"])
    op.create_index("ix_registrations_occurrence_id", "registrations", ["occurrence_id"])

    op.create_table(
        "surveys",
        sa.Column("survey_id", sa.Integer(), nullable=False),
        sa.Column("registration_id", sa.Integer(), nullable=False),
        sa.Column("survey_satisfaction_score", sa.Integer(), nullable=False),
        sa.Column("survey_usefulness_score", sa.Integer(), nullable=False),
        sa.Column("survey_instructor_score", sa.Integer(), nullable=False),
        sa.Column("survey_recommendation_score", sa.Integer(), nullable=False),
        sa.Column("survey_overall_score", sa.Numeric(4, 2), nullable=False),
        sa.Column("survey_nps_bucket", sa.String(length=10), nullable=False),
        sa.Column("survey_comments", sa.Text(), nullable=True),
        sa.Column("survey_submitted_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["registration_id"], ["registrations.registration_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("survey_id"),
        sa.UniqueConstraint("registration_id"),
    )
    op.create_index("ix_surveys_survey_id", "surveys", ["survey_id"])

    op.create_table(
        "survey_question_responses",
        sa.Column("response_id", sa.Integer(), nullable=False),
        sa.Column("survey_id", sa.Integer(), nullable=False),
        sa.Column("question", sa.String(length=500), nullable=False),
        sa.Column("answer", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["survey_id"], ["surveys.survey_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("response_id"),
    )
    op.create_index("ix_survey_question_responses_survey_id", "survey_question_responses", ["survey_id"])


def downgrade() -> None:
    op.drop_index("ix_survey_question_responses_survey_id", table_name="survey_question_responses")
    op.drop_table("survey_question_responses")
    op.drop_index("ix_surveys_survey_id", table_name="surveys")
    op.drop_table("surveys")
    op.drop_index("ix_registrations_occurrence_id", table_name="registrations")
    op.drop_index("ix_registrations_participant_id", table_name="registrations")
    op.drop_index("ix_registrations_registration_id", table_name="registrations")
    op.drop_table("registrations")
    op.drop_index("ix_event_occurrences_event_template_id", table_name="event_occurrences")
    op.drop_index("ix_event_occurrences_occurrence_id", table_name="event_occurrences")
    op.drop_table("event_occurrences")
    op.drop_index("ix_location_capacities_location_id", table_name="location_capacities")
    op.drop_table("location_capacities")
    op.drop_index("ix_event_templates_event_template_id", table_name="event_templates")
    op.drop_table("event_templates")
    op.drop_table("participant_donations")
    op.drop_table("participant_milestones")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_index("ix_users_user_id", table_name="users")
    op.drop_table("users")
    op.drop_index("ix_participant_info_participant_id", table_name="participant_info")
    op.drop_index("ix_participant_info_participant_email", table_name="participant_info")
    op.drop_table("participant_info")
