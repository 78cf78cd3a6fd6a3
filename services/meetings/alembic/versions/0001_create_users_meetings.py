"""create users, meetings and meeting_participants

Revision ID: 3b1f0c7a9d42
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "3b1f0c7a9d42"
down_revision = None
branch_labels = None
depends_on = None

user_role = sa.Enum("user", "admin", name="userrole")
meeting_type = sa.Enum(
    "one_on_one", "group", "presentation", "workshop", "other", name="meetingtype"
)
meeting_status = sa.Enum(
    "scheduled", "in_progress", "completed", "cancelled", name="meetingstatus"
)
recurrence_type = sa.Enum("none", "daily", "weekly", "monthly", name="recurrencetype")
participant_status = sa.Enum(
    "invited",
    "accepted",
    "declined",
    "tentative",
    "no_response",
    name="participantstatus",
)
participant_role = sa.Enum(
    "organizer", "presenter", "attendee", "optional", name="participantrole"
)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("username", sa.String(length=30), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=50), nullable=False),
        sa.Column("last_name", sa.String(length=50), nullable=False),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("role", user_role, nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("last_login", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "meetings",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("start_time", sa.DateTime(), nullable=False),
        sa.Column("end_time", sa.DateTime(), nullable=False),
        sa.Column("timezone", sa.String(length=50), nullable=False),
        sa.Column("location", sa.String(length=255), nullable=True),
        sa.Column("meeting_link", sa.String(length=500), nullable=True),
        sa.Column("meeting_type", meeting_type, nullable=False),
        sa.Column("status", meeting_status, nullable=False),
        sa.Column("max_participants", sa.Integer(), nullable=True),
        sa.Column("is_recurring", sa.Boolean(), nullable=False),
        sa.Column("recurrence_type", recurrence_type, nullable=True),
        sa.Column("recurrence_end_date", sa.DateTime(), nullable=True),
        sa.Column("organizer_id", sa.Integer(), nullable=False),
        sa.Column("channel_name", sa.String(length=100), nullable=True),
        sa.Column("provider_app_id", sa.String(length=100), nullable=True),
        sa.Column("password", sa.String(length=50), nullable=True),
        sa.Column("is_password_protected", sa.Boolean(), nullable=False),
        sa.Column("allow_guest_access", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["organizer_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("channel_name"),
    )
    op.create_index("ix_meetings_organizer_id", "meetings", ["organizer_id"])
    op.create_index("ix_meetings_start_time", "meetings", ["start_time"])
    op.create_index("ix_meetings_status", "meetings", ["status"])
    op.create_index("ix_meetings_start_end", "meetings", ["start_time", "end_time"])

    op.create_table(
        "meeting_participants",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("meeting_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("name", sa.String(length=100), nullable=True),
        sa.Column("status", participant_status, nullable=False),
        sa.Column("role", participant_role, nullable=False),
        sa.Column("joined_at", sa.DateTime(), nullable=True),
        sa.Column("left_at", sa.DateTime(), nullable=True),
        sa.Column("response_date", sa.DateTime(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["meeting_id"], ["meetings.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("meeting_id", "user_id", name="_meeting_user_uc"),
    )
    op.create_index(
        "ix_meeting_participants_user_status",
        "meeting_participants",
        ["user_id", "status"],
    )


def downgrade() -> None:
    op.drop_index(
        "ix_meeting_participants_user_status", table_name="meeting_participants"
    )
    op.drop_table("meeting_participants")
    op.drop_index("ix_meetings_start_end", table_name="meetings")
    op.drop_index("ix_meetings_status", table_name="meetings")
    op.drop_index("ix_meetings_start_time", table_name="meetings")
    op.drop_index("ix_meetings_organizer_id", table_name="meetings")
    op.drop_table("meetings")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_index("ix_users_username", table_name="users")
    op.drop_table("users")
    for enum_type in (
        participant_role,
        participant_status,
        recurrence_type,
        meeting_status,
        meeting_type,
        user_role,
    ):
        enum_type.drop(op.get_bind(), checkfirst=True)
