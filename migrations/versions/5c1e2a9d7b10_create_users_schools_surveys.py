"""Create users, schools and survey_responses

Revision ID: 5c1e2a9d7b10
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "5c1e2a9d7b10"
down_revision = None
branch_labels = None
depends_on = None

TS = postgresql.TIMESTAMP(timezone=True).with_variant(sa.DateTime(timezone=True), "sqlite")


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", TS, nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", TS, nullable=False, server_default=sa.func.now()),
    )
    # Case-insensitive unique email
    op.execute("CREATE UNIQUE INDEX ux_users_lower_email ON users (lower(email));")

    op.create_table(
        "schools",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("deleted_at", TS, nullable=True),
        sa.Column("created_at", TS, nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", TS, nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_schools_deleted_at", "schools", ["deleted_at"])
    # Unique among non-deleted rows, case-insensitive (partial index works on PG and SQLite)
    op.execute(
        "CREATE UNIQUE INDEX uq_schools_lower_name_active ON schools (lower(name)) "
        "WHERE deleted_at IS NULL;"
    )

    op.create_table(
        "survey_responses",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("transaction_date", sa.Date(), nullable=False),
        sa.Column("first_name", sa.String(length=255), nullable=False),
        sa.Column("middle_name", sa.String(length=255), nullable=True),
        sa.Column("last_name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column(
            "school_id",
            sa.Integer(),
            sa.ForeignKey("schools.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("other_school_specify", sa.String(length=255), nullable=True),
        sa.Column("transaction_type", sa.String(length=32), nullable=False),
        sa.Column("other_transaction_specify", sa.String(length=255), nullable=True),
        sa.Column("satisfaction_rating", sa.String(length=16), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="submitted"),
        sa.Column("admin_notes", sa.Text(), nullable=True),
        sa.Column("created_at", TS, nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", TS, nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            "satisfaction_rating IN ('dissatisfied','neutral','satisfied')",
            name="ck_survey_responses_rating_valid",
        ),
        sa.CheckConstraint(
            "status IN ('submitted','reviewed','resolved')",
            name="ck_survey_responses_status_valid",
        ),
    )
    op.create_index("ix_survey_responses_transaction_date", "survey_responses", ["transaction_date"])
    op.create_index("ix_survey_responses_created_at", "survey_responses", ["created_at"])
    op.create_index("ix_survey_responses_school_id", "survey_responses", ["school_id"])
    op.create_index("ix_survey_responses_rating", "survey_responses", ["satisfaction_rating"])
    op.create_index("ix_survey_responses_transaction_type", "survey_responses", ["transaction_type"])
    op.create_index("ix_survey_responses_status", "survey_responses", ["status"])
    op.create_index("ix_survey_responses_last_first", "survey_responses", ["last_name", "first_name"])


def downgrade():
    op.drop_index("ix_survey_responses_last_first", table_name="survey_responses")
    op.drop_index("ix_survey_responses_status", table_name="survey_responses")
    op.drop_index("ix_survey_responses_transaction_type", table_name="survey_responses")
    op.drop_index("ix_survey_responses_rating", table_name="survey_responses")
    op.drop_index("ix_survey_responses_school_id", table_name="survey_responses")
    op.drop_index("ix_survey_responses_created_at", table_name="survey_responses")
    op.drop_index("ix_survey_responses_transaction_date", table_name="survey_responses")
    op.drop_table("survey_responses")

    op.execute("DROP INDEX IF EXISTS uq_schools_lower_name_active;")
    op.drop_index("ix_schools_deleted_at", table_name="schools")
    op.drop_table("schools")

    op.execute("DROP INDEX IF EXISTS ux_users_lower_email;")
    op.drop_table("users")
