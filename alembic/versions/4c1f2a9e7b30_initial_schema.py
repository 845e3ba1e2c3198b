"""initial schema

Revision ID: 4c1f2a9e7b30
Revises:
Create Date: 2026-10-19 09:12:41.118204

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "4c1f2a9e7b30"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the processes and users tables."""
    op.create_table(
        "processes",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("process_type", sa.Text, nullable=False),
        sa.Column("status", sa.Text, nullable=False, server_default="stopped"),
        sa.Column("progress", sa.Float, nullable=False, server_default="0"),
        sa.Column("estimated_duration", sa.Integer, nullable=True),
        sa.Column("actual_duration", sa.Integer, nullable=True),
        sa.Column("error_message", sa.Text, nullable=True),
        sa.Column("started_at", sa.Text, nullable=True),
        sa.Column("completed_at", sa.Text, nullable=True),
        sa.Column("created_at", sa.Text, nullable=False),
        sa.Column("updated_at", sa.Text, nullable=False),
        sa.CheckConstraint(
            "status IN ('stopped', 'running', 'paused', 'error', 'completed')",
            name="ck_processes_status",
        ),
        sa.CheckConstraint(
            "process_type IN ('organic', 'plastic', 'metal', 'glass', 'paper', 'electronic')",
            name="ck_processes_type",
        ),
        sa.CheckConstraint("progress >= 0 AND progress <= 100", name="ck_processes_progress"),
    )
    op.create_index("idx_processes_created_at", "processes", ["created_at"])

    op.create_table(
        "users",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column("email", sa.Text, nullable=True, unique=True),
        sa.Column("first_name", sa.Text, nullable=True),
        sa.Column("last_name", sa.Text, nullable=True),
        sa.Column("role", sa.Text, nullable=False, server_default="user"),
        sa.Column("created_at", sa.Text, nullable=False),
        sa.Column("updated_at", sa.Text, nullable=False),
        sa.CheckConstraint("role IN ('user', 'admin')", name="ck_users_role"),
    )


def downgrade() -> None:
    """Drop all Wasteflow tables."""
    op.drop_table("users")
    op.drop_index("idx_processes_created_at", table_name="processes")
    op.drop_table("processes")
