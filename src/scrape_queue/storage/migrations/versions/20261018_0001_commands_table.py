"""Create the commands queue table."""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "commands",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("kind", sa.String(), nullable=False),
        sa.Column("command", sa.LargeBinary(), nullable=False),
        sa.Column("status", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_commands_kind", "commands", ["kind"])
    op.create_index("idx_commands_status_id", "commands", ["status", "id"])


def downgrade() -> None:
    op.drop_index("idx_commands_status_id", table_name="commands")
    op.drop_index("ix_commands_kind", table_name="commands")
    op.drop_table("commands")
