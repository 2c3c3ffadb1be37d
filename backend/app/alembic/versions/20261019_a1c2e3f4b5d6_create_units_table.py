"""create units table

Revision ID: a1c2e3f4b5d6
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "a1c2e3f4b5d6"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "units",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("project_id", sa.Integer(), nullable=False),
        sa.Column("unit_number", sa.String(length=50), nullable=False),
        sa.Column("area_sq_ft", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("rate_per_sq_ft", sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="available"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("project_id", "unit_number", name="uq_units_project_id_unit_number"),
    )
    op.create_index("ix_units_project_id", "units", ["project_id"], unique=False)
    op.create_index("ix_units_status", "units", ["status"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_units_status", table_name="units")
    op.drop_index("ix_units_project_id", table_name="units")
    op.drop_table("units")
