"""create bookings table

Revision ID: b2d3f4a5c6e7
Revises: a1c2e3f4b5d6
Create Date: 2026-10-19 09:10:00.000000

"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "b2d3f4a5c6e7"
down_revision = "a1c2e3f4b5d6"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "bookings",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("booking_code", sa.String(length=20), nullable=False),
        sa.Column("unit_id", sa.String(length=36), nullable=False),
        sa.Column("project_id", sa.Integer(), nullable=False),
        sa.Column("unit_number", sa.String(length=50), nullable=False),
        sa.Column("customer_name", sa.String(length=255), nullable=False),
        sa.Column("customer_mobile", sa.String(length=20), nullable=True),
        sa.Column("area_sq_ft", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("rate_per_sq_ft", sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column("total_amount", sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column("advance_amount", sa.Numeric(precision=14, scale=2), nullable=False, server_default="0"),
        sa.Column("advance_payment_method", sa.String(length=20), nullable=False, server_default="cash"),
        sa.Column("booking_date", sa.Date(), nullable=False),
        sa.Column("payment_sequence", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=True),
        sa.ForeignKeyConstraint(["unit_id"], ["units.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("booking_code"),
        sa.UniqueConstraint("unit_id"),
        sa.CheckConstraint("advance_amount <= total_amount", name="ck_bookings_advance_le_total"),
    )
    op.create_index("ix_bookings_project_id", "bookings", ["project_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_bookings_project_id", table_name="bookings")
    op.drop_table("bookings")
