"""create booking_payments table

Revision ID: c3e4a5b6d7f8
Revises: b2d3f4a5c6e7
Create Date: 2026-10-19 09:20:00.000000

"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "c3e4a5b6d7f8"
down_revision = "b2d3f4a5c6e7"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "booking_payments",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("booking_id", sa.String(length=36), nullable=False),
        sa.Column("sequence_number", sa.Integer(), nullable=False),
        sa.Column("amount", sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column("payment_method", sa.String(length=20), nullable=False),
        sa.Column("payment_details", sa.JSON(), nullable=False),
        sa.Column("payment_received_date", sa.Date(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["booking_id"], ["bookings.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "booking_id", "sequence_number", name="uq_booking_payments_booking_id_sequence"
        ),
        sa.CheckConstraint("amount > 0", name="ck_booking_payments_amount_positive"),
    )
    op.create_index(
        "ix_booking_payments_booking_id", "booking_payments", ["booking_id"], unique=False
    )


def downgrade() -> None:
    op.drop_index("ix_booking_payments_booking_id", table_name="booking_payments")
    op.drop_table("booking_payments")
