"""Create appointments table.

Revision ID: 001
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade database schema."""
    op.create_table(
        "appointments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("customer_id", sa.Text(), nullable=False),
        sa.Column("vehicle_number", sa.Text(), nullable=False),
        sa.Column("vehicle_type", sa.Text(), nullable=False),
        sa.Column("service_type", sa.Text(), nullable=False),
        sa.Column("phone_number", sa.String(length=20), nullable=False),
        sa.Column("appointment_date", sa.Date(), nullable=False),
        sa.Column("appointment_time", sa.String(length=5), nullable=False),
        sa.Column("status", sa.Text(), server_default="Pending", nullable=False),
        sa.Column(
            "status_updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        # One live appointment per date and slot across the whole service center
        sa.UniqueConstraint(
            "appointment_date",
            "appointment_time",
            name="uq_appointments_date_time",
        ),
        sa.CheckConstraint(
            "appointment_time IN ('08:00', '09:30', '11:00', '12:30', '14:00', '15:30')",
            name="appointments_time_check",
        ),
        sa.CheckConstraint(
            "status IN ('Pending', 'Confirmed')",
            name="appointments_status_check",
        ),
        sqlite_autoincrement=True,
    )

    op.create_index("ix_appointments_customer_id", "appointments", ["customer_id"])


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_index("ix_appointments_customer_id", table_name="appointments")
    op.drop_table("appointments")
