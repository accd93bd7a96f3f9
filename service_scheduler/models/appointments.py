"""Appointments table model using SQLAlchemy Core."""

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    func,
)

# Metadata for all tables
metadata = MetaData()

SLOT_UNIQUE_CONSTRAINT = "uq_appointments_date_time"

# Appointments table
appointments = Table(
    "appointments",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    # Ownership (opaque reference to the identity service)
    Column("customer_id", Text, nullable=False),
    # Vehicle and service details, validated upstream
    Column("vehicle_number", Text, nullable=False),
    Column("vehicle_type", Text, nullable=False),
    Column("service_type", Text, nullable=False),
    # Contact
    Column("phone_number", String(20), nullable=False),
    # Reservation
    Column("appointment_date", Date, nullable=False),
    Column("appointment_time", String(5), nullable=False),
    # Status management
    Column("status", Text, nullable=False, server_default="Pending"),
    Column(
        "status_updated_at",
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    ),
    # Audit fields
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    # Constraints
    UniqueConstraint("appointment_date", "appointment_time", name=SLOT_UNIQUE_CONSTRAINT),
    CheckConstraint(
        "appointment_time IN ('08:00', '09:30', '11:00', '12:30', '14:00', '15:30')",
        name="appointments_time_check",
    ),
    CheckConstraint(
        "status IN ('Pending', 'Confirmed')",
        name="appointments_status_check",
    ),
    Index("ix_appointments_customer_id", "customer_id"),
    # Keep ids monotonic on SQLite so deleted ids are never handed out again
    sqlite_autoincrement=True,
)
