"""Durable storage for appointment records."""

from datetime import date, datetime, timezone
from typing import Any

import structlog
from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from service_scheduler.core.exceptions import (
    NotFoundException,
    SlotTakenException,
    StorageFaultException,
)
from service_scheduler.models.appointments import SLOT_UNIQUE_CONSTRAINT, appointments
from service_scheduler.schemas.appointments import AppointmentResponse

logger = structlog.get_logger()

MUTABLE_FIELDS = (
    "vehicle_number",
    "vehicle_type",
    "service_type",
    "phone_number",
    "appointment_date",
    "appointment_time",
)

# Written by an update only when present; see ``AppointmentStore.update``
STATUS_FIELDS = ("status", "status_updated_at")


def mutable_values(appointment: AppointmentResponse) -> dict[str, Any]:
    """Detail and reservation fields of a stored appointment, ready for an update."""
    return {
        "vehicle_number": appointment.vehicle_number,
        "vehicle_type": appointment.vehicle_type,
        "service_type": appointment.service_type,
        "phone_number": appointment.phone_number,
        "appointment_date": appointment.appointment_date,
        "appointment_time": appointment.appointment_time,
    }


def is_slot_conflict(exc: IntegrityError) -> bool:
    """Check whether an integrity error comes from the (date, slot) unique constraint."""
    message = str(exc.orig)
    if SLOT_UNIQUE_CONSTRAINT in message:
        return True
    # SQLite names the columns instead of the constraint
    return "UNIQUE" in message and "appointment_date" in message and "appointment_time" in message


class AppointmentStore:
    """
    Appointment persistence.

    The store performs no conflict checking of its own; it reports the
    database's unique-constraint violations as ``SlotTakenException``.
    """

    def __init__(self, db: AsyncSession):
        """Initialize store with database session."""
        self.db = db

    async def _write(self, stmt: Any) -> Any:
        """Execute a write and commit, rolling back on any failure."""
        try:
            result = await self.db.execute(stmt)
            row = result.fetchone()
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            if is_slot_conflict(e):
                raise SlotTakenException() from e
            logger.error("appointment_write_rejected", error=str(e.orig))
            raise StorageFaultException("Appointment could not be stored") from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("appointment_storage_failed", error=str(e))
            raise StorageFaultException() from e
        return row

    async def _read(self, stmt: Any) -> Any:
        try:
            return await self.db.execute(stmt)
        except SQLAlchemyError as e:
            logger.error("appointment_storage_failed", error=str(e))
            raise StorageFaultException() from e

    async def insert(self, values: dict[str, Any]) -> AppointmentResponse:
        """
        Append a new appointment record.

        Args:
            values: Column values for the new row

        Returns:
            Stored appointment, including its assigned id

        Raises:
            SlotTakenException: If the (date, slot) pair is already held
            StorageFaultException: On any other storage failure
        """
        now = datetime.now(timezone.utc)
        stmt = (
            insert(appointments)
            .values(**values, status_updated_at=now, created_at=now, updated_at=now)
            .returning(appointments)
        )
        row = await self._write(stmt)
        return AppointmentResponse.model_validate(dict(row._mapping))

    async def get(self, appointment_id: int) -> AppointmentResponse:
        """
        Get appointment by ID.

        Raises:
            NotFoundException: If appointment not found
        """
        result = await self._read(select(appointments).where(appointments.c.id == appointment_id))
        row = result.fetchone()

        if not row:
            raise NotFoundException("Appointment not found")

        return AppointmentResponse.model_validate(dict(row._mapping))

    async def list_by_date(self, appointment_date: date) -> list[tuple[str, str]]:
        """
        List the reservations held on a date.

        Returns:
            ``(slot, status)`` pairs for every live appointment on that date
        """
        stmt = select(appointments.c.appointment_time, appointments.c.status).where(
            appointments.c.appointment_date == appointment_date
        )
        result = await self._read(stmt)
        return [(row.appointment_time, row.status) for row in result.fetchall()]

    async def list_by_customer(self, customer_id: str) -> list[AppointmentResponse]:
        """List a customer's appointments, most recent first."""
        stmt = (
            select(appointments)
            .where(appointments.c.customer_id == customer_id)
            .order_by(appointments.c.id.desc())
        )
        result = await self._read(stmt)
        return [AppointmentResponse.model_validate(dict(row._mapping)) for row in result.fetchall()]

    async def list_all(self) -> list[AppointmentResponse]:
        """List every appointment, most recent first."""
        result = await self._read(select(appointments).order_by(appointments.c.id.desc()))
        return [AppointmentResponse.model_validate(dict(row._mapping)) for row in result.fetchall()]

    async def update(self, appointment_id: int, values: dict[str, Any]) -> AppointmentResponse:
        """
        Replace the detail and reservation fields of an appointment.

        ``values`` must carry every field in ``MUTABLE_FIELDS``; callers resolve
        omitted fields against the stored record first. The status columns are
        written only when ``values`` carries them, so an edit that leaves the
        status alone cannot revert a concurrent status update.

        Raises:
            NotFoundException: If appointment not found
            SlotTakenException: If the new (date, slot) pair is held by another appointment
        """
        missing = [field for field in MUTABLE_FIELDS if field not in values]
        if missing:
            raise ValueError(f"Full-record update is missing fields: {', '.join(missing)}")

        stmt = (
            update(appointments)
            .where(appointments.c.id == appointment_id)
            .values(
                **{field: values[field] for field in MUTABLE_FIELDS},
                **{field: values[field] for field in STATUS_FIELDS if field in values},
                updated_at=datetime.now(timezone.utc),
            )
            .returning(appointments)
        )
        row = await self._write(stmt)

        if not row:
            raise NotFoundException("Appointment not found")

        return AppointmentResponse.model_validate(dict(row._mapping))

    async def set_status(
        self,
        appointment_id: int,
        status: str,
        changed_at: datetime,
    ) -> AppointmentResponse:
        """
        Write only the status columns of an appointment.

        The (date, slot) pair is left untouched, so a concurrent move of the
        same appointment is never reverted.

        Raises:
            NotFoundException: If appointment not found
        """
        stmt = (
            update(appointments)
            .where(appointments.c.id == appointment_id)
            .values(status=status, status_updated_at=changed_at, updated_at=changed_at)
            .returning(appointments)
        )
        row = await self._write(stmt)

        if not row:
            raise NotFoundException("Appointment not found")

        return AppointmentResponse.model_validate(dict(row._mapping))

    async def delete(self, appointment_id: int) -> AppointmentResponse:
        """
        Permanently remove an appointment, releasing its (date, slot) pair.

        Returns:
            The removed appointment

        Raises:
            NotFoundException: If appointment not found
        """
        stmt = delete(appointments).where(appointments.c.id == appointment_id).returning(appointments)
        row = await self._write(stmt)

        if not row:
            raise NotFoundException("Appointment not found")

        return AppointmentResponse.model_validate(dict(row._mapping))
