"""Atomic reservation of (date, slot) pairs."""

from datetime import date
from typing import Any

import structlog

from service_scheduler.core.clock import Clock
from service_scheduler.core.exceptions import InvalidSlotException, SlotTakenException
from service_scheduler.core.redis_client import BookedSlotCache
from service_scheduler.core.slots import SlotCatalog, TimeSlot
from service_scheduler.schemas.appointments import AppointmentResponse
from service_scheduler.services.appointment_store import AppointmentStore
from service_scheduler.services.availability_service import parse_appointment_date

logger = structlog.get_logger()


def parse_slot(value: str | TimeSlot) -> TimeSlot:
    """
    Convert a raw ``HH:MM`` value into a catalog slot.

    Raises:
        InvalidSlotException: If the value is not in the catalog
    """
    if not SlotCatalog.is_valid(value):
        raise InvalidSlotException(
            f"Invalid time slot. Available slots are: {SlotCatalog.describe()}"
        )
    return SlotCatalog.parse(value)


class BookingConflictGuard:
    """
    Check-and-reserve for a (date, slot) pair.

    There is no read-before-write occupancy check. The reservation is a
    single INSERT (new booking) or UPDATE (moving ``exclude_id``), and the
    database's unique constraint on (appointment_date, appointment_time)
    decides the winner among concurrent callers. A losing write is rolled
    back by the store, so a failed reserve leaves nothing behind and can be
    retried. Moving an appointment updates its own row, which is why it can
    never collide with its previous reservation.
    """

    def __init__(
        self,
        store: AppointmentStore,
        clock: Clock,
        cache: BookedSlotCache | None = None,
    ):
        """Initialize with store, clock and optional booked-slot cache."""
        self.store = store
        self.clock = clock
        self.cache = cache

    async def reserve(
        self,
        appointment_date: str | date,
        slot: str | TimeSlot,
        values: dict[str, Any],
        exclude_id: int | None = None,
    ) -> AppointmentResponse:
        """
        Claim ``(appointment_date, slot)`` and persist the appointment.

        Args:
            appointment_date: Date to reserve
            slot: Slot to reserve
            values: Remaining appointment columns (a full record when moving)
            exclude_id: Appointment being moved; its row receives the reservation

        Returns:
            The stored appointment

        Raises:
            InvalidDateException: If the date is malformed or in the past
            InvalidSlotException: If the slot is not in the catalog
            SlotTakenException: If another live appointment holds the pair
            NotFoundException: If ``exclude_id`` does not exist
        """
        day = parse_appointment_date(appointment_date, self.clock)
        time_slot = parse_slot(slot)
        reservation = {
            **values,
            "appointment_date": day,
            "appointment_time": time_slot.value,
        }

        try:
            if exclude_id is None:
                appointment = await self.store.insert(reservation)
            else:
                appointment = await self.store.update(exclude_id, reservation)
        except SlotTakenException:
            logger.info(
                "slot_taken",
                date=day.isoformat(),
                slot=time_slot.value,
                exclude_id=exclude_id,
            )
            raise

        if self.cache:
            self.cache.invalidate(day)

        logger.info(
            "slot_reserved",
            appointment_id=appointment.id,
            date=day.isoformat(),
            slot=time_slot.value,
        )
        return appointment
