"""Slot availability queries."""

import re
from datetime import date

import structlog

from service_scheduler.core.clock import Clock, time_of_day, today
from service_scheduler.core.exceptions import InvalidDateException
from service_scheduler.core.redis_client import BookedSlotCache
from service_scheduler.core.slots import SlotCatalog, TimeSlot
from service_scheduler.schemas.appointments import SlotBoardEntry
from service_scheduler.services.appointment_store import AppointmentStore

logger = structlog.get_logger()

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_appointment_date(value: str | date, clock: Clock, reject_past: bool = True) -> date:
    """
    Parse a ``YYYY-MM-DD`` date and reject dates before today.

    Args:
        value: Raw date string, or an already parsed date
        clock: Clock that defines "today"
        reject_past: Whether dates before today are rejected

    Returns:
        Parsed date

    Raises:
        InvalidDateException: If the value is malformed or in the past
    """
    if isinstance(value, date):
        parsed = value
    else:
        if not DATE_PATTERN.match(value):
            raise InvalidDateException("Invalid date format. Use YYYY-MM-DD")
        try:
            parsed = date.fromisoformat(value)
        except ValueError:
            raise InvalidDateException(f"Invalid date '{value}'") from None

    if reject_past and parsed < today(clock):
        raise InvalidDateException(
            "Invalid date. Appointment date must be today or a future date."
        )

    return parsed


class AvailabilityService:
    """Read-only view of which catalog slots are free on a date."""

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

    async def booked_slots(self, day: date) -> set[str]:
        """Slot values held by live appointments on ``day``."""
        if not self.cache:
            return {slot for slot, _status in await self.store.list_by_date(day)}

        cached = self.cache.get(day)
        if cached is not None:
            return cached

        version = self.cache.version(day)
        booked = {slot for slot, _status in await self.store.list_by_date(day)}
        self.cache.set(day, booked, version)

        return booked

    async def available_slots(self, value: str | date) -> tuple[date, list[TimeSlot]]:
        """
        Compute the free slots for a date.

        For today, slots whose start time is not strictly after the current
        hour and minute are dropped as well.

        Returns:
            The parsed date and its free slots in day order

        Raises:
            InvalidDateException: If the date is malformed or in the past
        """
        day = parse_appointment_date(value, self.clock)
        booked = await self.booked_slots(day)

        available = [slot for slot in SlotCatalog.all() if slot.value not in booked]

        if day == today(self.clock):
            now = time_of_day(self.clock)
            available = [slot for slot in available if slot.start > now]

        logger.debug(
            "availability_computed",
            date=day.isoformat(),
            booked=len(booked),
            available=len(available),
        )
        return day, available

    async def slot_board(self, value: str | date) -> tuple[date, list[SlotBoardEntry]]:
        """
        Every catalog slot for a date, flagged available or not.

        Raises:
            InvalidDateException: If the date is malformed or in the past
        """
        day, available = await self.available_slots(value)
        free = set(available)
        return day, [
            SlotBoardEntry(slot=slot.value, label=slot.label, available=slot in free)
            for slot in SlotCatalog.all()
        ]
