"""Fixed catalog of bookable time slots."""

from datetime import time
from enum import Enum


class TimeSlot(str, Enum):
    """Bookable start times, identical for every calendar date.

    Declaration order is the canonical day order; every sequence of slots
    returned to a caller follows it.
    """

    SLOT_0800 = "08:00"
    SLOT_0930 = "09:30"
    SLOT_1100 = "11:00"
    SLOT_1230 = "12:30"
    SLOT_1400 = "14:00"
    SLOT_1530 = "15:30"

    @property
    def start(self) -> time:
        """Start time of the slot."""
        hours, minutes = self.value.split(":")
        return time(int(hours), int(minutes))

    @property
    def label(self) -> str:
        """12-hour display label, e.g. ``2:00 PM``."""
        start = self.start
        hour = start.hour % 12 or 12
        suffix = "AM" if start.hour < 12 else "PM"
        return f"{hour}:{start.minute:02d} {suffix}"


class SlotCatalog:
    """Read-only access to the slot catalog."""

    @staticmethod
    def all() -> tuple[TimeSlot, ...]:
        """All slots in canonical order."""
        return tuple(TimeSlot)

    @staticmethod
    def is_valid(value: str | TimeSlot) -> bool:
        """Check whether ``value`` is a catalog slot."""
        if isinstance(value, TimeSlot):
            return True
        return value in {slot.value for slot in TimeSlot}

    @staticmethod
    def parse(value: str | TimeSlot) -> TimeSlot:
        """Convert a ``HH:MM`` string into a catalog slot.

        Raises:
            ValueError: If the value is not a catalog slot
        """
        return TimeSlot(value)

    @staticmethod
    def describe() -> str:
        """Human readable list of slot labels."""
        return ", ".join(slot.label for slot in TimeSlot)
