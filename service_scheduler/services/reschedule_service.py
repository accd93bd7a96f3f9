"""Rescheduling of existing appointments."""

from datetime import datetime, timezone
from typing import Any

import structlog

from service_scheduler.core.clock import Clock
from service_scheduler.core.redis_client import BookedSlotCache
from service_scheduler.schemas.appointments import (
    AppointmentReschedule,
    AppointmentResponse,
    RescheduleResponse,
    SlotInfo,
)
from service_scheduler.services.appointment_store import AppointmentStore, mutable_values
from service_scheduler.services.availability_service import parse_appointment_date
from service_scheduler.services.booking_guard import BookingConflictGuard, parse_slot
from service_scheduler.services.status_lifecycle import parse_status

logger = structlog.get_logger()


def resolve_patch(
    current: AppointmentResponse,
    patch: AppointmentReschedule,
    changed_at: datetime,
) -> dict[str, Any]:
    """
    Resolve a patch against the stored record into values for an update.

    Omitted fields keep their stored value. The status columns are included
    only when the patch names a status, and ``status_updated_at`` moves only
    when the status value actually changes.
    """
    values = mutable_values(current)

    for field, value in patch.model_dump(exclude_none=True, exclude={"status"}).items():
        values[field] = value

    if patch.status is not None:
        status = parse_status(patch.status)
        values["status"] = status.value
        if status != current.status:
            values["status_updated_at"] = changed_at

    return values


class RescheduleCoordinator:
    """Applies combined date/slot/detail changes to an appointment."""

    def __init__(
        self,
        store: AppointmentStore,
        guard: BookingConflictGuard,
        clock: Clock,
        cache: BookedSlotCache | None = None,
    ):
        """Initialize with store, conflict guard, clock and optional cache."""
        self.store = store
        self.guard = guard
        self.clock = clock
        self.cache = cache

    async def reschedule(
        self,
        appointment_id: int,
        patch: AppointmentReschedule,
    ) -> RescheduleResponse:
        """
        Change an appointment's date, slot and details in one operation.

        Nothing is written unless every check passes. When the (date, slot)
        pair changes, the move goes through the conflict guard with the
        appointment itself excluded; otherwise the record is rewritten in place.

        Raises:
            NotFoundException: If appointment not found
            InvalidDateException: If the new date is malformed or in the past
            InvalidSlotException: If the new slot is not in the catalog
            InvalidStatusException: If the status is not accepted
            SlotTakenException: If another appointment holds the new pair
        """
        current = await self.store.get(appointment_id)

        new_date = current.appointment_date
        if patch.appointment_date is not None:
            new_date = parse_appointment_date(patch.appointment_date, self.clock, reject_past=False)

        new_slot = current.appointment_time
        if patch.appointment_time is not None:
            new_slot = parse_slot(patch.appointment_time).value

        values = resolve_patch(current, patch, datetime.now(timezone.utc))
        values["appointment_date"] = new_date
        values["appointment_time"] = new_slot

        moved = (new_date, new_slot) != (current.appointment_date, current.appointment_time)

        if moved:
            updated = await self.guard.reserve(
                new_date,
                new_slot,
                values,
                exclude_id=appointment_id,
            )
        else:
            updated = await self.store.update(appointment_id, values)

        if self.cache and moved:
            self.cache.invalidate(current.appointment_date)

        logger.info(
            "appointment_rescheduled",
            appointment_id=appointment_id,
            previous_date=current.appointment_date.isoformat(),
            previous_slot=current.appointment_time,
            new_date=updated.appointment_date.isoformat(),
            new_slot=updated.appointment_time,
        )

        return RescheduleResponse(
            previous=SlotInfo(
                appointment_date=current.appointment_date,
                appointment_time=current.appointment_time,
            ),
            new=SlotInfo(
                appointment_date=updated.appointment_date,
                appointment_time=updated.appointment_time,
            ),
            appointment=updated,
        )
