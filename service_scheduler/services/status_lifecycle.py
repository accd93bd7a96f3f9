"""Appointment status lifecycle."""

from datetime import datetime, timezone

import structlog

from service_scheduler.core.exceptions import InvalidStatusException
from service_scheduler.schemas.appointments import (
    AppointmentStatus,
    StatusChangeResponse,
)
from service_scheduler.services.appointment_store import AppointmentStore

logger = structlog.get_logger()

# Every accepted status may follow every other; Confirmed has no forward
# successor, and there is no cancelled state (deletion releases the slot).
ALLOWED_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.PENDING: frozenset({AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED}),
    AppointmentStatus.CONFIRMED: frozenset({AppointmentStatus.CONFIRMED, AppointmentStatus.PENDING}),
}


def parse_status(value: str | AppointmentStatus) -> AppointmentStatus:
    """
    Convert a raw value into an accepted status.

    Raises:
        InvalidStatusException: If the value is outside the accepted set
    """
    try:
        return AppointmentStatus(value)
    except ValueError:
        accepted = ", ".join(status.value for status in AppointmentStatus)
        raise InvalidStatusException(
            f"Invalid status '{value}'. Accepted values are: {accepted}"
        ) from None


def check_transition(current: AppointmentStatus, new: AppointmentStatus) -> None:
    """Raise ``InvalidStatusException`` if ``current -> new`` is not allowed."""
    if new not in ALLOWED_TRANSITIONS[current]:
        raise InvalidStatusException(f"Cannot change status from {current.value} to {new.value}")


class StatusLifecycle:
    """Status updates for existing appointments."""

    def __init__(self, store: AppointmentStore):
        """Initialize with the appointment store."""
        self.store = store

    async def set_status(
        self,
        appointment_id: int,
        new_status: str | AppointmentStatus,
    ) -> StatusChangeResponse:
        """
        Set an appointment's status.

        ``status_updated_at`` is refreshed on every successful call,
        including when the status does not change.

        Raises:
            InvalidStatusException: If the status is not accepted
            NotFoundException: If appointment not found
        """
        status = parse_status(new_status)
        current = await self.store.get(appointment_id)
        check_transition(current.status, status)

        updated = await self.store.set_status(
            appointment_id, status.value, datetime.now(timezone.utc)
        )

        logger.info(
            "appointment_status_updated",
            appointment_id=appointment_id,
            previous=current.status.value,
            new=status.value,
        )

        return StatusChangeResponse(
            appointment_id=appointment_id,
            previous=current.status,
            new=updated.status,
            status_updated_at=updated.status_updated_at,
        )
