"""Appointment service for business logic."""

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from service_scheduler.core.clock import Clock
from service_scheduler.core.exceptions import BadRequestException
from service_scheduler.core.redis_client import BookedSlotCache
from service_scheduler.schemas.appointments import (
    AppointmentCreate,
    AppointmentListResponse,
    AppointmentReschedule,
    AppointmentResponse,
    AppointmentStatus,
    RescheduleResponse,
    StatusChangeResponse,
)
from service_scheduler.services.appointment_store import AppointmentStore
from service_scheduler.services.availability_service import AvailabilityService
from service_scheduler.services.booking_guard import BookingConflictGuard
from service_scheduler.services.reschedule_service import RescheduleCoordinator
from service_scheduler.services.status_lifecycle import StatusLifecycle, parse_status

logger = structlog.get_logger()


class AppointmentService:
    """Service for managing appointments."""

    def __init__(
        self,
        db: AsyncSession,
        clock: Clock,
        cache: BookedSlotCache | None = None,
    ):
        """Initialize service with database session, clock and optional cache."""
        self.store = AppointmentStore(db)
        self.cache = cache
        self.availability = AvailabilityService(self.store, clock, cache)
        self.guard = BookingConflictGuard(self.store, clock, cache)
        self.lifecycle = StatusLifecycle(self.store)
        self.rescheduler = RescheduleCoordinator(self.store, self.guard, clock, cache)

    async def create_appointment(
        self,
        customer_id: str,
        data: AppointmentCreate,
        profile_phone: str | None = None,
    ) -> AppointmentResponse:
        """
        Book a new appointment.

        Args:
            customer_id: Reference of the customer booking the appointment
            data: Appointment creation data
            profile_phone: Customer's profile phone, used when none is given

        Returns:
            Created appointment

        Raises:
            InvalidDateException: If the date is malformed or in the past
            InvalidSlotException: If the slot is not in the catalog
            InvalidStatusException: If an unknown status is requested
            SlotTakenException: If the slot is already booked on that date
        """
        status = parse_status(data.status) if data.status else AppointmentStatus.PENDING

        phone_number = data.phone_number or profile_phone
        if not phone_number:
            raise BadRequestException("A phone number is required to book an appointment")

        appointment = await self.guard.reserve(
            data.appointment_date,
            data.appointment_time,
            {
                "customer_id": customer_id,
                "vehicle_number": data.vehicle_number,
                "vehicle_type": data.vehicle_type,
                "service_type": data.service_type,
                "phone_number": phone_number,
                "status": status.value,
            },
        )

        logger.info(
            "appointment_created",
            appointment_id=appointment.id,
            customer_id=customer_id,
            date=appointment.appointment_date.isoformat(),
            slot=appointment.appointment_time,
        )
        return appointment

    async def get_appointment(self, appointment_id: int) -> AppointmentResponse:
        """
        Get appointment by ID.

        Raises:
            NotFoundException: If appointment not found
        """
        return await self.store.get(appointment_id)

    async def list_customer_appointments(self, customer_id: str) -> AppointmentListResponse:
        """List a customer's appointments, most recent first."""
        items = await self.store.list_by_customer(customer_id)
        return AppointmentListResponse(total=len(items), items=items)

    async def list_all_appointments(self) -> AppointmentListResponse:
        """List every appointment, most recent first."""
        items = await self.store.list_all()
        return AppointmentListResponse(total=len(items), items=items)

    async def update_appointment_status(
        self,
        appointment_id: int,
        status: str,
    ) -> StatusChangeResponse:
        """
        Update appointment status.

        Raises:
            NotFoundException: If appointment not found
            InvalidStatusException: If the status is not accepted
        """
        return await self.lifecycle.set_status(appointment_id, status)

    async def reschedule_appointment(
        self,
        appointment_id: int,
        data: AppointmentReschedule,
    ) -> RescheduleResponse:
        """
        Change an appointment's date, slot or details.

        Raises:
            NotFoundException: If appointment not found
            SlotTakenException: If the new slot is already booked
            InvalidStatusException: If the status is not accepted
        """
        return await self.rescheduler.reschedule(appointment_id, data)

    async def delete_appointment(self, appointment_id: int) -> None:
        """
        Permanently delete an appointment and release its slot.

        Raises:
            NotFoundException: If appointment not found
        """
        removed = await self.store.delete(appointment_id)

        if self.cache:
            self.cache.invalidate(removed.appointment_date)

        logger.info(
            "appointment_deleted",
            appointment_id=appointment_id,
            date=removed.appointment_date.isoformat(),
            slot=removed.appointment_time,
        )
