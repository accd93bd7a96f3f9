"""Appointment endpoints."""

from fastapi import APIRouter, status

from service_scheduler.core.exceptions import ForbiddenException
from service_scheduler.dependencies import Admin, Appointments, CurrentUser, Customer, Staff
from service_scheduler.schemas.appointments import (
    AppointmentCreate,
    AppointmentListResponse,
    AppointmentReschedule,
    AppointmentResponse,
    AppointmentStatusUpdate,
    AvailableSlotsResponse,
    RescheduleResponse,
    SlotBoardResponse,
    StatusChangeResponse,
)

router = APIRouter()


@router.post(
    "/",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Appointments"],
    summary="Book an appointment",
)
async def create_appointment(
    data: AppointmentCreate,
    current_user: Customer,
    service: Appointments,
) -> AppointmentResponse:
    """
    Book an appointment for the authenticated customer.

    The phone number falls back to the customer's profile phone when omitted.
    A 409 response means the slot was taken; re-query availability and retry.
    """
    return await service.create_appointment(current_user.id, data, current_user.phone_number)


@router.get(
    "/",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="List all appointments",
)
async def list_appointments(
    current_user: Staff,
    service: Appointments,
) -> AppointmentListResponse:
    """List every appointment, most recent first. Staff only."""
    return await service.list_all_appointments()


@router.get(
    "/available-slots/{date}",
    response_model=AvailableSlotsResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Available time slots for a date",
)
async def get_available_slots(
    date: str,
    current_user: CurrentUser,
    service: Appointments,
) -> AvailableSlotsResponse:
    """
    Get the free slots for a date, in day order.

    For today, slots that have already started are left out.
    """
    day, slots = await service.availability.available_slots(date)
    return AvailableSlotsResponse(date=day, available_slots=[slot.value for slot in slots])


@router.get(
    "/slot-board/{date}",
    response_model=SlotBoardResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="All time slots for a date with availability",
)
async def get_slot_board(
    date: str,
    current_user: CurrentUser,
    service: Appointments,
) -> SlotBoardResponse:
    """Get every catalog slot for a date with its label and availability."""
    day, entries = await service.availability.slot_board(date)
    return SlotBoardResponse(date=day, slots=entries)


@router.get(
    "/customer/{customer_id}",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="List a customer's appointments",
)
async def list_customer_appointments(
    customer_id: str,
    current_user: CurrentUser,
    service: Appointments,
) -> AppointmentListResponse:
    """
    List a customer's appointments, most recent first.

    Customers may only list their own appointments.
    """
    if not current_user.is_staff and current_user.id != customer_id:
        raise ForbiddenException("Access denied to these appointments")
    return await service.list_customer_appointments(customer_id)


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Get appointment by ID",
)
async def get_appointment(
    appointment_id: int,
    current_user: CurrentUser,
    service: Appointments,
) -> AppointmentResponse:
    """Get a specific appointment. Customers may only read their own."""
    appointment = await service.get_appointment(appointment_id)
    if not current_user.is_staff and appointment.customer_id != current_user.id:
        raise ForbiddenException("Access denied to this appointment")
    return appointment


@router.patch(
    "/{appointment_id}/status",
    response_model=StatusChangeResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Update appointment status",
)
async def update_appointment_status(
    appointment_id: int,
    data: AppointmentStatusUpdate,
    current_user: Staff,
    service: Appointments,
) -> StatusChangeResponse:
    """Set an appointment's status to Pending or Confirmed. Staff only."""
    return await service.update_appointment_status(appointment_id, data.status)


@router.patch(
    "/{appointment_id}",
    response_model=RescheduleResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Reschedule or edit appointment",
)
async def reschedule_appointment(
    appointment_id: int,
    data: AppointmentReschedule,
    current_user: Staff,
    service: Appointments,
) -> RescheduleResponse:
    """
    Change an appointment's date, slot, details or status. Staff only.

    Omitted fields keep their current value.
    """
    return await service.reschedule_appointment(appointment_id, data)


@router.delete(
    "/{appointment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Appointments"],
    summary="Delete appointment",
)
async def delete_appointment(
    appointment_id: int,
    current_user: Admin,
    service: Appointments,
) -> None:
    """Permanently delete an appointment, freeing its slot. Admin only."""
    await service.delete_appointment(appointment_id)
