"""Appointment schemas for request/response validation."""

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    PENDING = "Pending"
    CONFIRMED = "Confirmed"


def _validate_phone(v: str | None) -> str | None:
    if v is None:
        return v
    # Remove common separators
    cleaned = v.replace("-", "").replace(" ", "").replace("(", "").replace(")", "").replace("+", "")
    if not cleaned.isdigit():
        raise ValueError("Phone number must contain only digits and separators")
    if len(cleaned) < 7:
        raise ValueError("Phone number must have at least 7 digits")
    return v


class AppointmentCreate(BaseModel):
    """
    Schema for booking a new appointment.

    Date, slot and status arrive as raw strings; the scheduler validates
    them so that each failure maps to its own error type.
    """

    vehicle_number: str = Field(..., min_length=1, max_length=50)
    vehicle_type: str = Field(..., min_length=1, max_length=100)
    service_type: str = Field(..., min_length=1, max_length=200)
    phone_number: str | None = Field(None, min_length=7, max_length=20)
    appointment_date: str = Field(..., description="YYYY-MM-DD")
    appointment_time: str = Field(..., description="HH:MM, one of the catalog slots")
    status: str | None = Field(None, description="Defaults to Pending")

    @field_validator("phone_number")
    @classmethod
    def validate_phone(cls, v: str | None) -> str | None:
        """Validate phone number format."""
        return _validate_phone(v)


class AppointmentReschedule(BaseModel):
    """
    Patch for changing an existing appointment.

    Every field is optional; an omitted field keeps the stored value.
    """

    vehicle_number: str | None = Field(None, min_length=1, max_length=50)
    vehicle_type: str | None = Field(None, min_length=1, max_length=100)
    service_type: str | None = Field(None, min_length=1, max_length=200)
    phone_number: str | None = Field(None, min_length=7, max_length=20)
    appointment_date: str | None = Field(None, description="YYYY-MM-DD")
    appointment_time: str | None = Field(None, description="HH:MM")
    status: str | None = None

    @field_validator("phone_number")
    @classmethod
    def validate_phone(cls, v: str | None) -> str | None:
        """Validate phone number format."""
        return _validate_phone(v)


class AppointmentStatusUpdate(BaseModel):
    """Schema for updating appointment status."""

    status: str


class AppointmentResponse(BaseModel):
    """Schema for appointment response."""

    id: int
    customer_id: str
    vehicle_number: str
    vehicle_type: str
    service_type: str
    phone_number: str
    appointment_date: date
    appointment_time: str
    status: AppointmentStatus
    status_updated_at: datetime
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AppointmentListResponse(BaseModel):
    """Schema for appointment list response, most recent first."""

    total: int
    items: list[AppointmentResponse]


class AvailableSlotsResponse(BaseModel):
    """Free slots for a date, in day order."""

    date: date
    available_slots: list[str]


class SlotBoardEntry(BaseModel):
    """One catalog slot with its availability."""

    slot: str
    label: str
    available: bool


class SlotBoardResponse(BaseModel):
    """Every catalog slot for a date, marked available or booked."""

    date: date
    slots: list[SlotBoardEntry]


class StatusChangeResponse(BaseModel):
    """Result of a status update."""

    appointment_id: int
    previous: AppointmentStatus
    new: AppointmentStatus
    status_updated_at: datetime


class SlotInfo(BaseModel):
    """A (date, slot) reservation."""

    appointment_date: date
    appointment_time: str


class RescheduleResponse(BaseModel):
    """Result of a reschedule, with where the appointment moved from and to."""

    previous: SlotInfo
    new: SlotInfo
    appointment: AppointmentResponse
