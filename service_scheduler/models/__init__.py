"""Database models."""

from service_scheduler.models.appointments import appointments, metadata

__all__ = [
    "appointments",
    "metadata",
]
