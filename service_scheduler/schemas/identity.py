"""Identity claims consumed from the identity service."""

from enum import Enum

from pydantic import BaseModel


class UserRole(str, Enum):
    """Roles carried in access tokens."""

    CUSTOMER = "customer"
    TECHNICIAN = "technician"
    ADMIN = "admin"


class CurrentIdentity(BaseModel):
    """Authenticated caller."""

    id: str
    role: UserRole
    phone_number: str | None = None

    @property
    def is_staff(self) -> bool:
        """Technicians and admins."""
        return self.role in (UserRole.TECHNICIAN, UserRole.ADMIN)
