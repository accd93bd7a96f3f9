"""FastAPI dependencies."""

from collections.abc import Awaitable, Callable
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from service_scheduler.core.clock import Clock, get_clock
from service_scheduler.core.exceptions import ForbiddenException
from service_scheduler.core.redis_client import BookedSlotCache, get_booked_slot_cache
from service_scheduler.core.security import decode_access_token
from service_scheduler.database import get_db
from service_scheduler.schemas.identity import CurrentIdentity, UserRole
from service_scheduler.services.appointment_service import AppointmentService

# Security
security = HTTPBearer(auto_error=False)


def _credentials_error(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> CurrentIdentity:
    """
    Build the caller's identity from a JWT access token.

    Args:
        credentials: Bearer token credentials

    Returns:
        Identity with id, role and optional profile phone

    Raises:
        HTTPException: If the token is missing, invalid or expired
    """
    if credentials is None:
        raise _credentials_error("Not authenticated")

    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise _credentials_error()

    user_id = payload.get("sub")
    if user_id is None or not isinstance(user_id, str):
        raise _credentials_error()

    try:
        return CurrentIdentity(
            id=user_id,
            role=payload.get("role", UserRole.CUSTOMER.value),
            phone_number=payload.get("phone_number"),
        )
    except ValidationError:
        raise _credentials_error("Unknown role in token") from None


def require_roles(*roles: UserRole) -> Callable[..., Awaitable[CurrentIdentity]]:
    """
    Dependency factory restricting an endpoint to the given roles.

    Args:
        roles: Roles allowed to call the endpoint

    Returns:
        Dependency yielding the current identity
    """

    async def dependency(
        current_user: Annotated[CurrentIdentity, Depends(get_current_user)],
    ) -> CurrentIdentity:
        if current_user.role not in roles:
            allowed = ", ".join(role.value for role in roles)
            raise ForbiddenException(f"Forbidden: only {allowed} may perform this action")
        return current_user

    return dependency


async def get_appointment_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    clock: Annotated[Clock, Depends(get_clock)],
    cache: Annotated[BookedSlotCache | None, Depends(get_booked_slot_cache)],
) -> AppointmentService:
    """Build the appointment service for a request."""
    return AppointmentService(db, clock, cache)


# Type aliases for dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
CurrentUser = Annotated[CurrentIdentity, Depends(get_current_user)]
Customer = Annotated[CurrentIdentity, Depends(require_roles(UserRole.CUSTOMER))]
Staff = Annotated[CurrentIdentity, Depends(require_roles(UserRole.TECHNICIAN, UserRole.ADMIN))]
Admin = Annotated[CurrentIdentity, Depends(require_roles(UserRole.ADMIN))]
Appointments = Annotated[AppointmentService, Depends(get_appointment_service)]
