"""Custom application exceptions."""


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, status_code: int = 500):
        """Initialize exception with message and status code."""
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class NotFoundException(AppException):
    """Resource not found exception."""

    def __init__(self, message: str = "Resource not found"):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404)


class UnauthorizedException(AppException):
    """Unauthorized access exception."""

    def __init__(self, message: str = "Unauthorized"):
        """Initialize with 401 status code."""
        super().__init__(message, status_code=401)


class ForbiddenException(AppException):
    """Forbidden access exception."""

    def __init__(self, message: str = "Forbidden"):
        """Initialize with 403 status code."""
        super().__init__(message, status_code=403)


class BadRequestException(AppException):
    """Bad request exception."""

    def __init__(self, message: str = "Bad request"):
        """Initialize with 400 status code."""
        super().__init__(message, status_code=400)


class InvalidDateException(AppException):
    """Appointment date is unparseable or in the past."""

    def __init__(self, message: str = "Invalid date"):
        """Initialize with 400 status code."""
        super().__init__(message, status_code=400)


class InvalidSlotException(AppException):
    """Time slot is not part of the slot catalog."""

    def __init__(self, message: str = "Invalid time slot"):
        """Initialize with 400 status code."""
        super().__init__(message, status_code=400)


class SlotTakenException(AppException):
    """The (date, slot) pair is already held by another appointment."""

    def __init__(
        self,
        message: str = "This time slot is already booked. Please select a different time.",
    ):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409)


class InvalidStatusException(AppException):
    """Status value is outside the accepted set."""

    def __init__(self, message: str = "Invalid status"):
        """Initialize with 422 status code."""
        super().__init__(message, status_code=422)


class StorageFaultException(AppException):
    """Unexpected storage failure (connectivity, corruption)."""

    def __init__(self, message: str = "Storage unavailable"):
        """Initialize with 503 status code."""
        super().__init__(message, status_code=503)
