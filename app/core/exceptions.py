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


class ConflictException(AppException):
    """Conflict exception."""

    def __init__(self, message: str = "Conflict"):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409)


class ValidationException(AppException):
    """Validation error exception."""

    def __init__(self, message: str = "Validation error"):
        """Initialize with 422 status code."""
        super().__init__(message, status_code=422)


class RateLimitException(AppException):
    """Rate limit exceeded exception."""

    def __init__(self, message: str = "Rate limit exceeded"):
        """Initialize with 429 status code."""
        super().__init__(message, status_code=429)


class StorageException(AppException):
    """Persistence layer failure not attributable to caller input."""

    def __init__(self, message: str = "Storage operation failed"):
        """Initialize with 503 status code."""
        super().__init__(message, status_code=503)


# Scheduling and queue errors


class PatientNotFoundException(NotFoundException):
    """Referenced patient does not exist."""

    def __init__(self, patient_id: int | None = None):
        """Initialize with the missing patient ID."""
        if patient_id is None:
            super().__init__("Patient not found")
        else:
            super().__init__(f"Patient with ID {patient_id} not found")


class InvalidInputException(BadRequestException):
    """Malformed scheduling input."""


class InvalidTimeFormatException(InvalidInputException):
    """Time string is neither HH:MM nor HH:MM AM|PM."""

    def __init__(self, value: str):
        """Initialize with the rejected time string."""
        super().__init__(f"Invalid time format '{value}'. Use HH:MM or HH:MM AM/PM")


class InvalidDateTimeException(InvalidInputException):
    """Date is malformed or names a calendar day that does not exist."""

    def __init__(self, value: str):
        """Initialize with the rejected date string."""
        super().__init__(f"Invalid date '{value}'. Use an existing YYYY-MM-DD date")


class SlotConflictException(ConflictException):
    """Doctor already has a scheduled appointment at this time."""

    def __init__(self, message: str = "This time slot is already booked"):
        """Initialize with 409 status code."""
        super().__init__(message)


class InvalidStatusTransitionException(ConflictException):
    """Requested status change is not allowed from the current status."""

    def __init__(self, current: str, target: str):
        """Initialize with the rejected transition."""
        self.current = current
        self.target = target
        super().__init__(f"Cannot change status from '{current}' to '{target}'")


class AlreadyInTerminalStateException(BadRequestException):
    """Entity is in a final state and cannot be changed this way."""


class AlreadyCancelledException(AlreadyInTerminalStateException):
    """Appointment is already cancelled."""

    def __init__(self, message: str = "Appointment is already cancelled"):
        """Initialize with 400 status code."""
        super().__init__(message)


class CannotRescheduleCancelledException(AlreadyInTerminalStateException):
    """Cancelled appointments cannot be moved."""

    def __init__(self, message: str = "Cannot reschedule a cancelled appointment"):
        """Initialize with 400 status code."""
        super().__init__(message)
