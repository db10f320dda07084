class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class AuthorizationError(DomainError):
    """Raised when an actor lacks permission for an action."""


class NotFoundError(DomainError):
    """Raised when a referenced record does not exist."""


class NoScheduleAssigned(NotFoundError):
    """No schedule assignment covers the requested date."""


class AlreadyClockedIn(ValidationError):
    pass


class NoActiveSession(ValidationError):
    pass


class NoActiveBreak(ValidationError):
    pass


class BreakAlreadyActive(ValidationError):
    pass


class TimestampBeforeClockIn(ValidationError):
    pass


class InvalidAmount(ValidationError):
    pass


class DuplicateReference(ValidationError):
    """A transaction for the same originating cause is already approved."""


class NotCurrentApprover(AuthorizationError):
    """The approver's role does not match the request's current step."""


class AlreadyResolved(ValidationError):
    """The record is already in a terminal state."""


class MaterializationError(DomainError):
    """Applying an approved edit request failed and was rolled back.

    The request stays under review; repeating the same decision is safe.
    """

    def __init__(self, request_id: int, detail: str):
        super().__init__(f"Could not apply edit request #{request_id}: {detail}")
        self.request_id = request_id
        self.detail = detail
