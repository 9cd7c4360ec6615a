class DomainError(Exception):
    """Base exception for business rule violations.

    Every subclass carries a stable ``code`` that the HTTP layer returns to callers.
    """

    code = "internal"


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    code = "invalid-argument"


class TokenFormatError(ValidationError):
    """Raised when a scanned token does not have the participant|event|checksum shape."""


class NotFoundError(DomainError):
    """Raised when a record, participant or event does not exist."""

    code = "not-found"


class AlreadyExistsError(DomainError):
    """Raised when the target state has already been reached (checked out, voided)."""

    code = "already-exists"


class FailedPreconditionError(DomainError):
    """Raised when a record is not in the state an operation requires."""

    code = "failed-precondition"


class AuthenticationError(DomainError):
    """Raised when login credentials are invalid or no actor is present."""

    code = "unauthenticated"


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    code = "permission-denied"


class InternalError(DomainError):
    """Raised when the store fails unexpectedly."""

    code = "internal"
