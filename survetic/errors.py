"""Service error taxonomy.

Services raise these; ``survetic.main`` renders every one of them as a JSON
body ``{"message": ...}`` with the class's HTTP status.
"""


class SurveticError(RuntimeError):
    """Base class for errors that map onto an HTTP status."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(SurveticError):
    """Malformed or missing input."""

    status_code = 400
    default_message = "Invalid request"


class AlreadyVerifiedError(ValidationError):
    """Verification requested for an account that is already verified."""

    default_message = "User is already verified"


class ConflictError(SurveticError):
    """The resource would collide with an existing one (duplicate email)."""

    status_code = 409
    default_message = "User already exists with this email"


class UnauthorizedError(SurveticError):
    """Missing, invalid or expired credential."""

    status_code = 401
    default_message = "Unauthorized"


class EmailNotVerifiedError(UnauthorizedError):
    """Correct credentials for an account whose email is not verified yet."""

    default_message = "Please verify your email before logging in"


class ForbiddenError(SurveticError):
    """Authenticated, but not allowed to perform the operation."""

    status_code = 403
    default_message = "Admin access required"


class NotFoundError(SurveticError):
    """Absent, or deliberately hidden from the caller."""

    status_code = 404
    default_message = "Not found"


class InternalError(SurveticError):
    """Unexpected store or dependency failure."""
