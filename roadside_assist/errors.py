class AppError(Exception):
    """Base for errors the API maps onto an HTTP status."""

    status_code = 500
    message = "Internal Server Error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class ValidationError(AppError):
    status_code = 400
    message = "Invalid request"


class InvalidStatus(ValidationError):
    message = "Invalid status"


class InvalidTransition(ValidationError):
    message = "Status transition not allowed"


class InvalidCoordinate(ValidationError):
    message = "Invalid coordinate"


class Unauthenticated(AppError):
    status_code = 401
    message = "Unauthorized"


class Forbidden(AppError):
    status_code = 403
    message = "Forbidden"


class NotFound(AppError):
    status_code = 404
    message = "Not found"


class Conflict(AppError):
    status_code = 409
    message = "Conflict"


class ConstraintViolation(Conflict):
    message = "Record conflicts with existing data"
