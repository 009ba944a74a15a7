class SchedulingError(Exception):
    """
    Base error raised by the dashboard services.
    Carries a machine-readable code, the HTTP status the API answers with
    and optionally the name of the offending input field.
    """

    code = "ERROR"
    status = 400

    def __init__(self, message: str, field: str = None):
        super().__init__(message)
        self.message = message
        self.field = field

    def as_dict(self) -> dict:
        error = {"code": self.code, "message": self.message}
        if self.field:
            error["details"] = {"field": self.field}
        return {"error": error}


class AppointmentValidationError(SchedulingError):
    code = "VALIDATION_ERROR"
    status = 400


class NotFoundError(SchedulingError):
    code = "NOT_FOUND"
    status = 404


class ConflictError(SchedulingError):
    code = "CONFLICT"
    status = 409
