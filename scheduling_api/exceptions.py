"""Domain errors raised by the scheduling services.

Each kind carries a stable ``code`` and the HTTP status the API layer maps it
to, so routers never have to translate them one by one.
"""
from typing import Optional


class SchedulingError(Exception):
    code = "scheduling_error"
    status_code = 500

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class NotFoundError(SchedulingError):
    code = "not_found"
    status_code = 404


class ValidationError(SchedulingError):
    code = "validation_error"
    status_code = 400


class ConflictError(SchedulingError):
    code = "conflict"
    status_code = 409


class StoreError(SchedulingError):
    code = "store_error"
    status_code = 500
