"""
Business-rule failures raised by the booking and notification services.

Routes never catch these individually: the app registers one error handler
for ``BookingError`` that renders ``to_dict()`` with ``status_code``.
Persistence failures are not wrapped and surface as 500s.
"""


class BookingError(Exception):
    status_code = 400

    def __init__(self, reason: str, details=None):
        super().__init__(reason)
        self.reason = reason
        self.details = list(details or [])

    def to_dict(self) -> dict:
        out = {"error": self.reason}
        if self.details:
            out["details"] = self.details
        return out


class ValidationError(BookingError):
    status_code = 400


class ConflictError(BookingError):
    status_code = 409

    def __init__(self, reason: str, conflicts=None):
        super().__init__(reason)
        self.conflicts = list(conflicts or [])

    def to_dict(self) -> dict:
        out = super().to_dict()
        out["conflicts"] = self.conflicts
        return out


class NotFoundError(BookingError):
    status_code = 404


class AuthorizationError(BookingError):
    status_code = 403


class StateError(BookingError):
    status_code = 400
