# Domain errors raised by CRUD/service code, translated to HTTP by the routers


class ReliefError(Exception):
    """Base class. `status_code` is the HTTP status the router should answer with."""

    status_code = 400

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(ReliefError):
    """Bad input shape or range (seat count, un-geocoded location, duplicate join...)."""

    status_code = 400


class NotFoundError(ReliefError):
    """Unknown carpool or user id."""

    status_code = 404


class CapacityError(ReliefError):
    """Carpool has no free seat."""

    status_code = 409


class AuthorizationError(ReliefError):
    """Caller is not allowed to act on the record."""

    status_code = 403
