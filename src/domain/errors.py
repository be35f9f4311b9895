"""
Typed failures raised by the admission services and the status worker.

Each error carries the HTTP status the API layer answers with, so route
handlers never translate them by hand.
"""


class DomainError(Exception):
    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    @property
    def code(self) -> str:
        return type(self).__name__


class NotFound(DomainError):
    status_code = 404


class TripNotBookable(DomainError):
    """Trip is no longer ``scheduled``."""

    status_code = 409


class NoAvailableSeats(DomainError):
    status_code = 409


class TripNotCompleted(DomainError):
    status_code = 409


class UserNotPassenger(DomainError):
    status_code = 403


class ReviewAlreadyPresent(DomainError):
    status_code = 409


class StorageUnavailable(DomainError):
    """Transient failure talking to the database or Redis."""

    status_code = 503
