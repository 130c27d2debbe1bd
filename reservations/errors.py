class ReservationError(Exception):
    """Base for booking failures that map onto an HTTP response."""

    status_code = 500

    def __init__(self, message: str = None):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


class ValidationError(ReservationError):
    """Malformed input. Raised before any store access."""

    status_code = 400


class AreaNotFound(ReservationError):
    status_code = 404


class BookingNotFound(ReservationError):
    status_code = 404


class ConcurrencyConflict(ReservationError):
    """The atomic reserve could not be completed because another request held the area."""

    status_code = 409


class InvalidTransition(ReservationError):
    status_code = 409


class StoreUnavailable(ReservationError):
    status_code = 503
