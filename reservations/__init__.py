from .errors import (
    ReservationError,
    ValidationError,
    AreaNotFound,
    BookingNotFound,
    ConcurrencyConflict,
    InvalidTransition,
    StoreUnavailable,
)
from .overlap import overlaps, overlap_filter
from .scanner import find_free_slot, candidate_slots
from .transactions import create_booking, book, cancel_booking
from .lifecycle import (
    transition,
    confirm_payment,
    mark_payment_failed,
    record_entry,
    record_exit,
    cancel_reservation,
)
