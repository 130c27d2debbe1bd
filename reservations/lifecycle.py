"""
Booking lifecycle.

    PENDING --confirm--> CONFIRMED --enter--> ACTIVE --exit--> COMPLETED
    PENDING/CONFIRMED --cancel--> CANCELLED

COMPLETED and CANCELLED are terminal. A rejected transition leaves the
booking untouched.
"""
import logging

from flask import current_app
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from models import db
from models.booking import (
    Booking,
    PENDING,
    CONFIRMED,
    ACTIVE,
    COMPLETED,
    CANCELLED,
    PAYMENT_PAID,
    PAYMENT_FAILED,
)
from reservations.errors import (
    ReservationError,
    ValidationError,
    BookingNotFound,
    InvalidTransition,
    ConcurrencyConflict,
    StoreUnavailable,
)
from reservations.locks import bound_row_lock_wait, is_lock_conflict

logger = logging.getLogger(__name__)

CONFIRM = "confirm"
ENTER = "enter"
EXIT = "exit"
CANCEL = "cancel"

TRANSITIONS = {
    (PENDING, CONFIRM): CONFIRMED,
    (CONFIRMED, ENTER): ACTIVE,
    (ACTIVE, EXIT): COMPLETED,
    (PENDING, CANCEL): CANCELLED,
    (CONFIRMED, CANCEL): CANCELLED,
}

TERMINAL_STATES = {COMPLETED, CANCELLED}


def next_status(current: str, event: str) -> str:
    target = TRANSITIONS.get((current, event))
    if target is None:
        if current in TERMINAL_STATES:
            raise InvalidTransition(f"Booking is {current}; no further changes allowed")
        raise InvalidTransition(f"Cannot {event} a booking that is {current}")
    return target


def transition(booking: Booking, event: str) -> Booking:
    booking.status = next_status(booking.status, event)
    return booking


def _locked_booking(booking_id: int) -> Booking:
    bound_row_lock_wait(current_app.config.get("BOOKING_LOCK_TIMEOUT_SECONDS", 5))
    booking = (
        Booking.query
        .filter(Booking.id == booking_id)
        .populate_existing()
        .with_for_update()
        .first()
    )
    if not booking:
        raise BookingNotFound(f"Booking {booking_id} not found")
    return booking


def _apply(booking_id: int, mutate) -> Booking:
    try:
        booking = _locked_booking(booking_id)
        mutate(booking)
        db.session.commit()
    except ReservationError:
        db.session.rollback()
        raise
    except OperationalError as exc:
        db.session.rollback()
        if is_lock_conflict(exc):
            raise ConcurrencyConflict("Booking is being changed by another request") from exc
        logger.error(f"Updating booking {booking_id} failed: {exc}")
        raise StoreUnavailable("Booking store unavailable") from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error(f"Updating booking {booking_id} failed: {exc}")
        raise StoreUnavailable("Booking store unavailable") from exc
    return booking


def confirm_payment(booking_id: int, payment_reference: str) -> Booking:
    """
    Record a verified payment and move the booking to CONFIRMED.
    Delivering the same reference again for a confirmed booking changes nothing.
    """
    reference = (payment_reference or "").strip() if isinstance(payment_reference, str) else ""
    if not reference:
        raise ValidationError("payment reference is required")

    def mutate(booking):
        if booking.payment_status == PAYMENT_PAID and booking.payment_id == reference:
            return
        transition(booking, CONFIRM)
        booking.payment_id = reference
        booking.payment_status = PAYMENT_PAID

    booking = _apply(booking_id, mutate)
    logger.info(f"Booking {booking_id} paid ({reference})")
    return booking


def mark_payment_failed(booking_id: int) -> Booking:
    def mutate(booking):
        if booking.status != PENDING:
            raise InvalidTransition(f"Cannot fail payment of a booking that is {booking.status}")
        booking.payment_status = PAYMENT_FAILED

    return _apply(booking_id, mutate)


def record_entry(booking_id: int) -> Booking:
    return _apply(booking_id, lambda b: transition(b, ENTER))


def record_exit(booking_id: int) -> Booking:
    return _apply(booking_id, lambda b: transition(b, EXIT))


def cancel_reservation(booking_id: int) -> Booking:
    """Cancel but keep the row as history; its window becomes bookable again."""
    return _apply(booking_id, lambda b: transition(b, CANCEL))
