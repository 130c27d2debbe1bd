import logging

from flask import current_app
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from models import db
from models.booking import Booking, PENDING, PAYMENT_PENDING
from models.parking_area import ParkingArea
from reservations.errors import (
    ReservationError,
    ValidationError,
    ConcurrencyConflict,
    StoreUnavailable,
)
from reservations.lifecycle import CANCEL, next_status
from reservations.locks import area_locks, bound_row_lock_wait, is_lock_conflict
from reservations.scanner import find_area_by_name, find_free_slot
from reservations.validation import (
    validate_area_name,
    validate_window,
    normalize_vehicle_number,
    validate_amount,
)

logger = logging.getLogger(__name__)


def _lock_area_row(area_id: int):
    # FOR UPDATE serializes writers across processes on PostgreSQL;
    # the SQLite dialect drops the clause and the in-process lock covers it
    (
        db.session.query(ParkingArea.id)
        .filter(ParkingArea.id == area_id)
        .with_for_update()
        .first()
    )


def find_booking_by_id(booking_id: int):
    return db.session.get(Booking, booking_id)


def insert_booking(user_id, slot, start_time, end_time, vehicle_number, amount, payment_id=None) -> Booking:
    booking = Booking(
        user_id=user_id,
        slot_id=slot.id,
        start_time=start_time,
        end_time=end_time,
        vehicle_number=vehicle_number,
        amount=amount,
        payment_id=payment_id,
        payment_status=PAYMENT_PENDING,
        status=PENDING,
    )
    db.session.add(booking)
    db.session.flush()
    return booking


def delete_booking(booking: Booking):
    db.session.delete(booking)
    db.session.flush()


def create_booking(user_id, area_name, start_time, end_time, vehicle_number, amount, payment_id=None):
    """
    Reserve the lowest-numbered free slot of `area_name` for [start_time, end_time).

    Returns the new Booking, or None when the area has no free slot for the
    window. The scan and the insert run under the area's lock and commit before
    it is released, so two concurrent requests can never take the same slot
    for overlapping windows.
    """
    if not isinstance(user_id, int):
        raise ValidationError("user id is required")
    area_name = validate_area_name(area_name)
    start, end = validate_window(start_time, end_time)
    vehicle_number = normalize_vehicle_number(vehicle_number)
    amount = validate_amount(amount)
    if isinstance(payment_id, str):
        payment_id = payment_id.strip() or None
    else:
        payment_id = None

    timeout = current_app.config.get("BOOKING_LOCK_TIMEOUT_SECONDS", 5)

    try:
        area = find_area_by_name(area_name)
        with area_locks.hold(area.id, timeout):
            bound_row_lock_wait(timeout)
            _lock_area_row(area.id)
            slot = find_free_slot(area.id, start, end)
            if slot is None:
                db.session.rollback()
                return None

            booking = insert_booking(user_id, slot, start, end, vehicle_number, amount, payment_id)
            db.session.commit()
    except ReservationError:
        db.session.rollback()
        raise
    except OperationalError as exc:
        db.session.rollback()
        if is_lock_conflict(exc):
            logger.warning(f"Store reported a booking conflict in area {area_name}: {exc}")
            raise ConcurrencyConflict("Booking conflicted with a concurrent request") from exc
        logger.error(f"Store unavailable while booking in area {area_name}: {exc}")
        raise StoreUnavailable("Booking store unavailable") from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error(f"Booking insert failed in area {area_name}: {exc}")
        raise StoreUnavailable("Booking store unavailable") from exc

    logger.info(f"Booking {booking.id} created on slot {booking.slot_id} ({area_name}) for user {user_id}")
    return booking


def _field(payload: dict, *names):
    for name in names:
        if payload.get(name) is not None:
            return payload.get(name)
    return None


def book(user_id, payload: dict) -> dict:
    """API-facing booking call. Retries a lost area race a bounded number of times."""
    max_retries = current_app.config.get("BOOKING_MAX_RETRIES", 1)

    attempt = 0
    while True:
        try:
            booking = create_booking(
                user_id,
                _field(payload, "area", "area_name"),
                _field(payload, "start_time", "startTime"),
                _field(payload, "end_time", "endTime"),
                _field(payload, "vehicle_number", "vehicleNumber"),
                _field(payload, "amount"),
                _field(payload, "payment_id", "paymentId"),
            )
            break
        except ConcurrencyConflict:
            if attempt >= max_retries:
                raise
            attempt += 1
            logger.info(f"Retrying booking for user {user_id} after conflict (attempt {attempt})")

    if booking is None:
        return {"status": "unavailable"}

    return {
        "status": "booked",
        "booking_id": booking.id,
        "slot_id": booking.slot_id,
        "slot_number": booking.slot_number,
        "area": booking.area_name,
        "city": booking.city,
        "booking": booking.to_ticket(),
    }


def _locked_booking_or_none(booking_id: int):
    return (
        Booking.query
        .filter(Booking.id == booking_id)
        .populate_existing()
        .with_for_update()
        .first()
    )


def cancel_booking(booking_id: int) -> bool:
    """
    Hard-delete a PENDING or CONFIRMED booking. False when it does not exist.
    Bookings that are ACTIVE, COMPLETED or CANCELLED raise InvalidTransition
    and stay in place.
    """
    timeout = current_app.config.get("BOOKING_LOCK_TIMEOUT_SECONDS", 5)
    try:
        bound_row_lock_wait(timeout)
        booking = _locked_booking_or_none(booking_id)
        if not booking:
            db.session.rollback()
            return False
        next_status(booking.status, CANCEL)
        delete_booking(booking)
        db.session.commit()
    except ReservationError:
        db.session.rollback()
        raise
    except OperationalError as exc:
        db.session.rollback()
        if is_lock_conflict(exc):
            raise ConcurrencyConflict("Booking is being changed by another request") from exc
        logger.error(f"Deleting booking {booking_id} failed: {exc}")
        raise StoreUnavailable("Booking store unavailable") from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error(f"Deleting booking {booking_id} failed: {exc}")
        raise StoreUnavailable("Booking store unavailable") from exc

    logger.info(f"Booking {booking_id} deleted")
    return True
