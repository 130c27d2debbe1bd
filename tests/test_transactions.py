import random
import unittest
from datetime import timedelta
from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from models import db
from models.booking import Booking, PENDING, PAYMENT_PENDING
from reservations import transactions
from reservations.errors import (
    AreaNotFound,
    ConcurrencyConflict,
    InvalidTransition,
    StoreUnavailable,
    ValidationError,
)
from reservations.integrity import find_double_bookings
from reservations.lifecycle import cancel_reservation, confirm_payment, record_entry, record_exit
from reservations.overlap import overlaps
from reservations.transactions import book, cancel_booking, create_booking
from tests.base import AppTestCase, at


class TestCreateBooking(AppTestCase):
    def setUp(self):
        super().setUp()
        self.user = self.make_user()
        self.area = self.make_area("A1", slots=2)

    def reserve(self, start, end, area="A1", **kwargs):
        return create_booking(self.user.id, area, start, end, kwargs.get("vehicle", "KA01AB1234"), kwargs.get("amount", 5000))

    def test_end_to_end_example(self):
        """Slot 1 holds [10:00, 11:00); a request for [10:30, 11:30) lands on slot 2."""
        first = self.reserve(at(10), at(11))
        self.assertEqual(first.slot_number, 1)

        second = self.reserve(at(10, 30), at(11, 30))
        self.assertEqual(second.slot_number, 2)
        self.assertEqual(second.area_name, "A1")
        self.assertEqual(second.city, "Bengaluru")
        self.assertEqual(second.status, PENDING)
        self.assertEqual(second.payment_status, PAYMENT_PENDING)
        self.assertIsNone(second.payment_id)

    def test_back_to_back_on_same_slot(self):
        a = self.reserve(at(10), at(11))
        b = self.reserve(at(11), at(12))
        self.assertEqual(a.slot_id, b.slot_id)

    def test_first_fit_determinism(self):
        area = self.make_area("B1", slots=3)
        slots = area.slots.all()
        self.add_booking(self.user, slots[0], at(9), at(12))
        booking = self.reserve(at(10), at(11), area="B1")
        self.assertEqual(booking.slot_id, slots[1].id)

    def test_no_availability_is_a_normal_result(self):
        self.reserve(at(10), at(11))
        self.reserve(at(10), at(11))
        self.assertIsNone(self.reserve(at(10, 15), at(10, 45)))
        self.assertEqual(Booking.query.count(), 2)

    def test_payment_reference_and_normalized_vehicle_are_stored(self):
        booking = create_booking(self.user.id, " A1 ", "2030-01-01T10:00:00Z", "2030-01-01T11:00:00Z",
                                 "ka-01-ab-1234", "5000", payment_id=" pay_123 ")
        self.assertEqual(booking.vehicle_number, "KA01AB1234")
        self.assertEqual(booking.amount, 5000)
        self.assertEqual(booking.payment_id, "pay_123")

    def test_validation_happens_before_store_access(self):
        with patch.object(transactions, "find_area_by_name") as lookup:
            with self.assertRaises(ValidationError):
                self.reserve(at(11), at(10))
            with self.assertRaises(ValidationError):
                self.reserve(at(10), at(11), vehicle="???")
            with self.assertRaises(ValidationError):
                self.reserve(at(10), at(11), amount=0)
            with self.assertRaises(ValidationError):
                self.reserve(at(10), at(11), area="")
            lookup.assert_not_called()

    def test_unknown_area(self):
        with self.assertRaises(AreaNotFound):
            self.reserve(at(10), at(11), area="Z9")

    def test_store_failure_leaves_nothing_behind(self):
        def broken_insert(*args, **kwargs):
            booking = transactions.Booking(
                user_id=self.user.id, slot_id=args[1].id, start_time=args[2], end_time=args[3],
                vehicle_number=args[4], amount=args[5],
            )
            db.session.add(booking)
            db.session.flush()
            raise OperationalError("INSERT INTO bookings", {}, Exception("disk I/O error"))

        with patch.object(transactions, "insert_booking", side_effect=broken_insert):
            with self.assertRaises(StoreUnavailable):
                self.reserve(at(10), at(11))
        self.assertEqual(Booking.query.count(), 0)

    def test_store_deadlock_maps_to_concurrency_conflict(self):
        error = OperationalError("INSERT INTO bookings", {}, Exception("deadlock detected"))
        with patch.object(transactions, "insert_booking", side_effect=error):
            with self.assertRaises(ConcurrencyConflict):
                self.reserve(at(10), at(11))

    def test_area_row_lock_timeout_maps_to_concurrency_conflict(self):
        error = OperationalError("SELECT parking_areas FOR UPDATE", {}, Exception("canceling statement due to lock timeout"))
        with patch.object(transactions, "_lock_area_row", side_effect=error):
            with self.assertRaises(ConcurrencyConflict):
                self.reserve(at(10), at(11))
        self.assertEqual(Booking.query.count(), 0)

    def test_cancellation_frees_capacity(self):
        area = self.make_area("C1", slots=1)
        first = self.reserve(at(10), at(11), area="C1")
        booking_id, slot_id = first.id, first.slot_id
        self.assertIsNone(self.reserve(at(10), at(11), area="C1"))

        self.assertTrue(cancel_booking(booking_id))
        self.assertIsNone(db.session.get(Booking, booking_id))

        again = self.reserve(at(10), at(11), area="C1")
        self.assertEqual(again.slot_id, slot_id)
        self.assertEqual(area.slots.count(), 1)

    def test_cancelled_status_also_frees_capacity(self):
        self.make_area("C2", slots=1)
        first = self.reserve(at(10), at(11), area="C2")
        cancel_reservation(first.id)
        self.assertIsNotNone(self.reserve(at(10), at(11), area="C2"))

    def test_cancel_missing_booking(self):
        self.assertFalse(cancel_booking(424242))

    def test_confirmed_booking_can_be_deleted(self):
        booking_id = self.reserve(at(10), at(11)).id
        confirm_payment(booking_id, "pi_1")
        self.assertTrue(cancel_booking(booking_id))
        self.assertIsNone(db.session.get(Booking, booking_id))

    def test_active_booking_cannot_be_deleted(self):
        self.make_area("C3", slots=1)
        booking_id = self.reserve(at(10), at(11), area="C3").id
        confirm_payment(booking_id, "pi_1")
        record_entry(booking_id)

        with self.assertRaises(InvalidTransition):
            cancel_booking(booking_id)
        self.assertEqual(db.session.get(Booking, booking_id).status, "ACTIVE")
        # the parked car still holds the slot
        self.assertIsNone(self.reserve(at(10), at(11), area="C3"))

    def test_terminal_bookings_cannot_be_deleted(self):
        completed = self.reserve(at(10), at(11)).id
        confirm_payment(completed, "pi_1")
        record_entry(completed)
        record_exit(completed)
        cancelled = self.reserve(at(12), at(13)).id
        cancel_reservation(cancelled)

        for booking_id in (completed, cancelled):
            with self.assertRaises(InvalidTransition):
                cancel_booking(booking_id)
            self.assertIsNotNone(db.session.get(Booking, booking_id))

    def test_row_lock_timeout_on_delete_is_a_conflict(self):
        booking_id = self.reserve(at(10), at(11)).id
        error = OperationalError("SELECT bookings FOR UPDATE", {}, Exception("canceling statement due to lock timeout"))
        with patch.object(transactions, "_locked_booking_or_none", side_effect=error):
            with self.assertRaises(ConcurrencyConflict):
                cancel_booking(booking_id)
        self.assertIsNotNone(db.session.get(Booking, booking_id))


class TestBookWrapper(AppTestCase):
    def setUp(self):
        super().setUp()
        self.user = self.make_user()
        self.make_area("A1", slots=1)
        self.payload = {
            "area": "A1",
            "startTime": "2030-01-01T10:00:00Z",
            "endTime": "2030-01-01T11:00:00Z",
            "vehicle_number": "KA01AB1234",
            "amount": 5000,
        }

    def test_booked_then_unavailable(self):
        result = book(self.user.id, self.payload)
        self.assertEqual(result["status"], "booked")
        self.assertEqual(result["slot_number"], 1)
        self.assertEqual(result["area"], "A1")
        self.assertEqual(result["booking"]["booking_id"], result["booking_id"])

        self.assertEqual(book(self.user.id, self.payload), {"status": "unavailable"})

    def test_conflict_is_retried_once(self):
        real = transactions.create_booking
        calls = []

        def flaky(*args):
            calls.append(args)
            if len(calls) == 1:
                raise ConcurrencyConflict("busy")
            return real(*args)

        with patch.object(transactions, "create_booking", side_effect=flaky):
            result = book(self.user.id, self.payload)
        self.assertEqual(result["status"], "booked")
        self.assertEqual(len(calls), 2)

    def test_retries_are_capped(self):
        with patch.object(transactions, "create_booking", side_effect=ConcurrencyConflict("busy")) as mocked:
            with self.assertRaises(ConcurrencyConflict):
                book(self.user.id, self.payload)
        self.assertEqual(mocked.call_count, 2)


class TestNoDoubleBookingProperty(AppTestCase):
    """Random booking/cancel traffic must never leave two live bookings overlapping on a slot."""

    def test_random_traffic(self):
        user = self.make_user()
        area = self.make_area("P1", slots=3)
        slot_ids = [s.id for s in area.slots.all()]
        rng = random.Random(20301)
        base = at(0)

        live = []
        for _ in range(150):
            if live and rng.random() < 0.15:
                victim = live.pop(rng.randrange(len(live)))
                self.assertTrue(cancel_booking(victim))
                continue

            start = base + timedelta(minutes=15 * rng.randrange(0, 48))
            end = start + timedelta(minutes=15 * rng.randrange(1, 12))
            booking = create_booking(user.id, "P1", start, end, "KA01AB1234", 100)

            if booking is None:
                # rejected only if every slot really is taken for the window
                for slot_id in slot_ids:
                    on_slot = Booking.query.filter_by(slot_id=slot_id).all()
                    self.assertTrue(any(overlaps(b.start_time, b.end_time, start, end) for b in on_slot))
            else:
                live.append(booking.id)

            self.assertEqual(find_double_bookings(area.id), [])

        self.assertGreater(len(live), 0)


if __name__ == "__main__":
    unittest.main()
