from models.parking_area import ParkingArea
from models.user import User
from tests.base import AppTestCase, at


class TestCliCommands(AppTestCase):
    def setUp(self):
        super().setUp()
        self.runner = self.app.test_cli_runner()

    def test_create_area(self):
        result = self.runner.invoke(args=["create-area", "Mall", "Pune", "--slots", "3", "--price-per-hour", "4000"])
        self.assertEqual(result.exit_code, 0, result.output)
        area = ParkingArea.query.filter_by(name="Mall").one()
        self.assertEqual([s.slot_number for s in area.slots], [1, 2, 3])
        self.assertEqual(area.price_per_hour, 4000)

        again = self.runner.invoke(args=["create-area", "Mall", "Pune"])
        self.assertNotEqual(again.exit_code, 0)
        self.assertIn("already exists", again.output)

    def test_make_admin(self):
        self.make_user()
        result = self.runner.invoke(args=["make-admin", "Driver@Example.com"])
        self.assertIn("promoted to ADMIN", result.output)
        user = User.query.filter_by(email="driver@example.com").one()
        self.assertIn("ADMIN", [r.name for r in user.roles])

    def test_check_bookings(self):
        user = self.make_user()
        area = self.make_area("A1", slots=1)
        slot = area.slots.first()
        self.add_booking(user, slot, at(10), at(11))
        self.add_booking(user, slot, at(11), at(12))

        clean = self.runner.invoke(args=["check-bookings"])
        self.assertEqual(clean.exit_code, 0, clean.output)
        self.assertIn("No double bookings", clean.output)

        # written straight to the table, bypassing the booking manager
        self.add_booking(user, slot, at(10, 30), at(11, 30))
        dirty = self.runner.invoke(args=["check-bookings", "--area-id", str(area.id)])
        self.assertEqual(dirty.exit_code, 1)
        self.assertIn("2 double booking(s) found", dirty.output)
