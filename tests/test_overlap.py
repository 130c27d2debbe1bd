import unittest
from datetime import datetime

from reservations.overlap import overlaps


def t(hour, minute=0):
    return datetime(2030, 1, 1, hour, minute)


class TestOverlaps(unittest.TestCase):
    def test_partial_overlap(self):
        # existing [10:00, 11:00) vs requested [10:30, 11:30)
        self.assertTrue(overlaps(t(10), t(11), t(10, 30), t(11, 30)))
        self.assertTrue(overlaps(t(10, 30), t(11, 30), t(10), t(11)))

    def test_containment(self):
        self.assertTrue(overlaps(t(9), t(12), t(10), t(11)))
        self.assertTrue(overlaps(t(10), t(11), t(9), t(12)))

    def test_identical_windows(self):
        self.assertTrue(overlaps(t(10), t(11), t(10), t(11)))

    def test_back_to_back_is_not_a_conflict(self):
        self.assertFalse(overlaps(t(10), t(11), t(11), t(12)))
        self.assertFalse(overlaps(t(11), t(12), t(10), t(11)))

    def test_disjoint(self):
        self.assertFalse(overlaps(t(8), t(9), t(10), t(11)))
        self.assertFalse(overlaps(t(12), t(13), t(10), t(11)))

    def test_symmetric(self):
        cases = [
            (t(8), t(9), t(8, 30), t(10)),
            (t(8), t(9), t(9), t(10)),
            (t(8), t(12), t(9), t(10)),
        ]
        for a, b, c, d in cases:
            self.assertEqual(overlaps(a, b, c, d), overlaps(c, d, a, b))


if __name__ == "__main__":
    unittest.main()
