from itertools import groupby

from models.booking import Booking, CANCELLED
from models.parking_slot import ParkingSlot
from reservations.overlap import overlaps


def find_double_bookings(area_id=None):
    """
    Pairs of live bookings on the same slot whose windows overlap.
    An empty list means the no-double-booking invariant holds.
    """
    q = Booking.query.filter(Booking.status != CANCELLED)
    if area_id is not None:
        q = q.join(ParkingSlot, Booking.slot_id == ParkingSlot.id).filter(ParkingSlot.area_id == area_id)

    rows = q.order_by(Booking.slot_id.asc(), Booking.start_time.asc()).all()

    conflicts = []
    for _, group in groupby(rows, key=lambda b: b.slot_id):
        group = list(group)
        # sorted by start: each booking only has to be compared with the ones
        # starting before it ends
        for i, first in enumerate(group):
            for second in group[i + 1:]:
                if second.start_time >= first.end_time:
                    break
                if overlaps(first.start_time, first.end_time, second.start_time, second.end_time):
                    conflicts.append((first, second))
    return conflicts
