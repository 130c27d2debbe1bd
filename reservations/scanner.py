import logging

from models import db
from models.booking import Booking, CANCELLED
from models.parking_area import ParkingArea
from models.parking_slot import ParkingSlot
from reservations.errors import AreaNotFound
from reservations.overlap import overlap_filter

logger = logging.getLogger(__name__)

SLOT_PAGE_SIZE = 25


def find_area_by_name(name: str) -> ParkingArea:
    area = ParkingArea.query.filter_by(name=name).first()
    if not area:
        raise AreaNotFound(f"Parking area '{name}' not found")
    return area


def list_slots_for_area(area_id: int, after_number=None, limit=None):
    q = ParkingSlot.query.filter(ParkingSlot.area_id == area_id)
    if after_number is not None:
        q = q.filter(ParkingSlot.slot_number > after_number)
    q = q.order_by(ParkingSlot.slot_number.asc())
    if limit:
        q = q.limit(limit)
    return q.all()


def candidate_slots(area_id: int, page_size: int = SLOT_PAGE_SIZE):
    """
    Yields the area's slots by ascending slot number, one page at a time.
    Each call returns a new generator, so a scan can always be restarted.
    """
    last_number = None
    while True:
        page = list_slots_for_area(area_id, after_number=last_number, limit=page_size)
        if not page:
            return
        for slot in page:
            yield slot
        if len(page) < page_size:
            return
        last_number = page[-1].slot_number


def find_overlapping_booking(slot_id: int, start_time, end_time):
    # cancelled bookings stay as history but no longer hold their window
    return (
        Booking.query
        .filter(
            Booking.slot_id == slot_id,
            Booking.status != CANCELLED,
            overlap_filter(Booking.start_time, Booking.end_time, start_time, end_time),
        )
        .first()
    )


def find_free_slot(area_id: int, start_time, end_time):
    """
    Lowest-numbered slot of the area with no booking overlapping
    [start_time, end_time), or None when every slot is taken.
    Raises AreaNotFound for an unknown area. Read-only.
    """
    area = db.session.get(ParkingArea, area_id)
    if not area:
        raise AreaNotFound(f"Parking area {area_id} not found")

    for slot in candidate_slots(area.id):
        if find_overlapping_booking(slot.id, start_time, end_time) is None:
            return slot

    logger.info(f"No free slot in area {area.name} for {start_time} - {end_time}")
    return None
