from models import db
from models.parking_area import ParkingArea
from models.parking_slot import ParkingSlot
from reservations.errors import ValidationError

MAX_SLOTS_PER_AREA = 500


def _optional_float(value, field: str):
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number")


def create_area(name, city, address=None, latitude=None, longitude=None, price_per_hour=0, slot_count=1) -> ParkingArea:
    """Add an area with slots numbered 1..slot_count. Caller commits."""
    name = (name or "").strip()
    city = (city or "").strip()
    if not name or not city:
        raise ValidationError("name and city are required")

    try:
        slot_count = int(slot_count)
        price_per_hour = int(price_per_hour or 0)
    except (TypeError, ValueError):
        raise ValidationError("slot_count and price_per_hour must be integers")
    if not 1 <= slot_count <= MAX_SLOTS_PER_AREA:
        raise ValidationError(f"slot_count must be between 1 and {MAX_SLOTS_PER_AREA}")
    if price_per_hour < 0:
        raise ValidationError("price_per_hour cannot be negative")

    area = ParkingArea(
        name=name,
        city=city,
        address=(address or "").strip() or None,
        latitude=_optional_float(latitude, "lat"),
        longitude=_optional_float(longitude, "long"),
        price_per_hour=price_per_hour,
    )
    db.session.add(area)
    db.session.flush()

    for number in range(1, slot_count + 1):
        db.session.add(ParkingSlot(area_id=area.id, slot_number=number))
    db.session.flush()
    return area
