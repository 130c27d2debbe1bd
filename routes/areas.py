from flask import Blueprint, request, jsonify
from sqlalchemy import func

from models import db
from models.parking_area import ParkingArea
from models.parking_slot import ParkingSlot
from reservations.errors import AreaNotFound
from reservations.scanner import find_free_slot
from reservations.validation import validate_window

areas_bp = Blueprint("areas", __name__, url_prefix="/v1")


def _area_json(area: ParkingArea, slot_count: int) -> dict:
    return {
        "id": area.id,
        "name": area.name,
        "city": area.city,
        "address": area.address,
        "lat": area.latitude,
        "long": area.longitude,
        "price_per_hour": area.price_per_hour,
        "slot_count": slot_count,
    }


@areas_bp.get("/display_areas")
def display_areas():
    city = (request.args.get("city") or "").strip()
    name_query = (request.args.get("name") or "").strip()

    q = (
        db.session.query(ParkingArea, func.count(ParkingSlot.id))
        .outerjoin(ParkingSlot, ParkingSlot.area_id == ParkingArea.id)
        .group_by(ParkingArea.id)
    )
    if city:
        q = q.filter(ParkingArea.city.ilike(f"%{city}%"))
    if name_query:
        q = q.filter(ParkingArea.name.ilike(f"%{name_query}%"))

    rows = q.order_by(ParkingArea.name.asc()).limit(200).all()
    return jsonify(message="Fetched areas successfully", data=[_area_json(a, n) for a, n in rows]), 200


@areas_bp.get("/areas/<int:area_id>")
def get_area(area_id: int):
    area = db.session.get(ParkingArea, area_id)
    if not area:
        raise AreaNotFound(f"Parking area {area_id} not found")
    return jsonify(_area_json(area, area.slots.count())), 200


@areas_bp.get("/areas/<int:area_id>/availability")
def area_availability(area_id: int):
    # preview only; nothing is reserved
    start, end = validate_window(request.args.get("start_time"), request.args.get("end_time"))
    slot = find_free_slot(area_id, start, end)
    if slot is None:
        return jsonify(available=False), 200
    return jsonify(available=True, slot_id=slot.id, slot_number=slot.slot_number), 200
