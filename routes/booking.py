from flask import Blueprint, request, jsonify, g

from models.booking import Booking
from reservations.errors import BookingNotFound
from reservations.transactions import book, cancel_booking, find_booking_by_id
from security.rbac import has_role
from utils.auth_context import login_required
from utils.audit import log_event

booking_bp = Blueprint("booking", __name__, url_prefix="/api")


def _can_view(booking: Booking) -> bool:
    return booking.user_id == g.user.id or has_role("STAFF") or has_role("ADMIN")


@booking_bp.post("/book")
@login_required
def create_booking():
    data = request.get_json(silent=True) or {}
    result = book(g.user.id, data)

    if result["status"] == "unavailable":
        log_event("BOOKING_UNAVAILABLE", user_id=g.user.id, entity="parking_area", entity_id=data.get("area"))
        return jsonify(status="unavailable", reply="No slots available at the requested time"), 200

    log_event(
        "BOOKING_CREATE",
        user_id=g.user.id,
        entity="booking",
        entity_id=result["booking_id"],
        metadata={"slot_id": result["slot_id"], "area": result["area"]},
    )
    return jsonify(result), 201


@booking_bp.delete("/book/<int:booking_id>")
@login_required
def delete_booking(booking_id: int):
    booking = find_booking_by_id(booking_id)
    # other users' bookings are reported as missing
    if not booking or not _can_view(booking):
        return jsonify(status="not_found"), 404

    if not cancel_booking(booking_id):
        return jsonify(status="not_found"), 404

    log_event("BOOKING_DELETE", user_id=g.user.id, entity="booking", entity_id=booking_id)
    return jsonify(status="cancelled"), 200


@booking_bp.get("/history")
@login_required
def history():
    status = request.args.get("status")
    q = Booking.query.filter_by(user_id=g.user.id)
    if status:
        q = q.filter_by(status=status.strip().upper())

    rows = q.order_by(Booking.created_at.desc(), Booking.id.desc()).all()
    if not rows:
        return jsonify(message="No Booking History Found", data=[]), 200
    return jsonify(message="History Retrieved Successfully", data=[b.to_ticket() for b in rows]), 200


@booking_bp.get("/latest_booking")
@login_required
def latest_booking():
    booking = (
        Booking.query
        .filter_by(user_id=g.user.id)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
        .first()
    )
    if not booking:
        return jsonify(error="No bookings found"), 404
    return jsonify(message="Latest Booking Found", booking=booking.to_ticket()), 200


@booking_bp.get("/bookings/<int:booking_id>")
@login_required
def get_ticket(booking_id: int):
    booking = find_booking_by_id(booking_id)
    if not booking or not _can_view(booking):
        raise BookingNotFound(f"Booking {booking_id} not found")
    return jsonify(booking.to_ticket()), 200
