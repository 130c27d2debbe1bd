from datetime import datetime, timedelta
from flask import Blueprint, jsonify, g, request
from sqlalchemy.exc import IntegrityError

from security.rbac import require_roles
from utils.audit import log_event
from utils.areas import create_area
from models import db
from models.user import User, Role
from models.parking_area import ParkingArea
from models.parking_slot import ParkingSlot
from models.booking import Booking
from models.audit_log import AuditLog
from reservations.lifecycle import record_entry, record_exit, cancel_reservation

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


@admin_bp.post("/areas")
@require_roles("ADMIN")
def admin_create_area():
    data = request.get_json(silent=True) or {}
    name = (data.get("name") or "").strip()
    if name and ParkingArea.query.filter_by(name=name).first():
        return jsonify(error="Parking area already exists"), 409

    try:
        # a concurrent insert of the same name fails at create_area's flush
        area = create_area(
            name,
            data.get("city"),
            address=data.get("address"),
            latitude=data.get("lat"),
            longitude=data.get("long"),
            price_per_hour=data.get("price_per_hour"),
            slot_count=data.get("slot_count", 1),
        )
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify(error="Parking area already exists"), 409

    log_event("AREA_CREATE", user_id=g.user.id, entity="parking_area", entity_id=area.id)
    return jsonify(id=area.id, name=area.name, slot_count=area.slots.count()), 201


@admin_bp.get("/users")
@require_roles("ADMIN")
def list_users():
    role_filter = (request.args.get("role") or "").strip().upper()
    q = User.query
    if role_filter:
        q = q.join(User.roles).filter(Role.name == role_filter)

    users = q.order_by(User.created_at.desc()).limit(200).all()
    return jsonify(message="Fetched successfully", data=[
        {
            "id": u.id,
            "email": u.email,
            "full_name": u.full_name,
            "phone_number": u.phone_number,
            "roles": [r.name for r in u.roles],
            "created_at": u.created_at.isoformat(),
            "bookings": [b.to_ticket() for b in u.bookings.order_by(Booking.created_at.desc())],
        }
        for u in users
    ]), 200


@admin_bp.get("/bookings")
@require_roles("ADMIN", "STAFF")
def list_bookings():
    status = request.args.get("status")
    area_id = request.args.get("area_id", type=int)
    date_str = request.args.get("date")  # YYYY-MM-DD

    q = Booking.query.join(ParkingSlot, Booking.slot_id == ParkingSlot.id)
    if status:
        q = q.filter(Booking.status == status.strip().upper())
    if area_id:
        q = q.filter(ParkingSlot.area_id == area_id)
    if date_str:
        try:
            day = datetime.fromisoformat(date_str)
        except ValueError:
            return jsonify(error="Invalid date. Use YYYY-MM-DD"), 400
        start = datetime(day.year, day.month, day.day)
        end = start + timedelta(days=1)
        q = q.filter(Booking.start_time < end, Booking.end_time > start)

    rows = q.order_by(Booking.created_at.desc()).limit(200).all()
    return jsonify([b.to_ticket() for b in rows]), 200


# ---------- STAFF/ADMIN: gate and lifecycle signals ----------
@admin_bp.post("/bookings/<int:booking_id>/entry")
@require_roles("ADMIN", "STAFF")
def booking_entry(booking_id: int):
    booking = record_entry(booking_id)
    log_event("BOOKING_ENTRY", user_id=g.user.id, entity="booking", entity_id=booking.id)
    return jsonify(id=booking.id, status=booking.status), 200


@admin_bp.post("/bookings/<int:booking_id>/exit")
@require_roles("ADMIN", "STAFF")
def booking_exit(booking_id: int):
    booking = record_exit(booking_id)
    log_event("BOOKING_EXIT", user_id=g.user.id, entity="booking", entity_id=booking.id)
    return jsonify(id=booking.id, status=booking.status), 200


@admin_bp.post("/bookings/<int:booking_id>/cancel")
@require_roles("ADMIN", "STAFF")
def booking_cancel(booking_id: int):
    data = request.get_json(silent=True) or {}
    reason = (data.get("reason") or "").strip() or "Admin cancellation"

    booking = cancel_reservation(booking_id)
    log_event("ADMIN_BOOKING_CANCEL", user_id=g.user.id, entity="booking", entity_id=booking.id, metadata={"reason": reason})
    return jsonify(id=booking.id, status=booking.status), 200


@admin_bp.get("/audit-logs")
@require_roles("ADMIN")
def list_audit_logs():
    limit = request.args.get("limit", type=int) or 200
    limit = max(1, min(limit, 500))
    action = request.args.get("action")

    q = AuditLog.query
    if action:
        q = q.filter(AuditLog.action == action)

    rows = q.order_by(AuditLog.timestamp.desc(), AuditLog.id.desc()).limit(limit).all()
    return jsonify([
        {
            "id": r.id,
            "timestamp": r.timestamp.isoformat(),
            "user_id": r.user_id,
            "action": r.action,
            "entity": r.entity,
            "entity_id": r.entity_id,
            "ip": r.ip,
            "metadata": r.metadata_json,
        }
        for r in rows
    ]), 200
