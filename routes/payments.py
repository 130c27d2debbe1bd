from urllib.parse import urlencode, urlparse, parse_qsl, urlunparse

import stripe
from flask import Blueprint, request, jsonify, g, current_app

from models.booking import PENDING, PAYMENT_PAID
from reservations.errors import BookingNotFound
from reservations.transactions import find_booking_by_id
from utils.auth_context import login_required
from utils.audit import log_event

payments_bp = Blueprint("payments", __name__, url_prefix="/payments")

def _append_query(url: str, params: dict) -> str:
    if not url:
        return url
    parts = urlparse(url)
    query = dict(parse_qsl(parts.query))
    query.update({k: v for k, v in params.items() if v is not None})
    return urlunparse(parts._replace(query=urlencode(query)))


@payments_bp.post("/start")
@login_required
def start_payment():
    stripe.api_key = current_app.config.get("STRIPE_SECRET_KEY")
    if not stripe.api_key:
        return jsonify(error="Stripe secret key missing (STRIPE_SECRET_KEY)"), 500

    data = request.get_json(silent=True) or {}
    try:
        booking_id = int(data.get("booking_id"))
    except (TypeError, ValueError):
        return jsonify(error="booking_id required"), 400

    booking = find_booking_by_id(booking_id)
    if not booking or booking.user_id != g.user.id:
        raise BookingNotFound(f"Booking {booking_id} not found")
    if booking.payment_status == PAYMENT_PAID:
        return jsonify(error="Booking already paid"), 400
    if booking.status != PENDING:
        return jsonify(error=f"Booking is {booking.status}"), 400

    params = {"booking_id": str(booking.id)}
    session = stripe.checkout.Session.create(
        mode="payment",
        line_items=[{
            "price_data": {
                "currency": current_app.config.get("PAYMENT_CURRENCY", "inr"),
                "product_data": {"name": f"Parking at {booking.area_name} (slot {booking.slot_number})"},
                "unit_amount": booking.amount,
            },
            "quantity": 1,
        }],
        success_url=_append_query(current_app.config.get("PAYMENT_SUCCESS_URL"), params),
        cancel_url=_append_query(current_app.config.get("PAYMENT_CANCEL_URL"), params),
        metadata={
            "booking_id": str(booking.id),
            "user_id": str(g.user.id),
            "slot_id": str(booking.slot_id),
        },
    )

    log_event("PAYMENT_SESSION_CREATED", user_id=g.user.id, entity="booking", entity_id=booking.id, metadata={"stripe_session_id": session["id"]})
    return jsonify(checkout_url=session["url"], session_id=session["id"]), 200
