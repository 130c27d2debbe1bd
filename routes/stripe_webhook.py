import logging

import stripe
from flask import Blueprint, request, jsonify, current_app

from reservations.errors import BookingNotFound, InvalidTransition
from reservations.lifecycle import confirm_payment, mark_payment_failed
from utils.audit import log_event

webhook_bp = Blueprint("webhook", __name__, url_prefix="/webhooks")

logger = logging.getLogger(__name__)


@webhook_bp.post("/stripe")
def stripe_webhook():
    endpoint_secret = current_app.config.get("STRIPE_WEBHOOK_SECRET")
    if not endpoint_secret:
        return jsonify(error="Webhook secret not configured"), 500

    try:
        event = stripe.Webhook.construct_event(
            request.data, request.headers.get("Stripe-Signature"), endpoint_secret
        )
    except (ValueError, stripe.SignatureVerificationError):
        return jsonify(error="Invalid webhook signature"), 400

    event_type = event.get("type")
    if event_type not in ("checkout.session.completed", "checkout.session.expired"):
        return jsonify(received=True), 200

    session = event["data"]["object"]
    meta = session.get("metadata", {}) or {}
    booking_id = meta.get("booking_id")
    if not booking_id:
        return jsonify(received=True), 200

    # signature verified above; from here the payment is trusted
    try:
        if event_type == "checkout.session.completed":
            reference = session.get("payment_intent") or session.get("id")
            booking = confirm_payment(int(booking_id), reference)
            log_event("PAYMENT_PAID", entity="booking", entity_id=booking.id, metadata={"payment_id": reference})
        else:
            booking = mark_payment_failed(int(booking_id))
            log_event("PAYMENT_EXPIRED", entity="booking", entity_id=booking.id, metadata={"stripe_session_id": session.get("id")})
    except (BookingNotFound, InvalidTransition) as exc:
        # booking deleted or moved on since checkout started; acknowledge so Stripe stops retrying
        logger.warning(f"Ignoring {event_type} for booking {booking_id}: {exc.message}")
        log_event("PAYMENT_IGNORED", entity="booking", entity_id=booking_id, metadata={"reason": exc.message})

    return jsonify(received=True), 200
