from datetime import datetime
from models.db import db

# lifecycle status values
PENDING = "PENDING"
CONFIRMED = "CONFIRMED"
ACTIVE = "ACTIVE"
COMPLETED = "COMPLETED"
CANCELLED = "CANCELLED"

# payment status values
PAYMENT_PENDING = "PENDING"
PAYMENT_PAID = "PAID"
PAYMENT_FAILED = "FAILED"


class Booking(db.Model):
    __tablename__ = "bookings"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    slot_id = db.Column(db.Integer, db.ForeignKey("parking_slots.id"), nullable=False, index=True)

    # naive UTC, half-open [start_time, end_time)
    start_time = db.Column(db.DateTime, nullable=False, index=True)
    end_time = db.Column(db.DateTime, nullable=False, index=True)

    vehicle_number = db.Column(db.String(20), nullable=False)
    amount = db.Column(db.Integer, nullable=False)  # smallest unit (paise)

    payment_id = db.Column(db.String(255), nullable=True, index=True)
    payment_status = db.Column(db.String(20), nullable=False, default=PAYMENT_PENDING)

    status = db.Column(db.String(20), nullable=False, default=PENDING, index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    slot = db.relationship("ParkingSlot")
    user = db.relationship("User", back_populates="bookings")

    __table_args__ = (
        db.CheckConstraint("end_time > start_time", name="ck_booking_window"),
        db.CheckConstraint("amount > 0", name="ck_booking_amount_positive"),
    )

    @property
    def area_name(self):
        return self.slot.area.name if self.slot else None

    @property
    def city(self):
        return self.slot.area.city if self.slot else None

    @property
    def slot_number(self):
        return self.slot.slot_number if self.slot else None

    def to_ticket(self) -> dict:
        return {
            "booking_id": self.id,
            "user_id": self.user_id,
            "slot_id": self.slot_id,
            "slot_number": self.slot_number,
            "area": self.area_name,
            "city": self.city,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "vehicle_number": self.vehicle_number,
            "amount": self.amount,
            "payment_id": self.payment_id,
            "payment_status": self.payment_status,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
