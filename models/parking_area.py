from datetime import datetime
from models.db import db

class ParkingArea(db.Model):
    __tablename__ = "parking_areas"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), unique=True, nullable=False, index=True)
    city = db.Column(db.String(120), nullable=False)
    address = db.Column(db.String(255), nullable=True)

    latitude = db.Column(db.Float, nullable=True)
    longitude = db.Column(db.Float, nullable=True)

    price_per_hour = db.Column(db.Integer, nullable=False, default=0)  # smallest unit (paise)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    slots = db.relationship(
        "ParkingSlot",
        back_populates="area",
        order_by="ParkingSlot.slot_number",
        lazy="dynamic",
    )
