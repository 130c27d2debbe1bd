from models.db import db

class ParkingSlot(db.Model):
    __tablename__ = "parking_slots"

    id = db.Column(db.Integer, primary_key=True)

    area_id = db.Column(db.Integer, db.ForeignKey("parking_areas.id"), nullable=False, index=True)
    slot_number = db.Column(db.Integer, nullable=False)

    area = db.relationship("ParkingArea", back_populates="slots")

    __table_args__ = (
        db.UniqueConstraint("area_id", "slot_number", name="uq_area_slot_number"),
    )
