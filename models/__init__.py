from .db import db
from .user import User, Role, user_roles
from .session import Session
from .audit_log import AuditLog
from .parking_area import ParkingArea
from .parking_slot import ParkingSlot
from .booking import Booking
