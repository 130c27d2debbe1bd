import re
from datetime import datetime, timezone

from reservations.errors import ValidationError

# e.g. KA01AB1234, MH12A1234
VEHICLE_NUMBER_RE = re.compile(r"^[A-Z]{2}[0-9]{2}[A-Z]{1,2}[0-9]{4}$")


def parse_timestamp(value, field: str) -> datetime:
    """
    Accepts a datetime or an ISO-8601 string. Aware values are converted to UTC;
    the result is always naive UTC, which is how bookings are stored.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value.strip():
        raw = value.strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(raw)
        except ValueError:
            raise ValidationError(f"Invalid {field}. Use ISO e.g. 2026-01-20T18:00:00Z")
    else:
        raise ValidationError(f"{field} is required")

    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def validate_window(start_time, end_time):
    start = parse_timestamp(start_time, "start_time")
    end = parse_timestamp(end_time, "end_time")
    if end <= start:
        raise ValidationError("end_time must be after start_time")
    return start, end


def normalize_vehicle_number(value) -> str:
    if not isinstance(value, str):
        raise ValidationError("vehicle_number is required")
    cleaned = re.sub(r"[\s-]", "", value).upper()
    if not VEHICLE_NUMBER_RE.match(cleaned):
        raise ValidationError("Invalid vehicle number format")
    return cleaned


def validate_amount(value) -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool):
        raise ValidationError("amount must be a positive integer")
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if not isinstance(value, int) or value <= 0:
        raise ValidationError("amount must be a positive integer")
    return value


def validate_area_name(value) -> str:
    name = (value or "").strip() if isinstance(value, str) else ""
    if not name:
        raise ValidationError("area is required")
    return name
