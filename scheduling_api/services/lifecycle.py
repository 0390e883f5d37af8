# scheduling_api/services/lifecycle.py
from __future__ import annotations
import uuid
from datetime import datetime, timezone
from typing import Optional

from ..exceptions import ValidationError
from ..models import AppointmentStatus

VALID_STATUSES = tuple(s.value for s in AppointmentStatus)

# Bookings always start here; callers cannot pick another status
INITIAL_STATUS = AppointmentStatus.scheduled


def utcnow() -> datetime:
    """Naive UTC wall clock, comparable with stored start times."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_status(value) -> AppointmentStatus:
    """
    Map a status string to AppointmentStatus. The vocabulary is fixed and
    case-sensitive; any status may follow any other.
    """
    if isinstance(value, AppointmentStatus):
        return value
    try:
        return AppointmentStatus(value)
    except ValueError:
        raise ValidationError(f"Invalid status. Must be one of: {', '.join(VALID_STATUSES)}") from None


def ensure_not_past(start_at: datetime, now: Optional[datetime] = None, action: str = "create") -> None:
    now = now or utcnow()
    if start_at < now:
        if action == "create":
            raise ValidationError("Cannot create appointment in the past")
        raise ValidationError("Cannot update appointment to a time in the past")


def ensure_matching_id(path_id: uuid.UUID, payload_id: uuid.UUID) -> None:
    if path_id != payload_id:
        raise ValidationError("Appointment ID mismatch")
