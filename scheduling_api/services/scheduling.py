# scheduling_api/services/scheduling.py
from __future__ import annotations
import logging
import uuid
from datetime import datetime, date, time, timedelta
from typing import List, Optional, Set

from sqlalchemy.orm import Session

from ..config import settings
from .. import models

logger = logging.getLogger(__name__)

# ====== Config ======
CLINIC_OPEN_HOUR = settings.CLINIC_OPEN_HOUR
CLINIC_CLOSE_HOUR = settings.CLINIC_CLOSE_HOUR
SLOT_MINUTES = settings.SLOT_MINUTES


# ====== Time helpers ======
def _day_bounds(day: date) -> tuple[datetime, datetime]:
    """[00:00, next day 00:00) for the given date, naive."""
    start = datetime.combine(day, time(0, 0))
    return start, start + timedelta(days=1)


def candidate_slots(day: date) -> List[datetime]:
    """
    Every slot start in the working window: CLINIC_OPEN_HOUR inclusive to
    CLINIC_CLOSE_HOUR exclusive, every SLOT_MINUTES.
    """
    cur = datetime.combine(day, time(CLINIC_OPEN_HOUR, 0))
    end = datetime.combine(day, time(0, 0)) + timedelta(hours=CLINIC_CLOSE_HOUR)
    delta = timedelta(minutes=SLOT_MINUTES)

    slots = []
    while cur < end:
        slots.append(cur)
        cur += delta
    return slots


# ====== Booked starts ======
def _booked_starts(db: Session, doctor_id: str, day: date) -> Set[datetime]:
    """Start times of the doctor's active appointments on that day."""
    day_start, day_end = _day_bounds(day)
    rows = (
        db.query(models.Appointment.start_at)
        .filter(models.Appointment.doctor_id == doctor_id)
        .filter(models.Appointment.start_at >= day_start)
        .filter(models.Appointment.start_at < day_end)
        .filter(models.Appointment.status != models.AppointmentStatus.cancelled)
        .all()
    )
    booked = {start_at for (start_at,) in rows}
    logger.debug("Booked starts doctor=%s day=%s: %s", doctor_id, day, sorted(booked))
    return booked


# ====== Available slots ======
def available_slots(db: Session, doctor_id: str, day: date) -> List[datetime]:
    """
    Candidate slots for ``day`` minus those whose start exactly matches an
    active appointment of ``doctor_id``. Earliest first.

    Only exact start matches block a slot: an appointment at 09:15, or one
    lasting 60 minutes from 09:00, leaves 09:30 free.
    """
    booked = _booked_starts(db, doctor_id, day)
    return [slot for slot in candidate_slots(day) if slot not in booked]


# ====== Conflicts ======
def has_conflict(
    db: Session,
    doctor_id: str,
    start_at: datetime,
    exclude_id: Optional[uuid.UUID] = None,
) -> bool:
    """
    True when another active appointment of the same doctor starts exactly at
    ``start_at``. ``exclude_id`` lets an appointment ignore its own row.
    """
    q = (
        db.query(models.Appointment.id)
        .filter(models.Appointment.doctor_id == doctor_id)
        .filter(models.Appointment.start_at == start_at)
        .filter(models.Appointment.status != models.AppointmentStatus.cancelled)
    )
    if exclude_id is not None:
        q = q.filter(models.Appointment.id != exclude_id)
    return bool(db.query(q.exists()).scalar())
