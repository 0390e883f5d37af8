# scheduling_api/services/appointments.py
"""
Appointment operations: validation, conflict check and persistence in one
read-check-write sequence per call.

Writes are guarded twice against double-booking. ``has_conflict`` rejects the
common case early; the partial unique index on (doctor_id, start_at) catches
two requests that both passed the pre-check. Lost updates are detected through
the ``version`` column: a stale UPDATE/DELETE matches no row and the ORM raises
StaleDataError, which is reported to the caller instead of retried.
"""
from __future__ import annotations
import logging
import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from .. import models, schemas
from ..exceptions import ConflictError, NotFoundError, StoreError
from . import lifecycle
from .scheduling import has_conflict

logger = logging.getLogger(__name__)

SLOT_TAKEN = "The selected time slot is not available"
CONCURRENT_CHANGE = "The appointment was modified by another request. Reload it and try again."
SLOT_INDEX_NAME = "uq_appointments_doctor_slot_active"


# ──────────────────────────────────────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────────────────────────────────────
def _not_found(appointment_id) -> NotFoundError:
    return NotFoundError(f"Appointment with ID {appointment_id} not found")


def _is_slot_violation(exc: IntegrityError) -> bool:
    msg = str(exc.orig)
    if SLOT_INDEX_NAME in msg:
        return True
    # SQLite names the columns instead of the index
    return "UNIQUE" in msg.upper() and "doctor_id" in msg and "start_at" in msg


def appointment_exists(db: Session, appointment_id: uuid.UUID) -> bool:
    q = db.query(models.Appointment.id).filter(models.Appointment.id == appointment_id)
    return bool(db.query(q.exists()).scalar())


def _commit(db: Session, appointment_id: Optional[uuid.UUID], action: str) -> None:
    """
    Commit and classify failures. The session is always rolled back on error.

    - StaleDataError: the row changed or vanished since it was read. One
      existence re-check decides between not-found and conflict.
    - IntegrityError on the slot index: another request booked the slot
      between our check and our write.
    """
    try:
        db.commit()
    except StaleDataError:
        db.rollback()
        if appointment_id is not None and not appointment_exists(db, appointment_id):
            logger.warning("%s: appointment %s deleted concurrently", action, appointment_id)
            raise _not_found(appointment_id)
        logger.warning("%s: concurrent modification of appointment %s", action, appointment_id)
        raise ConflictError(CONCURRENT_CHANGE)
    except IntegrityError as e:
        db.rollback()
        if _is_slot_violation(e):
            logger.warning("%s: slot index rejected appointment %s", action, appointment_id)
            raise ConflictError(SLOT_TAKEN)
        logger.exception("%s: integrity error for appointment %s", action, appointment_id)
        raise StoreError("A database error occurred while saving the appointment", details=str(e.orig)) from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("%s: database error for appointment %s", action, appointment_id)
        raise StoreError("A database error occurred while saving the appointment", details=str(e)) from e


# ──────────────────────────────────────────────────────────────────────────────
# Reads
# ──────────────────────────────────────────────────────────────────────────────
def get_appointment(db: Session, appointment_id: uuid.UUID) -> models.Appointment:
    appt = db.get(models.Appointment, appointment_id)
    if appt is None:
        raise _not_found(appointment_id)
    return appt


def list_appointments(db: Session) -> List[models.Appointment]:
    appts = db.query(models.Appointment).order_by(models.Appointment.start_at.desc()).all()
    logger.info("Retrieved %d appointments", len(appts))
    return appts


def list_for_patient(db: Session, patient_id: uuid.UUID) -> List[models.Appointment]:
    """Newest first. No rows is reported as not-found, same as an unknown patient."""
    appts = (
        db.query(models.Appointment)
        .filter(models.Appointment.patient_id == patient_id)
        .order_by(models.Appointment.start_at.desc())
        .all()
    )
    if not appts:
        raise NotFoundError(f"No appointments found for patient {patient_id}")
    return appts


def list_for_doctor(db: Session, doctor_id: str) -> List[models.Appointment]:
    """Newest first. No rows is reported as not-found, same as an unknown doctor."""
    appts = (
        db.query(models.Appointment)
        .filter(models.Appointment.doctor_id == doctor_id)
        .order_by(models.Appointment.start_at.desc())
        .all()
    )
    if not appts:
        raise NotFoundError(f"No appointments found for doctor {doctor_id}")
    return appts


# ──────────────────────────────────────────────────────────────────────────────
# Writes
# ──────────────────────────────────────────────────────────────────────────────
def create_appointment(
    db: Session,
    data: schemas.AppointmentCreate,
    now: Optional[datetime] = None,
) -> models.Appointment:
    lifecycle.ensure_not_past(data.start_at, now, action="create")

    if has_conflict(db, data.doctor_id, data.start_at):
        logger.warning("Booking rejected: doctor=%s start=%s already taken", data.doctor_id, data.start_at)
        raise ConflictError(SLOT_TAKEN)

    appt = models.Appointment(
        id=uuid.uuid4(),
        patient_id=data.patient_id,
        doctor_id=data.doctor_id,
        start_at=data.start_at,
        duration_minutes=data.duration_minutes,
        type=data.type,
        notes=data.notes,
        status=lifecycle.INITIAL_STATUS,
        created_at=lifecycle.utcnow(),
    )
    db.add(appt)
    _commit(db, None, "create")
    db.refresh(appt)

    logger.info("Appointment created: id=%s doctor=%s start=%s", appt.id, appt.doctor_id, appt.start_at)
    return appt


def update_appointment(
    db: Session,
    appointment_id: uuid.UUID,
    data: schemas.AppointmentUpdate,
    now: Optional[datetime] = None,
) -> None:
    """Full overwrite of the editable fields. ``id`` and ``created_at`` never change."""
    lifecycle.ensure_matching_id(appointment_id, data.id)

    appt = get_appointment(db, appointment_id)

    if data.version is not None and data.version != appt.version:
        logger.warning(
            "update: appointment %s is at version %s, client sent %s",
            appointment_id, appt.version, data.version,
        )
        raise ConflictError(CONCURRENT_CHANGE)

    lifecycle.ensure_not_past(data.start_at, now, action="update")
    new_status = lifecycle.parse_status(data.status) if data.status is not None else appt.status

    if has_conflict(db, data.doctor_id, data.start_at, exclude_id=appointment_id):
        logger.warning("Update rejected: doctor=%s start=%s already taken", data.doctor_id, data.start_at)
        raise ConflictError(SLOT_TAKEN)

    appt.patient_id = data.patient_id
    appt.doctor_id = data.doctor_id
    appt.start_at = data.start_at
    appt.duration_minutes = data.duration_minutes
    appt.type = data.type
    appt.notes = data.notes
    appt.status = new_status
    appt.updated_at = lifecycle.utcnow()

    _commit(db, appointment_id, "update")
    logger.info("Appointment updated: id=%s start=%s status=%s", appointment_id, data.start_at, new_status.value)


def set_status(db: Session, appointment_id: uuid.UUID, new_status: str) -> None:
    """Status-only change. No time or conflict re-check."""
    appt = get_appointment(db, appointment_id)
    status = lifecycle.parse_status(new_status)

    appt.status = status
    appt.updated_at = lifecycle.utcnow()

    _commit(db, appointment_id, "set_status")
    logger.info("Appointment %s status -> %s", appointment_id, status.value)


def delete_appointment(db: Session, appointment_id: uuid.UUID) -> None:
    appt = get_appointment(db, appointment_id)
    db.delete(appt)
    _commit(db, appointment_id, "delete")
    logger.info("Appointment deleted: id=%s", appointment_id)
