import uuid
from typing import List

from fastapi import APIRouter, Body, Depends, Query, Response, status
from sqlalchemy.orm import Session
from dateutil.parser import isoparser

from ..database import SessionLocal
from .. import schemas
from ..exceptions import ValidationError
from ..services import appointments as service
from ..services.scheduling import available_slots

router = APIRouter(
    prefix="/api/appointments",
    tags=["appointments"],
    responses={
        400: {"model": schemas.ErrorResponse},
        404: {"model": schemas.ErrorResponse},
        409: {"model": schemas.ErrorResponse},
    },
)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@router.get("", response_model=List[schemas.AppointmentOut])
def list_appointments(db: Session = Depends(get_db)):
    return service.list_appointments(db)


# Declared before /{appointment_id} so the literal path wins
@router.get("/available-slots", response_model=schemas.SlotsResponse)
def get_available_slots(
    doctor_id: str = Query(..., min_length=1, max_length=50),
    date: str = Query(..., description="YYYY-MM-DD"),
    db: Session = Depends(get_db),
):
    try:
        # Date only; trailing time or loose formats are rejected
        d = isoparser().parse_isodate(date)
    except ValueError:
        raise ValidationError("Invalid date format. Use YYYY-MM-DD.") from None
    slots = available_slots(db, doctor_id, d)
    return schemas.SlotsResponse(
        doctor_id=doctor_id,
        date=d.isoformat(),
        slots=[s.isoformat() for s in slots],
    )


@router.get("/patient/{patient_id}", response_model=List[schemas.AppointmentOut])
def get_patient_appointments(patient_id: uuid.UUID, db: Session = Depends(get_db)):
    return service.list_for_patient(db, patient_id)


@router.get("/doctor/{doctor_id}", response_model=List[schemas.AppointmentOut])
def get_doctor_appointments(doctor_id: str, db: Session = Depends(get_db)):
    return service.list_for_doctor(db, doctor_id)


@router.get("/{appointment_id}", response_model=schemas.AppointmentOut)
def get_appointment(appointment_id: uuid.UUID, db: Session = Depends(get_db)):
    return service.get_appointment(db, appointment_id)


@router.post("", response_model=schemas.AppointmentOut, status_code=status.HTTP_201_CREATED)
def create_appointment(req: schemas.AppointmentCreate, response: Response, db: Session = Depends(get_db)):
    appt = service.create_appointment(db, req)
    response.headers["Location"] = f"{router.prefix}/{appt.id}"
    return appt


@router.put("/{appointment_id}", status_code=status.HTTP_204_NO_CONTENT)
def update_appointment(appointment_id: uuid.UUID, req: schemas.AppointmentUpdate, db: Session = Depends(get_db)):
    service.update_appointment(db, appointment_id, req)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{appointment_id}/status", status_code=status.HTTP_204_NO_CONTENT)
def update_appointment_status(
    appointment_id: uuid.UUID,
    new_status: str = Body(..., description='JSON string, e.g. "Completed"'),
    db: Session = Depends(get_db),
):
    service.set_status(db, appointment_id, new_status)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{appointment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_appointment(appointment_id: uuid.UUID, db: Session = Depends(get_db)):
    service.delete_appointment(db, appointment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
