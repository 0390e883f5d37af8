from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime, timezone
from typing import Optional
import uuid


def _naive(value: datetime) -> datetime:
    # Stored timestamps are naive; offset-aware input is brought to UTC first
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class AppointmentCreate(BaseModel):
    patient_id: uuid.UUID
    doctor_id: str = Field(..., min_length=1, max_length=50)
    start_at: datetime
    type: str = Field(..., min_length=1, max_length=50)
    duration_minutes: int = Field(30, gt=0)
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator("start_at")
    @classmethod
    def _naive_start(cls, v: datetime) -> datetime:
        return _naive(v)


class AppointmentUpdate(AppointmentCreate):
    id: uuid.UUID
    # Omitted status keeps the stored one
    status: Optional[str] = None
    # Revision the client last read; a mismatch is reported as a conflict
    version: Optional[int] = None


class AppointmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    patient_id: uuid.UUID
    doctor_id: str
    start_at: datetime
    duration_minutes: int
    type: str
    status: str
    notes: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    version: int

    @field_validator("status", mode="before")
    @classmethod
    def _status_value(cls, v):
        return getattr(v, "value", v)


class SlotsResponse(BaseModel):
    doctor_id: str
    date: str
    slots: list[str]


class ErrorResponse(BaseModel):
    detail: str
    error: str
    details: Optional[str] = None
