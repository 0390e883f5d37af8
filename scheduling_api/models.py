from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, DateTime, Enum, Index, Uuid, text
from datetime import datetime
import enum
import uuid
from .database import Base


class AppointmentStatus(str, enum.Enum):
    scheduled = "Scheduled"
    completed = "Completed"
    cancelled = "Cancelled"
    no_show = "NoShow"


ACTIVE_SLOT_CLAUSE = text("status != 'Cancelled'")


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        Index("ix_appointments_patient_id", "patient_id"),
        Index("ix_appointments_doctor_id", "doctor_id"),
        Index("ix_appointments_start_at", "start_at"),
        # One active appointment per doctor and start time
        Index(
            "uq_appointments_doctor_slot_active",
            "doctor_id",
            "start_at",
            unique=True,
            sqlite_where=ACTIVE_SLOT_CLAUSE,
            postgresql_where=ACTIVE_SLOT_CLAUSE,
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    patient_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    doctor_id: Mapped[str] = mapped_column(String(50), nullable=False)
    # Naive timestamps: compared literally, no timezone conversion
    start_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=30)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[AppointmentStatus] = mapped_column(
        Enum(
            AppointmentStatus,
            name="appointment_status",
            native_enum=False,
            length=50,
            values_callable=lambda e: [m.value for m in e],
        ),
        default=AppointmentStatus.scheduled,
        nullable=False,
    )
    notes: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True, default=None)
    # Revision counter: every UPDATE/DELETE carries "AND version = <read value>"
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<Appointment {self.id} doctor={self.doctor_id} start={self.start_at} status={self.status.value}>"
