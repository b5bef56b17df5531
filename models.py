from typing import Optional
from datetime import datetime, timezone
from sqlmodel import SQLModel, Field
from sqlalchemy import DateTime, UniqueConstraint


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Appointment(SQLModel, table=True):
    __tablename__ = "appointments"

    id: Optional[int] = Field(default=None, primary_key=True)
    parent_name: str
    email: str
    child_name: str = ""
    child_grade: str = ""
    # JSON-encoded lists, decoded by conflicts.decode_string_set
    appointment_dates: str = "[]"
    appointment_hours: str = "[]"
    # timestamptz on PostgreSQL
    created_at: datetime = Field(
        default_factory=utcnow, sa_type=DateTime(timezone=True), index=True
    )


class AppointmentSlot(SQLModel, table=True):
    __tablename__ = "appointment_slots"
    __table_args__ = (
        # Database-level protection against double booking
        UniqueConstraint("appointment_date", "slot", name="unique_appointment_slot"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    appointment_id: int = Field(foreign_key="appointments.id", index=True)
    appointment_date: str  # 2026-01-19
    slot: str  # 08:00-room1
