import json
import logging
from typing import Dict, Iterable, List, Sequence

from fastapi import Depends, Request
from sqlalchemy import delete, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from conflicts import decode_string_list, has_conflict, tally
from database import get_session
from errors import StorageError, ValidationError
from models import Appointment, AppointmentSlot
from schemas import AppointmentCreate, AppointmentRead
from slots import CHILD_GRADES, check_dates, check_slots

logger = logging.getLogger(__name__)

SLOT_TAKEN = "One or more selected slots are already taken."


def _unique(values: Iterable[str]) -> List[str]:
    seen = []
    for value in values:
        value = value.strip()
        if value not in seen:
            seen.append(value)
    return seen


def to_read(appointment: Appointment) -> AppointmentRead:
    return AppointmentRead(
        id=appointment.id,
        parent_name=appointment.parent_name,
        email=appointment.email,
        child_name=appointment.child_name or "",
        child_grade=appointment.child_grade or "",
        appointment_dates=decode_string_list(appointment.appointment_dates),
        appointment_hours=decode_string_list(appointment.appointment_hours),
        created_at=appointment.created_at,
    )


class BookingStore:
    """Appointment persistence over a single AsyncSession.

    Double booking is caught twice: ``has_conflict`` scans the stored rows
    before insert, and the ``unique_appointment_slot`` constraint rejects a
    competing insert that slipped past the scan.
    """

    def __init__(self, session: AsyncSession, booking_dates: Sequence[str]):
        self.session = session
        self.booking_dates = tuple(booking_dates)

    async def _all(self) -> Sequence[Appointment]:
        result = await self.session.execute(select(Appointment))
        return result.scalars().all()

    async def _storage_failure(self, message: str, exc: Exception) -> StorageError:
        logger.error("%s", message, exc_info=exc)
        await self.session.rollback()
        return StorageError(message)

    def _validate(self, data: AppointmentCreate) -> AppointmentCreate:
        parent_name = (data.parent_name or "").strip()
        email = (data.email or "").strip()
        if not parent_name or not email:
            raise ValidationError("Parent name and email are required.")

        if not data.appointment_dates or not data.appointment_hours:
            raise ValidationError("At least one date and one hour must be selected.")

        dates = _unique(data.appointment_dates)
        hours = _unique(data.appointment_hours)
        check_dates(dates, self.booking_dates)
        check_slots(hours)

        child_grade = (data.child_grade or "").strip()
        if child_grade and child_grade not in CHILD_GRADES:
            raise ValidationError(f"Unknown grade: {child_grade!r}.")

        return AppointmentCreate(
            parent_name=parent_name,
            email=email,
            child_name=(data.child_name or "").strip(),
            child_grade=child_grade,
            appointment_dates=dates,
            appointment_hours=hours,
        )

    async def create(self, data: AppointmentCreate) -> AppointmentRead:
        data = self._validate(data)

        try:
            existing = await self._all()
        except SQLAlchemyError as e:
            raise await self._storage_failure("Failed to create appointment.", e) from e

        if has_conflict(data.appointment_dates, data.appointment_hours, existing):
            logger.info(
                "Rejected booking for %s %s: slot taken",
                data.appointment_dates,
                data.appointment_hours,
            )
            raise ValidationError(SLOT_TAKEN)

        appointment = Appointment(
            parent_name=data.parent_name,
            email=data.email,
            child_name=data.child_name,
            child_grade=data.child_grade,
            appointment_dates=json.dumps(data.appointment_dates),
            appointment_hours=json.dumps(data.appointment_hours),
        )

        try:
            self.session.add(appointment)
            await self.session.flush()
            for day in data.appointment_dates:
                for slot in data.appointment_hours:
                    self.session.add(
                        AppointmentSlot(appointment_id=appointment.id, appointment_date=day, slot=slot)
                    )
            await self.session.commit()
        except IntegrityError:
            # A concurrent booking claimed the slot between the scan and the insert
            await self.session.rollback()
            logger.info("Unique constraint rejected booking for %s %s", data.appointment_dates, data.appointment_hours)
            raise ValidationError(SLOT_TAKEN) from None
        except SQLAlchemyError as e:
            raise await self._storage_failure("Failed to create appointment.", e) from e

        logger.info(
            "Created appointment %s for %s %s",
            appointment.id,
            data.appointment_dates,
            data.appointment_hours,
        )
        return to_read(appointment)

    async def list(self) -> List[AppointmentRead]:
        statement = select(Appointment).order_by(
            Appointment.created_at.desc(), Appointment.id.desc()
        )
        try:
            result = await self.session.execute(statement)
        except SQLAlchemyError as e:
            raise await self._storage_failure("Failed to fetch appointments.", e) from e
        return [to_read(a) for a in result.scalars().all()]

    async def count(self) -> int:
        statement = select(func.count(Appointment.id))
        try:
            result = await self.session.execute(statement)
        except SQLAlchemyError as e:
            raise await self._storage_failure("Failed to fetch count.", e) from e
        return result.scalar_one()

    async def counts(self, dates: Iterable[str], hours: Iterable[str]) -> Dict[str, Dict[str, int]]:
        try:
            existing = await self._all()
        except SQLAlchemyError as e:
            raise await self._storage_failure("Failed to fetch appointments.", e) from e
        return tally(dates, hours, existing)

    async def delete_all(self) -> int:
        try:
            await self.session.execute(delete(AppointmentSlot))
            result = await self.session.execute(delete(Appointment))
            await self.session.commit()
        except SQLAlchemyError as e:
            raise await self._storage_failure("Failed to delete appointments.", e) from e

        deleted = result.rowcount
        logger.warning("Deleted all appointments (%d rows)", deleted)
        return deleted


def get_store(request: Request, session: AsyncSession = Depends(get_session)) -> BookingStore:
    return BookingStore(session, request.app.state.settings.booking_dates)
