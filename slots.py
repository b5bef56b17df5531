import re
from datetime import date, datetime, timedelta
from typing import Iterable, List, Tuple

from errors import ValidationError

# Fitting day runs 08:00-14:00 in 20 minute slots, two fitting rooms
DAY_START_HOUR = 8
DAY_END_HOUR = 14
SLOT_MINUTES = 20
ROOMS = ("room1", "room2")

CHILD_GRADES = ("Prep", "Grade 1", "Grade 2", "Grade 3", "Grade 4", "Grade 5")

SLOT_PATTERN = re.compile(r"^(\d{2}):(\d{2})-(room\d+)$")


def slot_starts() -> List[str]:
    """Start times from 08:00 to 13:40, every 20 minutes."""
    starts = []
    for hour in range(DAY_START_HOUR, DAY_END_HOUR):
        for minute in range(0, 60, SLOT_MINUTES):
            starts.append(f"{hour:02d}:{minute:02d}")
    return starts


def slot_end(start: str) -> str:
    begin = datetime.strptime(start, "%H:%M")
    return (begin + timedelta(minutes=SLOT_MINUTES)).strftime("%H:%M")


def slot_room_ids() -> List[str]:
    return [f"{start}-{room}" for start in slot_starts() for room in ROOMS]


def parse_slot(slot_id: str) -> Tuple[str, str]:
    """Split ``HH:MM-roomN`` into ``(start, room)``.

    Raises ValidationError when the start is off the 20 minute grid,
    outside the fitting day, or the room does not exist.
    """
    match = SLOT_PATTERN.match(slot_id or "")
    if not match:
        raise ValidationError(f"Invalid time slot: {slot_id!r}.")

    start = f"{match.group(1)}:{match.group(2)}"
    room = match.group(3)
    if start not in slot_starts():
        raise ValidationError(f"Invalid time slot: {slot_id!r}. Fittings run 08:00-14:00.")
    if room not in ROOMS:
        raise ValidationError(f"Invalid room in slot: {slot_id!r}.")
    return start, room


def check_dates(dates: Iterable[str], booking_dates: Iterable[str]) -> None:
    window = set(booking_dates)
    for value in dates:
        try:
            date.fromisoformat(value)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid date: {value!r}.") from None
        if value not in window:
            raise ValidationError(f"Date {value} is not open for bookings.")


def check_slots(slot_ids: Iterable[str]) -> None:
    for slot_id in slot_ids:
        parse_slot(slot_id)
