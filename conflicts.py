"""Slot conflict detection and per-slot booking counts."""

from __future__ import annotations

import logging
from typing import Dict, FrozenSet, Iterable, List, Optional

from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from models import Appointment

logger = logging.getLogger(__name__)

_STRING_LIST = TypeAdapter(List[str])


def decode_string_list(raw: Optional[str]) -> List[str]:
    """Decode a stored JSON list of strings, defaulting to an empty list.

    Rows written by older clients may hold anything in these columns; a value
    that is not a JSON list of strings counts as no dates/slots at all.
    """
    if not raw:
        return []
    try:
        return _STRING_LIST.validate_json(raw)
    except PydanticValidationError:
        logger.warning("Ignoring malformed stored value %r", raw)
        return []


def decode_string_set(raw: Optional[str]) -> FrozenSet[str]:
    return frozenset(decode_string_list(raw))


def has_conflict(
    candidate_dates: Iterable[str],
    candidate_slots: Iterable[str],
    existing: Iterable[Appointment],
) -> bool:
    """Return True if any existing appointment already holds a candidate (date, slot)."""
    candidate_dates = list(candidate_dates)
    candidate_slots = list(candidate_slots)

    for appointment in existing:
        booked_dates = decode_string_set(appointment.appointment_dates)
        booked_slots = decode_string_set(appointment.appointment_hours)
        for day in candidate_dates:
            if day not in booked_dates:
                continue
            for slot in candidate_slots:
                if slot in booked_slots:
                    return True
    return False


def tally(
    dates: Iterable[str],
    slots: Iterable[str],
    existing: Iterable[Appointment],
) -> Dict[str, Dict[str, int]]:
    """Count, for each requested (date, slot), the appointments that include it."""
    slots = list(slots)
    counts: Dict[str, Dict[str, int]] = {day: {slot: 0 for slot in slots} for day in dates}

    for appointment in existing:
        booked_slots = decode_string_set(appointment.appointment_hours)
        for day in decode_string_set(appointment.appointment_dates):
            row = counts.get(day)
            if row is None:
                continue
            for slot in booked_slots:
                if slot in row:
                    row[slot] += 1
    return counts
