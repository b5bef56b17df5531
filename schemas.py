from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel


# Fields are optional here so missing values reach the store's own checks
# and come back with a readable error instead of a schema dump.
class AppointmentCreate(BaseModel):
    parent_name: Optional[str] = None
    email: Optional[str] = None
    child_name: Optional[str] = None
    child_grade: Optional[str] = None
    appointment_dates: Optional[List[str]] = None
    appointment_hours: Optional[List[str]] = None


class AppointmentRead(BaseModel):
    id: int
    parent_name: str
    email: str
    child_name: str
    child_grade: str
    appointment_dates: List[str]
    appointment_hours: List[str]
    created_at: datetime


class CountsQuery(BaseModel):
    dates: Optional[List[str]] = None
    hours: Optional[List[str]] = None


class CountResponse(BaseModel):
    count: int


class DeleteAllResponse(BaseModel):
    success: bool
    deletedCount: int


class SlotOption(BaseModel):
    start: str
    end: str
    rooms: List[str]


class SlotCatalogue(BaseModel):
    dates: List[str]
    slots: List[SlotOption]
    slot_ids: List[str]
    grades: List[str]


CountMap = Dict[str, Dict[str, int]]
