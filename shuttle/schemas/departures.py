from datetime import date
from pydantic import BaseModel, Field
from typing import List, Optional

class GenerateDeparturesIn(BaseModel):
    startDate: date
    endDate: date
    capacity: Optional[int] = None
    scheduleIds: Optional[List[str]] = None

class QuickFixIn(BaseModel):
    days: Optional[int] = Field(default=None, ge=1, le=366)

class MarkBookedIn(BaseModel):
    endDate: date
    scheduleIds: Optional[List[str]] = None

class ReleaseBlockedIn(BaseModel):
    endDate: date
    startDate: Optional[date] = None
    scheduleIds: Optional[List[str]] = None

class AssignVehicleIn(BaseModel):
    departureId: str
    vehicleId: Optional[str] = None

class DepartureUpdate(BaseModel):
    status: Optional[str] = None
    driverNotes: Optional[str] = None
    capacity: Optional[int] = None
