"""Admin payloads for routes, schedules, vehicles and pricing."""
from pydantic import AfterValidator, BaseModel, Field, model_validator
from typing import Annotated, Optional

def _check_time(v: str | None) -> str | None:
    if v is None:
        return v
    parts = v.split(":")
    if len(parts) != 2 or not all(p.isdigit() and len(p) == 2 for p in parts):
        raise ValueError("time must be HH:MM")
    h, m = int(parts[0]), int(parts[1])
    if h > 23 or m > 59:
        raise ValueError("time must be HH:MM")
    return v

TimeOfDay = Annotated[str, AfterValidator(_check_time)]

class RouteIn(BaseModel):
    name: str = Field(min_length=1, max_length=160)
    origin: str = Field(min_length=1, max_length=120)
    destination: str = Field(min_length=1, max_length=120)
    durationMinutes: int = Field(default=60, ge=1)
    active: bool = True

class RouteUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=160)
    origin: Optional[str] = Field(default=None, min_length=1, max_length=120)
    destination: Optional[str] = Field(default=None, min_length=1, max_length=120)
    durationMinutes: Optional[int] = Field(default=None, ge=1)
    active: Optional[bool] = None

class ScheduleIn(BaseModel):
    routeId: str
    # ISO weekday 1=Mon..7=Sun; omit and set everyDay for daily service
    dayOfWeek: Optional[int] = Field(default=None, ge=1, le=7)
    everyDay: bool = False
    time: TimeOfDay
    capacity: Optional[int] = Field(default=None, ge=1)
    vehicleId: Optional[str] = None
    active: bool = True

    @model_validator(mode="after")
    def day_or_every_day(self):
        if self.everyDay and self.dayOfWeek is not None:
            raise ValueError("set either dayOfWeek or everyDay, not both")
        if not self.everyDay and self.dayOfWeek is None:
            raise ValueError("dayOfWeek is required unless everyDay is set")
        return self

class ScheduleUpdate(BaseModel):
    dayOfWeek: Optional[int] = Field(default=None, ge=1, le=7)
    everyDay: Optional[bool] = None
    time: Optional[TimeOfDay] = None
    capacity: Optional[int] = Field(default=None, ge=1)
    vehicleId: Optional[str] = None
    active: Optional[bool] = None

class VehicleIn(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    capacity: int = Field(ge=1, le=100)
    priceMultiplier: float = Field(default=1.0, ge=0.1, le=5.0)
    active: bool = True

class VehicleUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    capacity: Optional[int] = Field(default=None, ge=1, le=100)
    priceMultiplier: Optional[float] = Field(default=None, ge=0.1, le=5.0)
    active: Optional[bool] = None

class PricingTierIn(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    description: str = ""
    customerType: str
    basePrice: int = Field(ge=0)
    active: bool = True

class PricingTierUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    description: Optional[str] = None
    basePrice: Optional[int] = Field(default=None, ge=0)
    active: Optional[bool] = None

class FeesIn(BaseModel):
    extraLuggage: Optional[int] = Field(default=None, ge=0)
    pets: Optional[int] = Field(default=None, ge=0)
