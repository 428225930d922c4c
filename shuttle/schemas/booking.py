from pydantic import BaseModel, Field, field_validator
from typing import List, Optional

from shuttle.services.email_service import is_valid_email

class PassengerIn(BaseModel):
    firstName: str
    lastName: str
    age: Optional[int] = Field(default=None, ge=0, le=120)

class GuestIn(BaseModel):
    firstName: str = ""
    lastName: str = ""
    email: str = ""  # plain str to allow .local and other dev domains
    phone: str = ""

    @field_validator("email")
    @classmethod
    def email_shape(cls, v: str) -> str:
        v = v.strip()
        if v and not is_valid_email(v):
            raise ValueError("email must look like name@domain, without spaces or line breaks")
        return v

class BookingCreate(BaseModel):
    departureId: str
    returnDepartureId: Optional[str] = None
    passengerCount: int = 1
    customerType: str = "REGULAR"
    extraLuggage: int = 0
    pets: int = 0
    specialRequests: str = ""
    passengers: List[PassengerIn] = []
    guest: Optional[GuestIn] = None
