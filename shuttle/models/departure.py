from sqlalchemy import String, Integer, Date, DateTime, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from datetime import date, datetime, timezone
from shuttle.db.session import Base

SCHEDULED = "SCHEDULED"
BOARDING = "BOARDING"
DEPARTED = "DEPARTED"
COMPLETED = "COMPLETED"
CANCELLED = "CANCELLED"
DEPARTURE_STATUSES = (SCHEDULED, BOARDING, DEPARTED, COMPLETED, CANCELLED)
# Statuses listed to customers as upcoming
UPCOMING_STATUSES = (SCHEDULED, BOARDING)

class Departure(Base):
    __tablename__ = "departures"
    __table_args__ = (
        UniqueConstraint("schedule_id", "departure_date", name="uq_departure_schedule_date"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    schedule_id: Mapped[str] = mapped_column(String(36), ForeignKey("schedules.id"), index=True)
    departure_date: Mapped[date] = mapped_column(Date, index=True)

    capacity: Mapped[int] = mapped_column(Integer)
    # Cache of seats taken (confirmed/paid passengers + blocked), rewritten in the booking transaction
    booked_seats: Mapped[int] = mapped_column(Integer, default=0)
    # Seats taken off sale by an admin without a booking
    blocked_seats: Mapped[int] = mapped_column(Integer, default=0)

    status: Mapped[str] = mapped_column(String(20), default=SCHEDULED, index=True)
    vehicle_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("vehicles.id"), nullable=True, index=True)
    driver_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
