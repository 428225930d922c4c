from sqlalchemy import String, Integer, DateTime, Text, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from shuttle.db.session import Base

PENDING = "PENDING"
CONFIRMED = "CONFIRMED"
PAID = "PAID"
CANCELLED = "CANCELLED"
BOOKING_STATUSES = (PENDING, CONFIRMED, PAID, CANCELLED)
# Bookings whose passengers occupy seats
SEAT_HOLDING_STATUSES = (CONFIRMED, PAID)

class Booking(Base):
    __tablename__ = "bookings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    booking_ref: Mapped[str] = mapped_column(String(20), unique=True, index=True)

    departure_id: Mapped[str] = mapped_column(String(36), ForeignKey("departures.id"), index=True)
    return_departure_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("departures.id"), nullable=True, index=True)

    # registered customer, or guest fields
    user_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    guest_first_name: Mapped[str] = mapped_column(String(100), default="")
    guest_last_name: Mapped[str] = mapped_column(String(100), default="")
    guest_email: Mapped[str] = mapped_column(String(320), default="")
    guest_phone: Mapped[str] = mapped_column(String(40), default="")

    customer_type: Mapped[str] = mapped_column(String(20), default="REGULAR")
    pricing_tier_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("pricing_tiers.id"), nullable=True, index=True)

    passenger_count: Mapped[int] = mapped_column(Integer, default=1)
    extra_luggage: Mapped[int] = mapped_column(Integer, default=0)
    pets: Mapped[int] = mapped_column(Integer, default=0)
    special_requests: Mapped[str] = mapped_column(Text, default="")

    subtotal: Mapped[int] = mapped_column(Integer, default=0)
    savings: Mapped[int] = mapped_column(Integer, default=0)
    total_amount: Mapped[int] = mapped_column(Integer, default=0)

    status: Mapped[str] = mapped_column(String(20), default=CONFIRMED, index=True)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
