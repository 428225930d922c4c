from sqlalchemy import String, Integer, DateTime, Boolean, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from datetime import date, datetime, timezone
from shuttle.db.session import Base

class Schedule(Base):
    __tablename__ = "schedules"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    route_id: Mapped[str] = mapped_column(String(36), ForeignKey("routes.id"), index=True)
    # ISO weekday: 1=Mon..7=Sun. NULL only when every_day is set.
    day_of_week: Mapped[int | None] = mapped_column(Integer, nullable=True)
    every_day: Mapped[bool] = mapped_column(Boolean, default=False)
    time: Mapped[str] = mapped_column(String(5))  # HH:MM
    capacity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    vehicle_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("vehicles.id"), nullable=True, index=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    def runs_on(self, day: date) -> bool:
        return bool(self.every_day) or self.day_of_week == day.isoweekday()
