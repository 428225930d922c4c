from sqlalchemy import String, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from shuttle.db.session import Base

class AuditLog(Base):
    """One row per admin write; staged in the same transaction as the change."""

    __tablename__ = "audit_logs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    actor_user_id: Mapped[str] = mapped_column(String(36), index=True)
    action: Mapped[str] = mapped_column(String(80), index=True)  # e.g. departure.assign_vehicle, pricing.fees
    entity_type: Mapped[str] = mapped_column(String(40), index=True)  # route, schedule, vehicle, departure, booking
    entity_id: Mapped[str] = mapped_column(String(36), index=True)  # "batch" for generation and mark-booked runs
    details_json: Mapped[str] = mapped_column(Text, default="{}")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True)
