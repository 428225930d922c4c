from sqlalchemy import String, DateTime, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from shuttle.db.session import Base

QUEUED = "queued"
SENT = "sent"
FAILED = "failed"
# retries exhausted; process_email_queue no longer picks it up
ABANDONED = "abandoned"
RETRYABLE_STATUSES = (QUEUED, FAILED)


class EmailLog(Base):
    """Outbound email. Booking confirmations keep their body so the worker can resend."""

    __tablename__ = "email_logs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    to_email: Mapped[str] = mapped_column(String(320), index=True)
    subject: Mapped[str] = mapped_column(String(200))
    body: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(30), default=QUEUED, index=True)
    related_booking_ref: Mapped[str] = mapped_column(String(20), default="", index=True)
    attempts: Mapped[int] = mapped_column(Integer, default=0)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
