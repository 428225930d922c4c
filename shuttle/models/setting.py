from sqlalchemy import String, Integer, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from shuttle.db.session import Base


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Setting(Base):
    """Site-wide key/value setting (fees are stored as ints: extraLuggageFee, petFee)."""

    __tablename__ = "settings"
    key: Mapped[str] = mapped_column(String(80), primary_key=True)
    int_value: Mapped[int | None] = mapped_column(Integer, nullable=True)
    str_value: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now, onupdate=_now)
