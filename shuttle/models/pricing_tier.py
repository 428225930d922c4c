from sqlalchemy import String, Integer, DateTime, Boolean, Text
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from shuttle.db.session import Base

CUSTOMER_TYPES = ("REGULAR", "STUDENT", "MILITARY", "LEGACY")

class PricingTier(Base):
    __tablename__ = "pricing_tiers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(120))
    description: Mapped[str] = mapped_column(Text, default="")
    customer_type: Mapped[str] = mapped_column(String(20), index=True)  # REGULAR|STUDENT|MILITARY|LEGACY
    base_price: Mapped[int] = mapped_column(Integer)
    active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
