"""Availability model definitions."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, UniqueConstraint
from barbershop.database import Base


class Availability(Base):
    """Recurring weekly open window for a barber, one row per weekday."""
    __tablename__ = "availability"
    __table_args__ = (
        UniqueConstraint("barber_id", "day_of_week", name="uq_availability_barber_day"),
    )

    id = Column(Integer, primary_key=True)
    barber_id = Column(Integer, ForeignKey("barbers.id"), nullable=False, index=True)
    day_of_week = Column(String, nullable=False)  # MONDAY..SUNDAY
    start_time = Column(String, nullable=False)  # HH:MM
    end_time = Column(String, nullable=False)
    is_available = Column(Boolean, default=True)
