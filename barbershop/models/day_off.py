"""Day off model definitions."""

from sqlalchemy import Column, Date, ForeignKey, Integer, String, UniqueConstraint
from barbershop.database import Base


class DayOff(Base):
    """A date on which a barber takes no bookings."""
    __tablename__ = "days_off"
    __table_args__ = (
        UniqueConstraint("barber_id", "date", name="uq_days_off_barber_date"),
    )

    id = Column(Integer, primary_key=True)
    barber_id = Column(Integer, ForeignKey("barbers.id"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    reason = Column(String)
