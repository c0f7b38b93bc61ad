"""Manual payment model definitions."""

from datetime import datetime

from sqlalchemy import Column, Date, DateTime, Float, ForeignKey, Integer, String
from barbershop.database import Base


class ManualPayment(Base):
    """Income a barber records outside of a booked appointment, such as a walk-in."""
    __tablename__ = "manual_payments"

    id = Column(Integer, primary_key=True)
    barber_id = Column(Integer, ForeignKey("barbers.id"), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    payment_method = Column(String, nullable=False)
    description = Column(String)
    client_name = Column(String)
    date = Column(Date, nullable=False)
    created_at = Column(DateTime, default=datetime.now)
