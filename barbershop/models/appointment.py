"""Appointment model definitions."""

from datetime import datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, Integer, String, text
from barbershop.database import Base

ACTIVE_SLOT_CONDITION = text("status <> 'CANCELLED'")


class Appointment(Base):
    """Represents a scheduled appointment."""
    __tablename__ = "appointments"
    __table_args__ = (
        Index("idx_appointments_barber_date", "barber_id", "date"),
        Index(
            "uq_appointments_active_slot",
            "barber_id",
            "date",
            "time",
            unique=True,
            sqlite_where=ACTIVE_SLOT_CONDITION,
            postgresql_where=ACTIVE_SLOT_CONDITION,
        ),
    )

    id = Column(Integer, primary_key=True)
    client_id = Column(Integer, ForeignKey("users.id"))
    barber_id = Column(Integer, ForeignKey("barbers.id"), nullable=False)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)
    date = Column(Date, nullable=False)
    time = Column(String, nullable=False)  # HH:MM
    duration_minutes = Column(Integer)  # NULL on rows predating the column
    status = Column(String, default="PENDING")
    payment_method = Column(String)
    payment_status = Column(String, default="PENDING")
    notes = Column(String)
    cancelled_at = Column(DateTime)
    cancellation_reason = Column(String)
    created_at = Column(DateTime, default=datetime.now)
