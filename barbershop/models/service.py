"""Service catalog model definitions."""

from sqlalchemy import Boolean, Column, Float, ForeignKey, Integer, String

from barbershop.database import Base


class Service(Base):
    """A bookable service. Services without a barber are offered by everyone."""
    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(String)
    duration_minutes = Column(Integer, nullable=False)
    price = Column(Float, nullable=False, default=0.0)
    barber_id = Column(Integer, ForeignKey("barbers.id"), nullable=True)
    is_active = Column(Boolean, default=True)
