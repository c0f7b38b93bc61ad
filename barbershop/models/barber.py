"""Barber model definitions."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from barbershop.database import Base
from barbershop.models.user import User


class Barber(Base):
    """Barber profile attached to a user account."""
    __tablename__ = "barbers"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    bio = Column(String)
    specialties = Column(String)
    is_active = Column(Boolean, default=True)

    user = relationship(User)
