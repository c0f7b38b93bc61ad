from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from barbershop.models.barber import Barber
from barbershop.models.service import Service
from barbershop.models.user import User
from barbershop.routes.common import database_unavailable, ensure_database_ready, get_db

router = APIRouter(tags=['catalog'])


class BarberResponse(BaseModel):
    id: int
    name: str
    bio: str | None = None
    specialties: str | None = None


class ServiceResponse(BaseModel):
    id: int
    name: str
    description: str | None = None
    duration_minutes: int
    price: float
    barber_id: int | None = None

    class Config:
        from_attributes = True


@router.get('/barbers', response_model=list[BarberResponse])
def list_barbers(db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        rows = db.query(Barber, User).join(User, User.id == Barber.user_id).filter(
            Barber.is_active.is_(True),
        ).order_by(User.name.asc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc

    return [
        BarberResponse(
            id=barber.id,
            name=user.name or user.email,
            bio=barber.bio,
            specialties=barber.specialties,
        )
        for barber, user in rows
    ]


@router.get('/services', response_model=list[ServiceResponse])
def list_services(
    barber_id: int | None = Query(default=None),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        query = db.query(Service).filter(Service.is_active.is_(True))
        if barber_id is not None:
            # Shop-wide services are bookable with every barber.
            query = query.filter(or_(Service.barber_id == barber_id, Service.barber_id.is_(None)))
        return query.order_by(Service.id.asc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc
