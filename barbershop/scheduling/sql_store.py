from datetime import date

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, sessionmaker

from barbershop.models.appointment import Appointment
from barbershop.models.availability import Availability
from barbershop.models.barber import Barber
from barbershop.models.day_off import DayOff
from barbershop.models.service import Service
from barbershop.scheduling.resolver import DayOffEntry, WeeklyWindow
from barbershop.scheduling.slots import BookedSlot

CANCELLED_STATUS = 'CANCELLED'


def query_weekly_availability(db: Session, barber_id: int) -> list[WeeklyWindow]:
    rows = db.query(Availability).filter(Availability.barber_id == barber_id).all()
    return [
        WeeklyWindow(
            day_of_week=row.day_of_week,
            start_time=row.start_time,
            end_time=row.end_time,
            is_available=bool(row.is_available),
        )
        for row in rows
    ]


def query_days_off(db: Session, barber_id: int, on_date: date | None = None) -> list[DayOffEntry]:
    query = db.query(DayOff).filter(DayOff.barber_id == barber_id)
    if on_date is not None:
        query = query.filter(DayOff.date == on_date)
    return [DayOffEntry(date=row.date, reason=row.reason) for row in query.all()]


def query_active_appointments(db: Session, barber_id: int, on_date: date) -> list[BookedSlot]:
    # Rows written before durations were stored fall back to the service duration.
    booked_duration = func.coalesce(Appointment.duration_minutes, Service.duration_minutes)
    rows = db.query(Appointment.time, booked_duration).outerjoin(
        Service, Service.id == Appointment.service_id,
    ).filter(
        Appointment.barber_id == barber_id,
        Appointment.date == on_date,
        Appointment.status != CANCELLED_STATUS,
    ).order_by(Appointment.time.asc()).all()
    return [BookedSlot(time=booked_time, duration_minutes=duration) for booked_time, duration in rows]


def get_active_barber(db: Session, barber_id: int) -> Barber | None:
    return db.query(Barber).filter(Barber.id == barber_id, Barber.is_active.is_(True)).first()


def get_active_service(db: Session, service_id: int, barber_id: int | None = None) -> Service | None:
    """Active service, restricted to those bookable with ``barber_id`` when given."""
    query = db.query(Service).filter(Service.id == service_id, Service.is_active.is_(True))
    if barber_id is not None:
        query = query.filter(or_(Service.barber_id.is_(None), Service.barber_id == barber_id))
    return query.first()


class SqlAvailabilityStore:
    """Availability reads backed by the application database.

    Each call opens its own session so calls can run in parallel threads.
    """

    def __init__(self, session_factory: sessionmaker) -> None:
        self.session_factory = session_factory

    def get_weekly_availability(self, barber_id: int) -> list[WeeklyWindow]:
        with self.session_factory() as db:
            return query_weekly_availability(db, barber_id)

    def get_days_off(self, barber_id: int) -> list[DayOffEntry]:
        with self.session_factory() as db:
            return query_days_off(db, barber_id)

    def get_active_appointments(self, barber_id: int, on_date: date) -> list[BookedSlot]:
        with self.session_factory() as db:
            return query_active_appointments(db, barber_id, on_date)

    def barber_is_active(self, barber_id: int) -> bool:
        with self.session_factory() as db:
            return get_active_barber(db, barber_id) is not None

    def get_service_duration(self, service_id: int, barber_id: int | None = None) -> int | None:
        with self.session_factory() as db:
            service = get_active_service(db, service_id, barber_id)
            return service.duration_minutes if service else None
