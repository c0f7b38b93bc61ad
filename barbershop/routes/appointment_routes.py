import logging
from datetime import date, datetime, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from barbershop.auth.dependencies import ROLE_ADMIN, ROLE_BARBER, ROLE_CLIENT, get_current_user, require_staff
from barbershop.core import config
from barbershop.models.appointment import Appointment
from barbershop.models.barber import Barber
from barbershop.models.user import User
from barbershop.routes.common import database_unavailable, ensure_database_ready, get_db, stored_schedule_invalid
from barbershop.scheduling.resolver import compute_available_times
from barbershop.scheduling.slots import InvalidAvailabilityRequest, StoredScheduleError, parse_time_of_day
from barbershop.scheduling.sql_store import (
    get_active_barber,
    get_active_service,
    query_active_appointments,
    query_days_off,
    query_weekly_availability,
)

router = APIRouter(tags=['appointments'])

logger = logging.getLogger(__name__)

STATUS_PENDING = 'PENDING'
STATUS_CONFIRMED = 'CONFIRMED'
STATUS_COMPLETED = 'COMPLETED'
STATUS_CANCELLED = 'CANCELLED'
APPOINTMENT_STATUSES = (STATUS_PENDING, STATUS_CONFIRMED, STATUS_COMPLETED, STATUS_CANCELLED)
UPCOMING_FILTER = 'upcoming'
ALLOWED_STATUS_TRANSITIONS = {
    STATUS_PENDING: {STATUS_CONFIRMED, STATUS_COMPLETED, STATUS_CANCELLED},
    STATUS_CONFIRMED: {STATUS_COMPLETED, STATUS_CANCELLED},
    STATUS_COMPLETED: set(),
    STATUS_CANCELLED: set(),
}
PAYMENT_METHODS = ('CASH', 'CARD', 'TRANSFER', 'QR')
PAYMENT_STATUS_PAID = 'PAID'
DEFAULT_CANCELLATION_REASON = 'Cancelled by the user'
MAX_APPOINTMENT_NOTES_LENGTH = 600


def _normalize_payment_method(value: str | None) -> str | None:
    if value is None:
        return None

    normalized = value.strip().upper()
    if not normalized:
        return None
    if normalized not in PAYMENT_METHODS:
        raise ValueError('Invalid payment method.')
    return normalized


class CreateAppointmentRequest(BaseModel):
    barber_id: int
    service_id: int
    date: date
    time: str
    payment_method: str | None = None
    notes: str | None = None

    @field_validator('time')
    @classmethod
    def validate_time(cls, value: str) -> str:
        try:
            return parse_time_of_day(value).strftime('%H:%M')
        except InvalidAvailabilityRequest as exc:
            raise ValueError(str(exc)) from exc

    @field_validator('payment_method')
    @classmethod
    def validate_payment_method(cls, value: str | None) -> str | None:
        return _normalize_payment_method(value)

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > MAX_APPOINTMENT_NOTES_LENGTH:
            raise ValueError(f'Notes must be {MAX_APPOINTMENT_NOTES_LENGTH} characters or fewer.')

        return normalized


class UpdateStatusRequest(BaseModel):
    status: str
    cancellation_reason: str | None = None

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in APPOINTMENT_STATUSES:
            raise ValueError('Invalid appointment status.')
        return normalized


class MarkPaidRequest(BaseModel):
    payment_method: str

    @field_validator('payment_method')
    @classmethod
    def validate_payment_method(cls, value: str) -> str:
        normalized = _normalize_payment_method(value)
        if normalized is None:
            raise ValueError('Payment method is required.')
        return normalized


class AppointmentResponse(BaseModel):
    id: int
    client_id: int | None = None
    barber_id: int
    service_id: int
    date: date
    time: str
    duration_minutes: int | None = None
    status: str
    payment_method: str | None = None
    payment_status: str | None = None
    notes: str | None = None
    cancelled_at: datetime | None = None
    cancellation_reason: str | None = None

    class Config:
        from_attributes = True


def appointment_starts_at(appointment: Appointment) -> datetime:
    return datetime.combine(appointment.date, parse_time_of_day(appointment.time))


def can_cancel_appointment(appointment: Appointment, now: datetime) -> bool:
    notice = timedelta(hours=config.CANCELLATION_NOTICE_HOURS)
    return appointment_starts_at(appointment) - now >= notice


def get_appointment_or_404(appointment_id: int, db: Session) -> Appointment:
    appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
    if not appointment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Appointment not found.',
        )
    return appointment


def get_barber_for_user(user: User, db: Session) -> Barber | None:
    if user.role != ROLE_BARBER:
        return None
    return db.query(Barber).filter(Barber.user_id == user.id).first()


def ensure_staff_can_manage(appointment: Appointment, user: User, db: Session) -> None:
    if user.role == ROLE_ADMIN:
        return

    barber = get_barber_for_user(user, db)
    if barber is None or barber.id != appointment.barber_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='Only the assigned barber or an admin can update this appointment.',
        )


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: CreateAppointmentRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if data.date < date.today():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Appointments must be scheduled in the future.',
        )

    ensure_database_ready()

    try:
        if get_active_barber(db, data.barber_id) is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Barber not found.',
            )

        service = get_active_service(db, data.service_id, data.barber_id)
        if service is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Service not found.',
            )

        if datetime.combine(data.date, parse_time_of_day(data.time)) <= datetime.now():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='Appointments must be scheduled in the future.',
            )

        available_times = compute_available_times(
            data.date,
            service.duration_minutes,
            query_weekly_availability(db, data.barber_id),
            query_days_off(db, data.barber_id, data.date),
            query_active_appointments(db, data.barber_id, data.date),
        )
        if data.time not in available_times:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='This time is not available.',
            )

        appointment = Appointment(
            client_id=current_user.id,
            barber_id=data.barber_id,
            service_id=service.id,
            date=data.date,
            time=data.time,
            duration_minutes=service.duration_minutes,
            status=STATUS_PENDING,
            payment_method=data.payment_method,
            payment_status='PENDING',
            notes=data.notes,
        )
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        logger.info(
            'Booked appointment %s with barber %s on %s at %s',
            appointment.id,
            appointment.barber_id,
            appointment.date.isoformat(),
            appointment.time,
        )

        return appointment
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail='This time is already booked.',
        ) from exc
    except StoredScheduleError as exc:
        db.rollback()
        raise stored_schedule_invalid(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.get('', response_model=list[AppointmentResponse])
def list_appointments(
    status_filter: str | None = Query(default=None, alias='status'),
    barber_id: int | None = Query(default=None),
    limit: int | None = Query(default=None, ge=1, le=500),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        query = db.query(Appointment)

        if current_user.role == ROLE_CLIENT:
            query = query.filter(Appointment.client_id == current_user.id)
        elif current_user.role == ROLE_BARBER:
            barber = get_barber_for_user(current_user, db)
            if barber is None:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail='Barber profile not found.',
                )
            query = query.filter(Appointment.barber_id == barber.id)

        if status_filter:
            normalized_status = status_filter.strip()
            if normalized_status.lower() == UPCOMING_FILTER:
                query = query.filter(
                    Appointment.status.in_([STATUS_PENDING, STATUS_CONFIRMED]),
                    Appointment.date >= date.today(),
                )
            elif normalized_status.upper() in APPOINTMENT_STATUSES:
                query = query.filter(Appointment.status == normalized_status.upper())
            else:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail='Invalid appointment status.',
                )

        if barber_id is not None:
            query = query.filter(Appointment.barber_id == barber_id)

        query = query.order_by(Appointment.date.desc(), Appointment.time.desc())
        if limit:
            query = query.limit(limit)

        return query.all()
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.delete('/{appointment_id}', response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = get_appointment_or_404(appointment_id, db)

        if current_user.role != ROLE_ADMIN:
            is_owner = appointment.client_id == current_user.id
            barber = get_barber_for_user(current_user, db)
            is_assigned_barber = barber is not None and barber.id == appointment.barber_id
            if not (is_owner or is_assigned_barber):
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail='Only the client who booked this appointment can cancel it.',
                )

        if appointment.status not in ALLOWED_STATUS_TRANSITIONS or STATUS_CANCELLED not in ALLOWED_STATUS_TRANSITIONS[appointment.status]:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f'Appointments with status {appointment.status} cannot be cancelled.',
            )

        if current_user.role != ROLE_ADMIN and not can_cancel_appointment(appointment, datetime.now()):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=(
                    'Appointments must be cancelled at least '
                    f'{config.CANCELLATION_NOTICE_HOURS} hours in advance.'
                ),
            )

        appointment.status = STATUS_CANCELLED
        appointment.cancelled_at = datetime.now()
        appointment.cancellation_reason = DEFAULT_CANCELLATION_REASON
        db.commit()
        db.refresh(appointment)
        logger.info('Cancelled appointment %s', appointment.id)

        return appointment
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.patch('/{appointment_id}/status', response_model=AppointmentResponse)
def update_appointment_status(
    appointment_id: int,
    data: UpdateStatusRequest,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = get_appointment_or_404(appointment_id, db)
        ensure_staff_can_manage(appointment, current_user, db)

        if data.status not in ALLOWED_STATUS_TRANSITIONS.get(appointment.status, set()):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f'Cannot change status from {appointment.status} to {data.status}.',
            )

        appointment.status = data.status
        if data.status == STATUS_CANCELLED:
            appointment.cancelled_at = datetime.now()
            appointment.cancellation_reason = data.cancellation_reason or DEFAULT_CANCELLATION_REASON

        db.commit()
        db.refresh(appointment)
        logger.info('Appointment %s moved to %s', appointment.id, appointment.status)

        return appointment
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.post('/{appointment_id}/mark-paid', response_model=AppointmentResponse)
def mark_appointment_paid(
    appointment_id: int,
    data: MarkPaidRequest,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = get_appointment_or_404(appointment_id, db)
        ensure_staff_can_manage(appointment, current_user, db)

        if appointment.status == STATUS_CANCELLED:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='Cancelled appointments cannot be marked as paid.',
            )

        appointment.payment_method = data.payment_method
        appointment.payment_status = PAYMENT_STATUS_PAID
        db.commit()
        db.refresh(appointment)

        return appointment
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc
