import logging
from datetime import date, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, field_validator, model_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from barbershop.auth.dependencies import require_barber
from barbershop.models.appointment import Appointment
from barbershop.models.availability import Availability
from barbershop.models.barber import Barber
from barbershop.models.day_off import DayOff
from barbershop.models.manual_payment import ManualPayment
from barbershop.models.service import Service
from barbershop.models.user import User
from barbershop.routes.appointment_routes import PAYMENT_METHODS
from barbershop.routes.common import database_unavailable, ensure_database_ready, get_db
from barbershop.scheduling.resolver import DAYS_OF_WEEK
from barbershop.scheduling.slots import InvalidAvailabilityRequest, parse_time_of_day

router = APIRouter(tags=['barber'])

logger = logging.getLogger(__name__)

MAX_DAY_OFF_REASON_LENGTH = 200
MAX_MANUAL_PAYMENT_TEXT_LENGTH = 200
DEFAULT_MANUAL_PAYMENTS_LIMIT = 50
DEFAULT_PAYMENT_METHOD = 'CASH'
EARNINGS_PERIODS = {'week', 'month', 'custom'}
PAYMENT_SOURCE_APPOINTMENT = 'appointment'
PAYMENT_SOURCE_MANUAL = 'manual'


class WeeklyAvailabilityItem(BaseModel):
    day_of_week: str
    start_time: str
    end_time: str
    is_available: bool = True

    @field_validator('day_of_week')
    @classmethod
    def validate_day_of_week(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in DAYS_OF_WEEK:
            raise ValueError('Invalid day of week.')
        return normalized

    @field_validator('start_time', 'end_time')
    @classmethod
    def validate_time_of_day(cls, value: str) -> str:
        try:
            return parse_time_of_day(value).strftime('%H:%M')
        except InvalidAvailabilityRequest as exc:
            raise ValueError(str(exc)) from exc

    @model_validator(mode='after')
    def validate_window(self) -> 'WeeklyAvailabilityItem':
        if self.is_available and self.start_time >= self.end_time:
            raise ValueError('Start time must be before end time on available days.')
        return self


class UpdateAvailabilityRequest(BaseModel):
    availability: list[WeeklyAvailabilityItem]

    @field_validator('availability')
    @classmethod
    def validate_unique_days(cls, value: list[WeeklyAvailabilityItem]) -> list[WeeklyAvailabilityItem]:
        days = [item.day_of_week for item in value]
        if len(days) != len(set(days)):
            raise ValueError('Each day of week may appear only once.')
        return value


class AvailabilityResponse(BaseModel):
    id: int
    day_of_week: str
    start_time: str
    end_time: str
    is_available: bool

    class Config:
        from_attributes = True


class UpdateAvailabilityResponse(BaseModel):
    message: str
    availability: list[AvailabilityResponse]


class CreateDayOffRequest(BaseModel):
    date: date
    reason: str | None = None

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > MAX_DAY_OFF_REASON_LENGTH:
            raise ValueError(f'Reason must be {MAX_DAY_OFF_REASON_LENGTH} characters or fewer.')

        return normalized


class DayOffResponse(BaseModel):
    id: int
    date: date
    reason: str | None = None

    class Config:
        from_attributes = True


class CreateManualPaymentRequest(BaseModel):
    amount: float
    payment_method: str
    description: str | None = None
    client_name: str | None = None
    paid_on: date | None = Field(default=None, alias='date')

    class Config:
        populate_by_name = True

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, value: float) -> float:
        if value <= 0:
            raise ValueError('Amount must be greater than zero.')
        return value

    @field_validator('payment_method')
    @classmethod
    def validate_payment_method(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in PAYMENT_METHODS:
            raise ValueError('Invalid payment method.')
        return normalized

    @field_validator('description', 'client_name')
    @classmethod
    def validate_optional_text(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > MAX_MANUAL_PAYMENT_TEXT_LENGTH:
            raise ValueError(f'Text fields must be {MAX_MANUAL_PAYMENT_TEXT_LENGTH} characters or fewer.')

        return normalized


class ManualPaymentResponse(BaseModel):
    id: int
    amount: float
    payment_method: str
    description: str | None = None
    client_name: str | None = None
    date: date

    class Config:
        from_attributes = True


class PaymentMethodSummary(BaseModel):
    count: int
    total: float


class EarningsPayment(BaseModel):
    id: int
    source: str = PAYMENT_SOURCE_APPOINTMENT
    client_name: str
    service_name: str
    amount: float
    payment_method: str
    date: date
    time: str


class EarningsResponse(BaseModel):
    period: str
    start_date: date
    end_date: date
    total_earnings: float
    total_clients: int
    average_per_client: float
    by_payment_method: dict[str, PaymentMethodSummary]
    payments: list[EarningsPayment]


def day_of_week_order(entry: Availability) -> int:
    return DAYS_OF_WEEK.index(entry.day_of_week) if entry.day_of_week in DAYS_OF_WEEK else len(DAYS_OF_WEEK)


def list_weekly_availability(barber_id: int, db: Session) -> list[Availability]:
    rows = db.query(Availability).filter(Availability.barber_id == barber_id).all()
    return sorted(rows, key=day_of_week_order)


def resolve_earnings_period(
    period: str,
    today: date,
    start_date: date | None = None,
    end_date: date | None = None,
) -> tuple[date, date]:
    """Inclusive date range for an earnings period. Weeks start on Monday."""
    if period == 'month':
        first_day = today.replace(day=1)
        next_month = (first_day + timedelta(days=32)).replace(day=1)
        return first_day, next_month - timedelta(days=1)

    if period == 'custom':
        if start_date is None or end_date is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='Custom periods require start_date and end_date.',
            )
        if start_date > end_date:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='start_date must not be after end_date.',
            )
        return start_date, end_date

    week_start = today - timedelta(days=today.weekday())
    return week_start, week_start + timedelta(days=6)


def summarize_earnings(payments: list[EarningsPayment]) -> dict:
    total = sum(payment.amount for payment in payments)
    count = len(payments)

    by_payment_method: dict[str, PaymentMethodSummary] = {}
    for payment in payments:
        summary = by_payment_method.setdefault(payment.payment_method, PaymentMethodSummary(count=0, total=0.0))
        summary.count += 1
        summary.total += payment.amount

    return {
        'total_earnings': total,
        'total_clients': count,
        'average_per_client': total / count if count else 0.0,
        'by_payment_method': by_payment_method,
    }


@router.get('/availability', response_model=list[AvailabilityResponse])
def get_my_availability(barber: Barber = Depends(require_barber), db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        return list_weekly_availability(barber.id, db)
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.put('/availability', response_model=UpdateAvailabilityResponse)
def update_my_availability(
    data: UpdateAvailabilityRequest,
    barber: Barber = Depends(require_barber),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        existing = {
            row.day_of_week: row
            for row in db.query(Availability).filter(Availability.barber_id == barber.id).all()
        }

        for item in data.availability:
            row = existing.get(item.day_of_week)
            if row is None:
                row = Availability(barber_id=barber.id, day_of_week=item.day_of_week)
                db.add(row)
            row.start_time = item.start_time
            row.end_time = item.end_time
            row.is_available = item.is_available

        db.commit()
        logger.info('Barber %s updated availability for %d days', barber.id, len(data.availability))

        return UpdateAvailabilityResponse(
            message='Availability updated.',
            availability=[AvailabilityResponse.model_validate(row) for row in list_weekly_availability(barber.id, db)],
        )
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.get('/days-off', response_model=list[DayOffResponse])
def list_my_days_off(barber: Barber = Depends(require_barber), db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        return db.query(DayOff).filter(
            DayOff.barber_id == barber.id,
            DayOff.date >= date.today(),
        ).order_by(DayOff.date.asc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.post('/days-off', response_model=DayOffResponse, status_code=status.HTTP_201_CREATED)
def create_day_off(
    data: CreateDayOffRequest,
    barber: Barber = Depends(require_barber),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        existing_day_off = db.query(DayOff).filter(
            DayOff.barber_id == barber.id,
            DayOff.date == data.date,
        ).first()

        if existing_day_off:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='A day off is already registered for this date.',
            )

        day_off = DayOff(barber_id=barber.id, date=data.date, reason=data.reason)
        db.add(day_off)
        db.commit()
        db.refresh(day_off)
        logger.info('Barber %s added day off on %s', barber.id, data.date.isoformat())

        return day_off
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail='A day off is already registered for this date.',
        ) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.delete('/days-off/{day_off_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_day_off(
    day_off_id: int,
    barber: Barber = Depends(require_barber),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        day_off = db.query(DayOff).filter(DayOff.id == day_off_id).first()

        if not day_off:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Day off not found.',
            )

        if day_off.barber_id != barber.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail='You cannot delete another barber\'s day off.',
            )

        db.delete(day_off)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.get('/manual-payments', response_model=list[ManualPaymentResponse])
def list_my_manual_payments(
    limit: int = Query(default=DEFAULT_MANUAL_PAYMENTS_LIMIT, ge=1, le=500),
    barber: Barber = Depends(require_barber),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return db.query(ManualPayment).filter(
            ManualPayment.barber_id == barber.id,
        ).order_by(ManualPayment.date.desc(), ManualPayment.id.desc()).limit(limit).all()
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.post('/manual-payments', response_model=ManualPaymentResponse, status_code=status.HTTP_201_CREATED)
def create_manual_payment(
    data: CreateManualPaymentRequest,
    barber: Barber = Depends(require_barber),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        payment = ManualPayment(
            barber_id=barber.id,
            amount=data.amount,
            payment_method=data.payment_method,
            description=data.description,
            client_name=data.client_name,
            date=data.paid_on or date.today(),
        )
        db.add(payment)
        db.commit()
        db.refresh(payment)
        logger.info('Barber %s recorded manual payment %s of %.2f', barber.id, payment.id, payment.amount)

        return payment
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.get('/earnings', response_model=EarningsResponse)
def get_my_earnings(
    period: str = Query(default='week'),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    barber: Barber = Depends(require_barber),
    db: Session = Depends(get_db),
):
    normalized_period = period.strip().lower()
    if normalized_period not in EARNINGS_PERIODS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Period must be one of: week, month, custom.',
        )

    range_start, range_end = resolve_earnings_period(normalized_period, date.today(), start_date, end_date)

    ensure_database_ready()

    try:
        rows = db.query(Appointment, Service, User).join(
            Service, Service.id == Appointment.service_id,
        ).outerjoin(
            User, User.id == Appointment.client_id,
        ).filter(
            Appointment.barber_id == barber.id,
            Appointment.status == 'COMPLETED',
            Appointment.payment_status == 'PAID',
            Appointment.date >= range_start,
            Appointment.date <= range_end,
        ).all()
        manual_rows = db.query(ManualPayment).filter(
            ManualPayment.barber_id == barber.id,
            ManualPayment.date >= range_start,
            ManualPayment.date <= range_end,
        ).all()
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc

    payments = [
        EarningsPayment(
            id=appointment.id,
            client_name=(client.name or client.email) if client else 'Walk-in client',
            service_name=service.name,
            amount=service.price or 0.0,
            payment_method=appointment.payment_method or DEFAULT_PAYMENT_METHOD,
            date=appointment.date,
            time=appointment.time,
        )
        for appointment, service, client in rows
    ]
    payments += [
        EarningsPayment(
            id=manual.id,
            source=PAYMENT_SOURCE_MANUAL,
            client_name=manual.client_name or 'Walk-in client',
            service_name=manual.description or 'Manual payment',
            amount=manual.amount,
            payment_method=manual.payment_method,
            date=manual.date,
            time='',
        )
        for manual in manual_rows
    ]
    # Manual payments carry no time, so they sort after same-day appointments.
    payments.sort(key=lambda payment: (payment.date, payment.time), reverse=True)

    return EarningsResponse(
        period=normalized_period,
        start_date=range_start,
        end_date=range_end,
        payments=payments,
        **summarize_earnings(payments),
    )
