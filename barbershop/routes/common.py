import logging

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from barbershop.database import SessionLocal, ensure_availability_schema, ensure_appointment_schema
from barbershop.scheduling.slots import StoredScheduleError

logger = logging.getLogger(__name__)

DATABASE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL and database credentials.'
STORED_SCHEDULE_INVALID_DETAIL = 'Stored schedule data is invalid. Contact the shop administrator.'


def database_unavailable(exc: SQLAlchemyError) -> HTTPException:
    logger.exception('Database operation failed', exc_info=exc)
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=DATABASE_UNAVAILABLE_DETAIL,
    )


def stored_schedule_invalid(exc: StoredScheduleError) -> HTTPException:
    logger.error('Stored schedule data could not be read: %s', exc)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=STORED_SCHEDULE_INVALID_DETAIL,
    )


def ensure_database_ready() -> None:
    try:
        ensure_availability_schema()
        ensure_appointment_schema()
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
