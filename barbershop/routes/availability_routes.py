from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError

from barbershop.core import config
from barbershop.database import SessionLocal
from barbershop.routes.common import database_unavailable, ensure_database_ready, stored_schedule_invalid
from barbershop.scheduling.resolver import AvailabilityResolver
from barbershop.scheduling.slots import InvalidAvailabilityRequest, StoredScheduleError
from barbershop.scheduling.sql_store import SqlAvailabilityStore

router = APIRouter(tags=['availability'])

DATE_FORMAT = '%Y-%m-%d'


class AvailableTimesResponse(BaseModel):
    available_times: list[str] = Field(alias='availableTimes')

    class Config:
        populate_by_name = True


def get_availability_store() -> SqlAvailabilityStore:
    return SqlAvailabilityStore(SessionLocal)


def parse_booking_date(value: str) -> date:
    try:
        return datetime.strptime(value.strip(), DATE_FORMAT).date()
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Date must use the YYYY-MM-DD format.',
        ) from exc


@router.get('', response_model=AvailableTimesResponse)
async def get_available_times(
    barber_id: int = Query(..., alias='barberId'),
    date_value: str = Query(..., alias='date'),
    service_id: int | None = Query(default=None, alias='serviceId'),
    store=Depends(get_availability_store),
):
    on_date = parse_booking_date(date_value)

    await run_in_threadpool(ensure_database_ready)

    try:
        if not await run_in_threadpool(store.barber_is_active, barber_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Barber not found.',
            )

        duration_minutes = config.SLOT_STEP_MINUTES
        if service_id is not None:
            duration_minutes = await run_in_threadpool(store.get_service_duration, service_id, barber_id)
            if duration_minutes is None:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail='Service not found.',
                )

        resolver = AvailabilityResolver(store, step_minutes=config.SLOT_STEP_MINUTES)
        available_times = await resolver.resolve(barber_id, on_date, duration_minutes)
    except InvalidAvailabilityRequest as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except StoredScheduleError as exc:
        raise stored_schedule_invalid(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc

    return AvailableTimesResponse(available_times=available_times)
