import asyncio
import logging
from dataclasses import dataclass
from datetime import date

from fastapi.concurrency import run_in_threadpool

from barbershop.core import config
from barbershop.scheduling.slots import (
    BookedSlot,
    InvalidAvailabilityRequest,
    StoredScheduleError,
    filter_conflicting_slots,
    format_time_of_day,
    generate_slot_starts,
    parse_time_of_day,
)

logger = logging.getLogger(__name__)

DAYS_OF_WEEK = ('MONDAY', 'TUESDAY', 'WEDNESDAY', 'THURSDAY', 'FRIDAY', 'SATURDAY', 'SUNDAY')


@dataclass(frozen=True)
class WeeklyWindow:
    day_of_week: str
    start_time: str
    end_time: str
    is_available: bool


@dataclass(frozen=True)
class DayOffEntry:
    date: date
    reason: str | None = None


def day_of_week_name(value: date) -> str:
    return DAYS_OF_WEEK[value.weekday()]


def compute_available_times(
    on_date: date,
    duration_minutes: int,
    weekly_availability: list[WeeklyWindow],
    days_off: list[DayOffEntry],
    booked: list[BookedSlot],
    step_minutes: int = config.SLOT_STEP_MINUTES,
) -> list[str]:
    """Bookable ``HH:MM`` start times for one barber on ``on_date``.

    A day off wins over the weekly schedule. A weekday without a record, or
    one marked unavailable, has no slots.
    """
    if not isinstance(on_date, date):
        raise InvalidAvailabilityRequest('A calendar date is required.')
    if isinstance(duration_minutes, bool) or not isinstance(duration_minutes, int) or duration_minutes <= 0:
        raise InvalidAvailabilityRequest('Service duration must be a positive number of minutes.')

    if any(day_off.date == on_date for day_off in days_off):
        return []

    weekday = day_of_week_name(on_date)
    window = next((entry for entry in weekly_availability if entry.day_of_week == weekday), None)
    if window is None or not window.is_available:
        return []

    try:
        opening = parse_time_of_day(window.start_time)
        closing = parse_time_of_day(window.end_time)
    except InvalidAvailabilityRequest as exc:
        raise StoredScheduleError(f'Stored {weekday} availability window is invalid.') from exc
    candidates = generate_slot_starts(opening, closing, step_minutes)
    available = filter_conflicting_slots(candidates, duration_minutes, closing, booked)

    return [format_time_of_day(slot) for slot in available]


class AvailabilityResolver:
    """Answers availability queries against a store.

    The store must provide ``get_weekly_availability(barber_id)``,
    ``get_days_off(barber_id)`` and ``get_active_appointments(barber_id, on_date)``.
    Store calls are blocking; they run concurrently in the threadpool.
    """

    def __init__(self, store, step_minutes: int = config.SLOT_STEP_MINUTES) -> None:
        if step_minutes <= 0:
            raise InvalidAvailabilityRequest('Slot step must be a positive number of minutes.')
        self.store = store
        self.step_minutes = step_minutes

    async def resolve(self, barber_id: int, on_date: date, service_duration_minutes: int) -> list[str]:
        if not isinstance(on_date, date):
            raise InvalidAvailabilityRequest('A calendar date is required.')
        if (
            isinstance(service_duration_minutes, bool)
            or not isinstance(service_duration_minutes, int)
            or service_duration_minutes <= 0
        ):
            raise InvalidAvailabilityRequest('Service duration must be a positive number of minutes.')

        weekly_availability, days_off, booked = await asyncio.gather(
            run_in_threadpool(self.store.get_weekly_availability, barber_id),
            run_in_threadpool(self.store.get_days_off, barber_id),
            run_in_threadpool(self.store.get_active_appointments, barber_id, on_date),
        )

        available = compute_available_times(
            on_date,
            service_duration_minutes,
            weekly_availability,
            days_off,
            booked,
            step_minutes=self.step_minutes,
        )
        logger.debug(
            'Resolved %d slots for barber %s on %s (%d min)',
            len(available),
            barber_id,
            on_date.isoformat(),
            service_duration_minutes,
        )
        return available
