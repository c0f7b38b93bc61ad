"""Slot generation and conflict filtering for a single working day.

Times of day are handled as minutes since midnight internally and as
``HH:MM`` strings at the storage and API boundaries.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, time

TIME_OF_DAY_FORMAT = '%H:%M'


class InvalidAvailabilityRequest(ValueError):
    """Raised when an availability query cannot be answered as asked."""


class StoredScheduleError(RuntimeError):
    """Raised when schedule or booking rows read from storage cannot be interpreted."""


@dataclass(frozen=True)
class BookedSlot:
    time: str
    duration_minutes: int


def parse_time_of_day(value: str) -> time:
    try:
        return datetime.strptime(value.strip(), TIME_OF_DAY_FORMAT).time()
    except (AttributeError, ValueError) as exc:
        raise InvalidAvailabilityRequest(f'Invalid time of day: {value!r}. Expected HH:MM.') from exc


def format_time_of_day(value: time) -> str:
    return value.strftime(TIME_OF_DAY_FORMAT)


def to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def from_minutes(minutes: int) -> time:
    return time(minutes // 60, minutes % 60)


def intervals_overlap(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    # Half-open intervals: touching ends do not overlap.
    return start_a < end_b and start_b < end_a


def generate_slot_starts(start_time: time, end_time: time, step_minutes: int) -> list[time]:
    """Return every start time in ``[start_time, end_time)`` spaced ``step_minutes`` apart.

    A closed day is represented by ``start_time >= end_time`` and yields no slots.
    """
    if step_minutes <= 0:
        raise InvalidAvailabilityRequest('Slot step must be a positive number of minutes.')

    current = to_minutes(start_time)
    end = to_minutes(end_time)
    slots: list[time] = []

    while current < end:
        slots.append(from_minutes(current))
        current += step_minutes

    return slots


def filter_conflicting_slots(
    candidates: Iterable[time],
    duration_minutes: int,
    closing_time: time,
    booked: Iterable[BookedSlot],
) -> list[time]:
    """Drop candidates that run past closing or overlap a booked appointment."""
    if duration_minutes <= 0:
        raise InvalidAvailabilityRequest('Service duration must be a positive number of minutes.')

    closing = to_minutes(closing_time)
    booked_intervals = []
    for slot in booked:
        try:
            booked_start = to_minutes(parse_time_of_day(slot.time))
        except InvalidAvailabilityRequest as exc:
            raise StoredScheduleError(f'Booked appointment has an invalid time: {slot.time!r}.') from exc
        if not isinstance(slot.duration_minutes, int) or slot.duration_minutes <= 0:
            raise StoredScheduleError(f'Booked appointment at {slot.time} has no usable duration.')
        booked_intervals.append((booked_start, booked_start + slot.duration_minutes))

    available: list[time] = []
    for candidate in candidates:
        start = to_minutes(candidate)
        end = start + duration_minutes

        if end > closing:
            continue

        if any(intervals_overlap(start, end, booked_start, booked_end) for booked_start, booked_end in booked_intervals):
            continue

        available.append(candidate)

    return available
