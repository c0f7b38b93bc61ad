from datetime import date

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from barbershop.main import app
from barbershop.routes.availability_routes import get_availability_store, parse_booking_date
from barbershop.routes.common import STORED_SCHEDULE_INVALID_DETAIL
from barbershop.scheduling.resolver import DayOffEntry, WeeklyWindow
from barbershop.scheduling.slots import BookedSlot

MONDAY = date(2026, 1, 5)


class StubStore:
    def __init__(self) -> None:
        self.weekly = [
            WeeklyWindow('MONDAY', '09:00', '18:00', True),
            WeeklyWindow('TUESDAY', '09:00', '18:00', False),
        ]
        self.days_off: list[DayOffEntry] = []
        self.appointments = [BookedSlot(time='11:00', duration_minutes=30)]
        # service id -> (duration, owning barber or None for shop-wide)
        self.services = {1: (30, None), 2: (60, None), 3: (45, 8)}
        self.barbers = {7, 8}

    def get_weekly_availability(self, barber_id: int) -> list[WeeklyWindow]:
        return self.weekly

    def get_days_off(self, barber_id: int) -> list[DayOffEntry]:
        return self.days_off

    def get_active_appointments(self, barber_id: int, on_date: date) -> list[BookedSlot]:
        return self.appointments if on_date == MONDAY else []

    def barber_is_active(self, barber_id: int) -> bool:
        return barber_id in self.barbers

    def get_service_duration(self, service_id: int, barber_id: int | None = None) -> int | None:
        if service_id not in self.services:
            return None
        duration, owner_id = self.services[service_id]
        if owner_id is not None and barber_id is not None and owner_id != barber_id:
            return None
        return duration


class BrokenStore(StubStore):
    def barber_is_active(self, barber_id: int) -> bool:
        raise OperationalError('SELECT 1', {}, Exception('connection refused'))


@pytest.fixture
def stub_store():
    store = StubStore()
    app.dependency_overrides[get_availability_store] = lambda: store
    try:
        yield store
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def client():
    return TestClient(app)


def test_parse_booking_date_accepts_iso_dates() -> None:
    assert parse_booking_date('2026-01-05') == MONDAY


@pytest.mark.parametrize('value', ['05/01/2026', '2026-13-01', 'tomorrow'])
def test_parse_booking_date_rejects_malformed_dates(value: str) -> None:
    with pytest.raises(HTTPException) as exception_info:
        parse_booking_date(value)

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'Date must use the YYYY-MM-DD format.'


def test_get_available_times_returns_camel_case_payload(client, stub_store) -> None:
    response = client.get('/availability', params={'barberId': 7, 'date': '2026-01-05', 'serviceId': 2})

    assert response.status_code == 200
    available = response.json()['availableTimes']
    assert '10:30' not in available
    assert '11:30' in available
    assert available[0] == '09:00'
    assert available[-1] == '17:00'


def test_get_available_times_defaults_to_one_step_without_service(client, stub_store) -> None:
    response = client.get('/availability', params={'barberId': 7, 'date': '2026-01-05'})

    assert response.status_code == 200
    available = response.json()['availableTimes']
    assert len(available) == 17
    assert '11:00' not in available


def test_get_available_times_returns_empty_list_on_day_off(client, stub_store) -> None:
    stub_store.days_off = [DayOffEntry(date=MONDAY)]

    response = client.get('/availability', params={'barberId': 7, 'date': '2026-01-05', 'serviceId': 1})

    assert response.status_code == 200
    assert response.json() == {'availableTimes': []}


def test_get_available_times_returns_empty_list_on_closed_day(client, stub_store) -> None:
    response = client.get('/availability', params={'barberId': 7, 'date': '2026-01-06', 'serviceId': 1})

    assert response.status_code == 200
    assert response.json() == {'availableTimes': []}


def test_get_available_times_rejects_malformed_date(client, stub_store) -> None:
    response = client.get('/availability', params={'barberId': 7, 'date': '2026-1-5x'})

    assert response.status_code == 400


def test_get_available_times_rejects_unknown_barber(client, stub_store) -> None:
    response = client.get('/availability', params={'barberId': 99, 'date': '2026-01-05'})

    assert response.status_code == 404
    assert response.json()['detail'] == 'Barber not found.'


def test_get_available_times_rejects_unknown_service(client, stub_store) -> None:
    response = client.get('/availability', params={'barberId': 7, 'date': '2026-01-05', 'serviceId': 42})

    assert response.status_code == 404
    assert response.json()['detail'] == 'Service not found.'


def test_get_available_times_requires_barber_and_date(client, stub_store) -> None:
    response = client.get('/availability', params={'date': '2026-01-05'})

    assert response.status_code == 422


def test_get_available_times_reports_store_failure_as_unavailable(client) -> None:
    app.dependency_overrides[get_availability_store] = lambda: BrokenStore()
    try:
        response = client.get('/availability', params={'barberId': 7, 'date': '2026-01-05'})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 503


def test_get_available_times_rejects_service_owned_by_another_barber(client, stub_store) -> None:
    response = client.get('/availability', params={'barberId': 7, 'date': '2026-01-05', 'serviceId': 3})

    assert response.status_code == 404
    assert response.json()['detail'] == 'Service not found.'


def test_get_available_times_accepts_service_owned_by_requested_barber(client, stub_store) -> None:
    response = client.get('/availability', params={'barberId': 8, 'date': '2026-01-05', 'serviceId': 3})

    assert response.status_code == 200
    available = response.json()['availableTimes']
    assert '10:30' not in available
    assert '11:30' in available
    assert available[-1] == '17:00'


def test_get_available_times_reports_corrupt_weekly_window_as_server_error(client, stub_store) -> None:
    stub_store.weekly = [WeeklyWindow('MONDAY', '9am', '18:00', True)]

    response = client.get('/availability', params={'barberId': 7, 'date': '2026-01-05', 'serviceId': 1})

    assert response.status_code == 500
    assert response.json()['detail'] == STORED_SCHEDULE_INVALID_DETAIL


def test_get_available_times_reports_corrupt_booking_as_server_error(client, stub_store) -> None:
    stub_store.appointments = [BookedSlot(time='eleven', duration_minutes=30)]

    response = client.get('/availability', params={'barberId': 7, 'date': '2026-01-05'})

    assert response.status_code == 500
    assert response.json()['detail'] == STORED_SCHEDULE_INVALID_DETAIL
