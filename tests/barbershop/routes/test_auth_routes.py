import pytest
from fastapi.testclient import TestClient

from barbershop.auth import jwt_handler
from barbershop.main import app
from barbershop.routes.common import get_db


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _auth_header(email: str) -> dict[str, str]:
    return {'Authorization': f'Bearer {jwt_handler.create_access_token(subject=email)}'}


def test_access_token_round_trips_subject() -> None:
    token = jwt_handler.create_access_token(subject=' Barber@Example.com ', role='barber', expires_minutes=5)

    payload = jwt_handler.decode_access_token(token)

    assert payload['sub'] == 'barber@example.com'
    assert payload['role'] == 'barber'


def test_expired_token_is_rejected(client, make_user) -> None:
    make_user('client@example.com')
    token = jwt_handler.create_access_token(subject='client@example.com', expires_minutes=-1)

    response = client.get('/auth/me', headers={'Authorization': f'Bearer {token}'})

    assert response.status_code == 401


def test_me_returns_current_user(client, make_user) -> None:
    make_user('client@example.com', name='Ana')

    response = client.get('/auth/me', headers=_auth_header('client@example.com'))

    assert response.status_code == 200
    assert response.json() == {'email': 'client@example.com', 'name': 'Ana', 'role': 'client'}


def test_me_rejects_invalid_token(client) -> None:
    response = client.get('/auth/me', headers={'Authorization': 'Bearer not-a-token'})

    assert response.status_code == 401
    assert response.json()['detail'] == 'Invalid token'


def test_me_rejects_unknown_user(client) -> None:
    response = client.get('/auth/me', headers=_auth_header('ghost@example.com'))

    assert response.status_code == 401
    assert response.json()['detail'] == 'User not found'


def test_barber_routes_reject_clients(client, make_user) -> None:
    make_user('client@example.com')

    response = client.get('/barber/availability', headers=_auth_header('client@example.com'))

    assert response.status_code == 401
    assert response.json()['detail'] == 'Only barbers can manage their schedule.'


def test_barber_routes_require_profile(client, make_user) -> None:
    make_user('lonely@example.com', role='barber')

    response = client.get('/barber/days-off', headers=_auth_header('lonely@example.com'))

    assert response.status_code == 404
    assert response.json()['detail'] == 'Barber profile not found.'


def test_barber_can_save_weekly_schedule_over_http(client, make_barber) -> None:
    make_barber(email='barber@example.com')
    payload = {
        'availability': [
            {'day_of_week': 'FRIDAY', 'start_time': '10:00', 'end_time': '19:00', 'is_available': True},
        ]
    }

    response = client.put('/barber/availability', json=payload, headers=_auth_header('barber@example.com'))

    assert response.status_code == 200
    assert response.json()['availability'][0]['day_of_week'] == 'FRIDAY'


def test_staff_routes_reject_clients(client, make_user) -> None:
    make_user('client@example.com')

    response = client.patch(
        '/appointments/1/status',
        json={'status': 'CONFIRMED'},
        headers=_auth_header('client@example.com'),
    )

    assert response.status_code == 403
