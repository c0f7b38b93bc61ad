import pytest
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.pool import StaticPool

from barbershop import database


@pytest.fixture
def upgrade_engine(monkeypatch: pytest.MonkeyPatch):
    engine = create_engine('sqlite://', connect_args={'check_same_thread': False}, poolclass=StaticPool)
    monkeypatch.setattr(database, 'engine', engine)
    monkeypatch.setattr(database, '_availability_schema_checked', False)
    monkeypatch.setattr(database, '_appointment_schema_checked', False)
    try:
        yield engine
    finally:
        engine.dispose()


def _index_names(engine, table_name: str) -> set[str]:
    return {index['name'] for index in inspect(engine).get_indexes(table_name)}


def test_availability_upgrade_leaves_model_constraints_alone(upgrade_engine) -> None:
    database.Base.metadata.create_all(bind=upgrade_engine)

    database.ensure_availability_schema()

    assert 'uq_availability_barber_day' not in _index_names(upgrade_engine, 'availability')
    assert 'uq_days_off_barber_date' not in _index_names(upgrade_engine, 'days_off')
    constraint_names = {constraint['name'] for constraint in inspect(upgrade_engine).get_unique_constraints('availability')}
    assert 'uq_availability_barber_day' in constraint_names


def test_availability_upgrade_adds_unique_index_to_legacy_tables(upgrade_engine) -> None:
    with upgrade_engine.begin() as connection:
        connection.execute(text(
            'CREATE TABLE availability ('
            'id INTEGER PRIMARY KEY, barber_id INTEGER NOT NULL, day_of_week VARCHAR NOT NULL, '
            'start_time VARCHAR NOT NULL, end_time VARCHAR NOT NULL)'
        ))
        connection.execute(text(
            'CREATE TABLE days_off (id INTEGER PRIMARY KEY, barber_id INTEGER NOT NULL, date DATE NOT NULL, reason VARCHAR)'
        ))

    database.ensure_availability_schema()

    inspector = inspect(upgrade_engine)
    assert 'is_available' in {column['name'] for column in inspector.get_columns('availability')}
    assert 'uq_availability_barber_day' in _index_names(upgrade_engine, 'availability')
    assert 'uq_days_off_barber_date' in _index_names(upgrade_engine, 'days_off')


def test_appointment_upgrade_backfills_missing_durations_from_services(upgrade_engine) -> None:
    with upgrade_engine.begin() as connection:
        connection.execute(text('CREATE TABLE services (id INTEGER PRIMARY KEY, name VARCHAR, duration_minutes INTEGER)'))
        connection.execute(text(
            'CREATE TABLE appointments ('
            'id INTEGER PRIMARY KEY, client_id INTEGER, barber_id INTEGER NOT NULL, service_id INTEGER NOT NULL, '
            'date DATE NOT NULL, time VARCHAR NOT NULL, status VARCHAR, notes VARCHAR, created_at TIMESTAMP)'
        ))
        connection.execute(text("INSERT INTO services (id, name, duration_minutes) VALUES (1, 'Color', 45)"))
        connection.execute(text(
            "INSERT INTO appointments (id, barber_id, service_id, date, time, status) "
            "VALUES (1, 1, 1, '2026-01-05', '10:00', 'PENDING')"
        ))

    database.ensure_appointment_schema()

    with upgrade_engine.connect() as connection:
        row = connection.execute(text('SELECT duration_minutes, payment_status FROM appointments WHERE id = 1')).one()
    assert row.duration_minutes == 45
    assert row.payment_status == 'PENDING'
    assert 'uq_appointments_active_slot' in _index_names(upgrade_engine, 'appointments')
