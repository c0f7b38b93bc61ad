import os
from dotenv import load_dotenv
from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from barbershop.core import config


load_dotenv()
DATABASE_URL = os.getenv("DATABASE_URL")

# Availability reads run in worker threads, so SQLite connections must be shareable.
connect_args = {'check_same_thread': False} if DATABASE_URL and DATABASE_URL.startswith('sqlite') else {}

engine = create_engine(DATABASE_URL, connect_args=connect_args, echo=config.SQL_ECHO)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_availability_schema_checked = False
_appointment_schema_checked = False


def _has_unique_key(inspector, table_name: str, column_names: list[str]) -> bool:
    unique_keys = [constraint['column_names'] for constraint in inspector.get_unique_constraints(table_name)]
    unique_keys += [index['column_names'] for index in inspector.get_indexes(table_name) if index.get('unique')]
    return any(list(key) == column_names for key in unique_keys)


def ensure_availability_schema() -> None:
    global _availability_schema_checked

    if _availability_schema_checked:
        return

    with _schema_lock:
        if _availability_schema_checked:
            return

        inspector = inspect(engine)

        if 'availability' not in inspector.get_table_names():
            _availability_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('availability')}
        migration_steps = [
            ('is_available', 'ALTER TABLE availability ADD COLUMN is_available BOOLEAN DEFAULT TRUE'),
        ]
        # Tables created before the model constraints existed get an equivalent unique index.
        missing_availability_key = not _has_unique_key(inspector, 'availability', ['barber_id', 'day_of_week'])
        missing_days_off_key = (
            'days_off' in inspector.get_table_names()
            and not _has_unique_key(inspector, 'days_off', ['barber_id', 'date'])
        )

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            if missing_availability_key:
                connection.execute(
                    text('CREATE UNIQUE INDEX IF NOT EXISTS uq_availability_barber_day ON availability(barber_id, day_of_week)')
                )
            if missing_days_off_key:
                connection.execute(
                    text('CREATE UNIQUE INDEX IF NOT EXISTS uq_days_off_barber_date ON days_off(barber_id, date)')
                )

        _availability_schema_checked = True


def ensure_appointment_schema() -> None:
    global _appointment_schema_checked

    if _appointment_schema_checked:
        return

    with _schema_lock:
        if _appointment_schema_checked:
            return

        inspector = inspect(engine)

        if 'appointments' not in inspector.get_table_names():
            _appointment_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('appointments')}
        migration_steps = [
            ('duration_minutes', 'ALTER TABLE appointments ADD COLUMN duration_minutes INTEGER'),
            ('payment_method', 'ALTER TABLE appointments ADD COLUMN payment_method VARCHAR'),
            ('payment_status', "ALTER TABLE appointments ADD COLUMN payment_status VARCHAR DEFAULT 'PENDING'"),
            ('cancelled_at', 'ALTER TABLE appointments ADD COLUMN cancelled_at TIMESTAMP'),
            ('cancellation_reason', 'ALTER TABLE appointments ADD COLUMN cancellation_reason VARCHAR'),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            if 'services' in inspector.get_table_names():
                connection.execute(
                    text(
                        'UPDATE appointments SET duration_minutes = ('
                        'SELECT services.duration_minutes FROM services WHERE services.id = appointments.service_id'
                        ') WHERE duration_minutes IS NULL'
                    )
                )
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_appointments_barber_date ON appointments(barber_id, date)')
            )
            connection.execute(
                text(
                    'CREATE UNIQUE INDEX IF NOT EXISTS uq_appointments_active_slot '
                    "ON appointments(barber_id, date, time) WHERE status <> 'CANCELLED'"
                )
            )

        _appointment_schema_checked = True
