import os

os.environ.setdefault('DATABASE_URL', 'sqlite://')

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from barbershop.database import Base  # noqa: E402
from barbershop.models import appointment, availability, barber, day_off, manual_payment, service, user  # noqa: E402,F401

ROUTE_MODULES = (
    'barbershop.routes.availability_routes',
    'barbershop.routes.barber_routes',
    'barbershop.routes.appointment_routes',
    'barbershop.routes.catalog_routes',
)


@pytest.fixture(autouse=True)
def skip_schema_checks(monkeypatch: pytest.MonkeyPatch) -> None:
    for module_name in ROUTE_MODULES:
        monkeypatch.setattr(f'{module_name}.ensure_database_ready', lambda: None)


@pytest.fixture
def session_factory():
    engine = create_engine('sqlite://', connect_args={'check_same_thread': False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    try:
        yield testing_session_local
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    def _make_user(email: str, role: str = 'client', name: str | None = None) -> user.User:
        record = user.User(email=email, name=name, role=role, hashed_password='')
        db.add(record)
        db.commit()
        db.refresh(record)
        return record

    return _make_user


@pytest.fixture
def make_barber(db, make_user):
    def _make_barber(email: str = 'barber@example.com', name: str = 'Carlos', is_active: bool = True) -> barber.Barber:
        account = make_user(email, role='barber', name=name)
        record = barber.Barber(user_id=account.id, is_active=is_active)
        db.add(record)
        db.commit()
        db.refresh(record)
        return record

    return _make_barber


@pytest.fixture
def make_service(db):
    def _make_service(
        name: str = 'Haircut',
        duration_minutes: int = 30,
        price: float = 15.0,
        barber_id: int | None = None,
        is_active: bool = True,
    ) -> service.Service:
        record = service.Service(
            name=name,
            duration_minutes=duration_minutes,
            price=price,
            barber_id=barber_id,
            is_active=is_active,
        )
        db.add(record)
        db.commit()
        db.refresh(record)
        return record

    return _make_service
