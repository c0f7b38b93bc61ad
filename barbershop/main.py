import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from barbershop.core import config
from barbershop.database import Base, engine, ensure_availability_schema, ensure_appointment_schema
from barbershop.models import appointment, availability, barber, day_off, manual_payment, service, user  # noqa: F401
from barbershop.routes import appointment_routes, auth_routes, availability_routes, barber_routes, catalog_routes

logger = logging.getLogger(__name__)


def _configure_logging() -> None:
    root_logger = logging.getLogger()
    if root_logger.handlers:
        return
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
    )


_configure_logging()

app = FastAPI(title='Barbershop Booking API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)


@app.on_event('startup')
def initialize_database() -> None:
    config.validate_runtime_config()
    try:
        Base.metadata.create_all(bind=engine)
        ensure_availability_schema()
        ensure_appointment_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.get('/')
def root():
    return {'status': 'Barbershop API Running'}


app.include_router(auth_routes.router, prefix='/auth')
app.include_router(availability_routes.router, prefix='/availability')
app.include_router(barber_routes.router, prefix='/barber')
app.include_router(appointment_routes.router, prefix='/appointments')
app.include_router(catalog_routes.router)
