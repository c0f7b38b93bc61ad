"""Give every active barber a default weekly schedule for days with no record.

Run with ``python -m barbershop.add_default_availability``.
"""

import logging

from sqlalchemy.orm import Session

from barbershop.core import config
from barbershop.database import SessionLocal
from barbershop.models.availability import Availability
from barbershop.models.barber import Barber

logger = logging.getLogger(__name__)


def add_default_availability(
    db: Session,
    work_days: list[str] | None = None,
    open_time: str = config.DEFAULT_OPEN_TIME,
    close_time: str = config.DEFAULT_CLOSE_TIME,
) -> dict[int, list[str]]:
    days = [day.strip().upper() for day in (work_days or config.DEFAULT_WORK_DAYS)]
    added: dict[int, list[str]] = {}

    barbers = db.query(Barber).filter(Barber.is_active.is_(True)).order_by(Barber.id.asc()).all()
    logger.info('Found %d active barbers', len(barbers))

    for barber in barbers:
        existing_days = {
            day_of_week
            for (day_of_week,) in db.query(Availability.day_of_week).filter(Availability.barber_id == barber.id)
        }
        missing_days = [day for day in days if day not in existing_days]

        if not missing_days:
            continue

        for day in missing_days:
            db.add(
                Availability(
                    barber_id=barber.id,
                    day_of_week=day,
                    start_time=open_time,
                    end_time=close_time,
                    is_available=True,
                )
            )
        added[barber.id] = missing_days
        logger.info('Barber %s: adding %s', barber.id, ', '.join(missing_days))

    db.commit()
    return added


if __name__ == '__main__':
    logging.basicConfig(level=config.LOG_LEVEL, format='%(asctime)s %(levelname)s [%(name)s] %(message)s')
    session = SessionLocal()
    try:
        result = add_default_availability(session)
        logger.info('Default availability added for %d barbers', len(result))
    finally:
        session.close()
