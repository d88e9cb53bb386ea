# estoque/scheduler.py
from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy.exc import OperationalError

from .config import RESERVATION_SWEEP_MINUTES
from .db import SessionLocal
from .micromode import release_expired_reservations
from .utils import logger, retry

scheduler = BackgroundScheduler()


@retry(OperationalError, tries=3, delay=5)
def sweep_expired_reservations():
    db = SessionLocal()
    try:
        return release_expired_reservations(db)
    finally:
        db.close()


def start_scheduler():
    if scheduler.running:
        return scheduler
    scheduler.add_job(sweep_expired_reservations, 'interval', minutes=RESERVATION_SWEEP_MINUTES,
                      id="reservation-sweep", replace_existing=True)
    scheduler.start()
    logger.info("Scheduler started (reservation sweep every %d min)", RESERVATION_SWEEP_MINUTES)
    return scheduler
