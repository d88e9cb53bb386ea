# estoque/utils.py
"""Shared utilities: logging, retry decorator and clock helpers."""
import logging
import time
from datetime import date, datetime, timezone
from functools import wraps

from .config import LOG_LEVEL


def get_logger(name=__name__):
    logging.basicConfig(
        format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
        level=getattr(logging, LOG_LEVEL, logging.INFO)
    )
    return logging.getLogger(name)

logger = get_logger("estoque")

def retry(exceptions, tries=3, delay=1, backoff=2, logger=logger):
    def deco_retry(f):
        @wraps(f)
        def f_retry(*args, **kwargs):
            mtries, mdelay = tries, delay
            while mtries > 1:
                try:
                    return f(*args, **kwargs)
                except exceptions as e:
                    logger.warning("Retryable error: %s, retrying in %s sec", e, mdelay)
                    time.sleep(mdelay)
                    mtries -= 1
                    mdelay *= backoff
            return f(*args, **kwargs)
        return f_retry
    return deco_retry


def utcnow() -> datetime:
    # naive UTC, stored as-is in every DateTime column
    return datetime.now(timezone.utc).replace(tzinfo=None)


def today() -> date:
    return utcnow().date()


def current_period(now: datetime = None) -> str:
    """Monthly metrics bucket, `YYYY-MM`."""
    return (now or utcnow()).strftime("%Y-%m")


def relative_time(when: datetime, now: datetime = None) -> str:
    if when is None:
        return ""
    diff = (now or utcnow()) - when
    minutes = int(diff.total_seconds() // 60)
    hours = int(diff.total_seconds() // 3600)
    days = diff.days
    if minutes < 60:
        return f"{max(minutes, 0)}min atrás"
    if hours < 24:
        return f"{hours}h atrás"
    if days == 1:
        return "Ontem"
    return f"{days} dias atrás"
