# estoque/config.py
"""Environment-driven settings.

Values come from the process environment, optionally populated from a `.env`
file in the working directory.
"""
import os
from dotenv import load_dotenv

load_dotenv()


def _flag(name, default="1"):
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


DATABASE_URL = os.getenv("POSTGRES_URL")
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", 5))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", 10))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

UPLOAD_DIR = os.getenv("UPLOAD_DIR", os.path.join(os.getcwd(), "uploads", "imports"))
MAX_UPLOAD_MB = int(os.getenv("MAX_UPLOAD_MB", 50))

BATCH_MAX_OPERATIONS = int(os.getenv("BATCH_MAX_OPERATIONS", 100))

RESERVATION_SWEEP_ENABLED = _flag("RESERVATION_SWEEP_ENABLED")
RESERVATION_SWEEP_MINUTES = int(os.getenv("RESERVATION_SWEEP_MINUTES", 15))

SEED_DEFAULTS = _flag("SEED_DEFAULTS")
