# estoque/main.py
from fastapi import FastAPI

import estoque.models  # noqa: F401 ensure models are imported so tables are known
from estoque.api.routes import router as api_router
from estoque.config import RESERVATION_SWEEP_ENABLED, SEED_DEFAULTS
from estoque.db import Base, SessionLocal, engine
from estoque.errors import register_error_handlers
from estoque.scheduler import scheduler, start_scheduler
from estoque.seed import seed_defaults
from estoque.utils import logger

app = FastAPI(title="V8 Estoque")
register_error_handlers(app)
app.include_router(api_router)


@app.on_event("startup")
def on_startup():
    Base.metadata.create_all(bind=engine)
    if SEED_DEFAULTS:
        db = SessionLocal()
        try:
            seed_defaults(db)
        finally:
            db.close()
    if RESERVATION_SWEEP_ENABLED:
        start_scheduler()
    logger.info("Estoque API ready")


@app.on_event("shutdown")
def on_shutdown():
    if scheduler.running:
        scheduler.shutdown(wait=False)
