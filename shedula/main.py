import random
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shedula import crud
from shedula.config import get_settings
from shedula.core.logging import setup_logging
from shedula.database import SessionLocal, create_tables
from shedula.routers import appointments, doctors, health, medicines, prescriptions
from shedula.services.directory_service import generate_doctors

settings = get_settings()
setup_logging(settings.log_level, json_output=settings.log_json)

logger = logging.getLogger(__name__)


def seed_directory_if_empty() -> int:
    """Populate the doctors table with the generated directory on first start."""
    db = SessionLocal()
    try:
        if crud.count_doctors(db) > 0:
            return 0
        rng = random.Random(settings.directory_seed)
        doctors = generate_doctors(
            settings.directory_size,
            rng=rng,
            availability=settings.slot_availability,
            days=settings.slot_days,
        )
        return crud.seed_doctors(db, doctors)
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and seed the directory before serving."""
    create_tables()
    if settings.seed_directory_on_startup:
        seeded = seed_directory_if_empty()
        if seeded:
            logger.info(f"Seeded doctor directory with {seeded} doctors")
    yield


app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS", "HEAD"],
    allow_headers=["*"],
)

app.include_router(doctors.router, prefix="/api/v1")
app.include_router(appointments.router, prefix="/api/v1")
app.include_router(prescriptions.router, prefix="/api/v1")
app.include_router(medicines.router, prefix="/api/v1")
app.include_router(medicines.orders_router, prefix="/api/v1")
app.include_router(health.router, prefix="/api/v1")


if __name__ == "__main__":
    uvicorn.run("shedula.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
