# shedula/routers/health.py
from fastapi import APIRouter

from .. import schemas
from ..config import get_settings
from ..database import check_connection
from ..dependencies import get_storage

router = APIRouter(
    prefix="/health",
    tags=["Health Checks"],
)


@router.get("/", response_model=schemas.HealthResponse)
def health_check():
    settings = get_settings()
    storage = get_storage()
    database_ok = check_connection()
    return schemas.HealthResponse(
        status="ok" if database_ok else "degraded",
        environment=settings.environment,
        database=database_ok,
        storage_backend=storage.name,
        storage_available=storage.available,
    )
