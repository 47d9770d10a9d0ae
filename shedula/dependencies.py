# shedula/dependencies.py
from functools import lru_cache
from typing import Optional

from fastapi import Header, HTTPException, status

from .config import get_settings
from .crud import CRUDError, RecordNotFoundError, SlotAlreadyBookedError
from .services.local_store import MedicineOrderStore
from .storage import KeyValueStorage, build_storage


@lru_cache()
def get_storage() -> KeyValueStorage:
    """Process-wide local storage, chosen once from STORAGE_BACKEND."""
    return build_storage(get_settings())


@lru_cache()
def get_order_store() -> MedicineOrderStore:
    """One store per process so its lock covers every request."""
    return MedicineOrderStore(get_storage())


def get_caller_id(x_user_id: Optional[str] = Header(None)) -> Optional[str]:
    """Id asserted by the identity provider in front of this service. Recorded, never verified."""
    if x_user_id is None:
        return None
    return x_user_id.strip() or None


def http_error(e: Exception) -> HTTPException:
    """Map record-service failures onto HTTP status codes."""
    if isinstance(e, RecordNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, SlotAlreadyBookedError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if isinstance(e, CRUDError) and str(e).startswith("Database error"):
        return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Record store unavailable")
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
