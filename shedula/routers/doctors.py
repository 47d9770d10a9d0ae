# shedula/routers/doctors.py
from datetime import date
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from .. import crud, schemas
from ..database import get_db
from ..dependencies import http_error
from ..models import ConsultationMode

router = APIRouter(
    prefix="/doctors",
    tags=["Doctors"],
    responses={404: {"description": "Not found"}},
)


@router.get("/", response_model=List[schemas.Doctor])
def list_doctors(
    specialization: Optional[str] = None,
    location: Optional[str] = None,
    available_only: bool = False,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
):
    return crud.get_doctors(db, specialization=specialization, location=location,
                            available_only=available_only, skip=skip, limit=limit)


@router.get("/{doctor_id}", response_model=schemas.Doctor)
def read_doctor(doctor_id: str, db: Session = Depends(get_db)):
    try:
        doctor = crud.get_doctor(db, doctor_id)
    except crud.CRUDError as e:
        raise http_error(e)
    if doctor is None:
        raise HTTPException(status_code=404, detail="Doctor not found")
    return doctor


@router.get("/{doctor_id}/slots", response_model=Dict[str, List[schemas.Slot]])
def read_doctor_slots(
    doctor_id: str,
    mode: ConsultationMode = ConsultationMode.clinic,
    on_date: Optional[date] = Query(None, alias="date"),
    db: Session = Depends(get_db),
):
    """
    Slot calendar for one consultation mode, keyed by ISO date.
    Pass `date` to narrow the result to a single day.
    """
    doctor = read_doctor(doctor_id, db)
    calendar = schemas.DoctorCalendar.model_validate(doctor.available_slots or {}).for_mode(mode)
    if on_date is not None:
        key = on_date.isoformat()
        return {key: calendar.get(key, [])}
    return calendar
