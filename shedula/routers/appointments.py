# shedula/routers/appointments.py
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from .. import crud, schemas
from ..config import get_settings
from ..database import get_db
from ..dependencies import get_caller_id, http_error

router = APIRouter(
    prefix="/appointments",
    tags=["Appointments"],
    responses={404: {"description": "Not found"}},
)


def _get_or_404(db: Session, appointment_id: str):
    try:
        appointment = crud.get_appointment(db, appointment_id)
    except crud.CRUDError as e:
        raise http_error(e)
    if appointment is None:
        raise HTTPException(status_code=404, detail="Appointment not found")
    return appointment


@router.post("/book", response_model=schemas.Appointment, status_code=201)
def book_appointment(
    booking: schemas.BookingRequest,
    db: Session = Depends(get_db),
    caller_id: Optional[str] = Depends(get_caller_id),
):
    """Reserve a doctor's slot and create a Pending appointment with a confirmation token."""
    if booking.patient_id is None and caller_id is not None:
        booking = booking.model_copy(update={"patient_id": caller_id})
    try:
        return crud.book_appointment(db, booking, token_prefix=get_settings().token_prefix)
    except crud.CRUDError as e:
        raise http_error(e)


@router.post("/", response_model=schemas.RecordCreated, status_code=201)
def create_appointment(
    appointment: schemas.AppointmentCreate,
    db: Session = Depends(get_db),
    caller_id: Optional[str] = Depends(get_caller_id),
):
    """Store an appointment document as given. No slot is reserved."""
    if appointment.patient_id is None and caller_id is not None:
        appointment = appointment.model_copy(update={"patient_id": caller_id})
    try:
        return schemas.RecordCreated(id=crud.create_appointment(db, appointment))
    except crud.CRUDError as e:
        raise http_error(e)


@router.get("/", response_model=List[schemas.Appointment])
def list_appointments(
    owner: Literal["patient", "doctor"] = "patient",
    owner_id: Optional[str] = None,
    db: Session = Depends(get_db),
    caller_id: Optional[str] = Depends(get_caller_id),
):
    owner_id = owner_id or caller_id
    if not owner_id:
        raise HTTPException(status_code=400, detail="owner_id or X-User-Id header is required")
    return crud.list_appointments_by_owner(db, owner_id, owner=owner)


@router.get("/{appointment_id}", response_model=schemas.Appointment)
def read_appointment(appointment_id: str, db: Session = Depends(get_db)):
    return _get_or_404(db, appointment_id)


@router.patch("/{appointment_id}", response_model=schemas.Appointment)
def update_appointment(appointment_id: str, appointment_update: schemas.AppointmentUpdate, db: Session = Depends(get_db)):
    try:
        return crud.update_appointment(db, appointment_id, appointment_update)
    except crud.CRUDError as e:
        raise http_error(e)


@router.patch("/{appointment_id}/status", response_model=schemas.Appointment)
def update_appointment_status(appointment_id: str, status_update: schemas.AppointmentStatusUpdate, db: Session = Depends(get_db)):
    """Cancelled releases the slot; leaving Cancelled takes it back or fails with 409."""
    try:
        return crud.update_appointment(db, appointment_id, schemas.AppointmentUpdate(status=status_update.status))
    except crud.CRUDError as e:
        raise http_error(e)


@router.post("/{appointment_id}/reschedule", response_model=schemas.Appointment)
def reschedule_appointment(appointment_id: str, request: schemas.RescheduleRequest, db: Session = Depends(get_db)):
    try:
        return crud.reschedule_appointment(db, appointment_id, request.date, request.time)
    except crud.CRUDError as e:
        raise http_error(e)


@router.post("/{appointment_id}/cancel", response_model=schemas.Appointment)
def cancel_appointment(appointment_id: str, db: Session = Depends(get_db)):
    try:
        return crud.cancel_appointment(db, appointment_id)
    except crud.CRUDError as e:
        raise http_error(e)


@router.delete("/{appointment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_appointment(appointment_id: str, db: Session = Depends(get_db)):
    try:
        deleted = crud.delete_appointment(db, appointment_id)
    except crud.CRUDError as e:
        raise http_error(e)
    if not deleted:
        raise HTTPException(status_code=404, detail="Appointment not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
