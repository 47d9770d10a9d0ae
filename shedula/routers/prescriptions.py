# shedula/routers/prescriptions.py
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from .. import crud, schemas
from ..database import get_db
from ..dependencies import get_caller_id, http_error

router = APIRouter(
    prefix="/prescriptions",
    tags=["Prescriptions"],
    responses={404: {"description": "Not found"}},
)


@router.post("/", response_model=schemas.RecordCreated, status_code=201)
def create_prescription(
    prescription: schemas.PrescriptionCreate,
    db: Session = Depends(get_db),
    caller_id: Optional[str] = Depends(get_caller_id),
):
    """
    Issue a prescription. The caller is recorded as the prescribing doctor
    when the body does not name one.
    """
    if prescription.doctor_id is None and caller_id is not None:
        prescription = prescription.model_copy(update={"doctor_id": caller_id})
    try:
        return schemas.RecordCreated(id=crud.create_prescription(db, prescription))
    except crud.CRUDError as e:
        raise http_error(e)


@router.get("/", response_model=List[schemas.Prescription])
def list_prescriptions(
    owner: Literal["patient", "doctor"] = "patient",
    owner_id: Optional[str] = None,
    db: Session = Depends(get_db),
    caller_id: Optional[str] = Depends(get_caller_id),
):
    owner_id = owner_id or caller_id
    if not owner_id:
        raise HTTPException(status_code=400, detail="owner_id or X-User-Id header is required")
    return crud.list_prescriptions_by_owner(db, owner_id, owner=owner)


@router.get("/{prescription_id}", response_model=schemas.Prescription)
def read_prescription(prescription_id: str, db: Session = Depends(get_db)):
    try:
        prescription = crud.get_prescription(db, prescription_id)
    except crud.CRUDError as e:
        raise http_error(e)
    if prescription is None:
        raise HTTPException(status_code=404, detail="Prescription not found")
    return prescription


@router.patch("/{prescription_id}", response_model=schemas.Prescription)
def update_prescription(prescription_id: str, prescription_update: schemas.PrescriptionUpdate, db: Session = Depends(get_db)):
    try:
        return crud.update_prescription(db, prescription_id, prescription_update)
    except crud.CRUDError as e:
        raise http_error(e)


@router.delete("/{prescription_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_prescription(prescription_id: str, db: Session = Depends(get_db)):
    try:
        deleted = crud.delete_prescription(db, prescription_id)
    except crud.CRUDError as e:
        raise http_error(e)
    if not deleted:
        raise HTTPException(status_code=404, detail="Prescription not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
