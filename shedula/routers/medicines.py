# shedula/routers/medicines.py
# Catalogue lookups plus the order history kept in local storage.
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status

from .. import schemas
from ..dependencies import get_order_store
from ..services import directory_service, order_service
from ..services.local_store import MedicineOrderStore

router = APIRouter(
    prefix="/medicines",
    tags=["Medicines"],
    responses={404: {"description": "Not found"}},
)

orders_router = APIRouter(
    prefix="/medicine-orders",
    tags=["Medicine Orders"],
    responses={404: {"description": "Not found"}},
)


@router.get("/", response_model=List[schemas.Medicine])
def search_medicines(q: Optional[str] = None, category: Optional[str] = None):
    return directory_service.search_medicines(q, category)


@router.get("/categories", response_model=List[str])
def list_categories():
    return directory_service.MEDICINE_CATEGORIES


@router.get("/{medicine_id}", response_model=schemas.Medicine)
def read_medicine(medicine_id: str):
    medicine = directory_service.get_medicine(medicine_id)
    if medicine is None:
        raise HTTPException(status_code=404, detail="Medicine not found")
    return medicine


@orders_router.get("/", response_model=List[schemas.MedicineOrder])
def list_orders(store: MedicineOrderStore = Depends(get_order_store)):
    return store.list()


@orders_router.post("/", response_model=schemas.MedicineOrder, status_code=201)
def place_order(order: schemas.MedicineOrderCreate, store: MedicineOrderStore = Depends(get_order_store)):
    medicine = directory_service.get_medicine(order.medicine_id)
    if medicine is None:
        raise HTTPException(status_code=404, detail="Medicine not found")
    try:
        return order_service.place_order(
            store,
            medicine,
            order.quantity,
            order.customer_name,
            order.city,
            order.address,
            order.phone_number,
        )
    except order_service.OrderError as e:
        raise HTTPException(status_code=400, detail=str(e))


@orders_router.patch("/{order_id}", response_model=schemas.MedicineOrder)
def update_order(order_id: str, order_update: schemas.MedicineOrderUpdate,
                 store: MedicineOrderStore = Depends(get_order_store)):
    changes = order_update.model_dump(exclude_unset=True, exclude_none=True)
    if not store.update_fields(order_id, **changes):
        raise HTTPException(status_code=404, detail="Order not found")
    return store.get(order_id)


@orders_router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
def cancel_order(order_id: str, store: MedicineOrderStore = Depends(get_order_store)):
    if not order_service.cancel_order(store, order_id):
        raise HTTPException(status_code=404, detail="Order not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
