# shedula/services/order_service.py
import logging
import secrets
import string
import time
from datetime import date
from typing import Optional

from .. import schemas
from ..models import DeliveryStatus
from .local_store import MedicineOrderStore

logger = logging.getLogger(__name__)

DEFAULT_DELIVERY_NOTE = "Expected delivery in 2 days."
_ORDER_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits


class OrderError(Exception):
    pass


def generate_order_id() -> str:
    """ORDER-<epoch ms>-<4 random alphanumerics>"""
    suffix = "".join(secrets.choice(_ORDER_SUFFIX_ALPHABET) for _ in range(4))
    return f"ORDER-{int(time.time() * 1000)}-{suffix}"


def compute_total(medicine: schemas.Medicine, quantity: int) -> float:
    return round(medicine.price_per_unit * quantity, 2)


def place_order(
    store: MedicineOrderStore,
    medicine: schemas.Medicine,
    quantity: int,
    customer_name: str,
    city: str,
    address: str,
    phone_number: str,
    order_date: Optional[date] = None,
    order_id: Optional[str] = None,
) -> schemas.MedicineOrder:
    """
    Snapshot the medicine and price the order once. Later catalogue price
    changes do not touch orders already placed.
    """
    if quantity <= 0:
        raise OrderError("Quantity must be greater than 0.")
    if not all(value and value.strip() for value in (customer_name, city, address, phone_number)):
        raise OrderError("Please fill in all customer details.")

    order = schemas.MedicineOrder(
        order_id=order_id or generate_order_id(),
        medicine=medicine.model_copy(deep=True),
        quantity=quantity,
        total_price=compute_total(medicine, quantity),
        customer_name=customer_name.strip(),
        city=city.strip(),
        address=address.strip(),
        phone_number=phone_number.strip(),
        order_date=order_date or date.today(),
        delivery_status=DeliveryStatus.pending,
        delivery_note=DEFAULT_DELIVERY_NOTE,
    )
    store.create(order)
    logger.info(f"Placed order {order.order_id} for {quantity} x {medicine.name} ({order.total_price:.2f})")
    return order


def cancel_order(store: MedicineOrderStore, order_id: str) -> bool:
    """Hard delete: cancelled orders are removed, not flagged."""
    removed = store.remove(order_id)
    if removed:
        logger.info(f"Cancelled order {order_id}")
    return removed
