# shedula/schemas.py
import datetime as dt
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .models import (
    AppointmentStatus, AppointmentType, ConsultationMode, DeliveryStatus,
    PaymentMethod, PrescriptionStatus,
)


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


# --- Base Schemas ---
class BaseSchema(BaseModel):
    """Documents travel as camelCase JSON; Python code uses snake_case names."""
    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def to_document(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


# --- Slot / Doctor Schemas ---
class Slot(BaseSchema):
    time: str
    available: bool = True


class DoctorCalendar(BaseSchema):
    online: Dict[str, List[Slot]] = Field(default_factory=dict)
    clinic: Dict[str, List[Slot]] = Field(default_factory=dict)

    def for_mode(self, mode: ConsultationMode) -> Dict[str, List[Slot]]:
        return self.online if ConsultationMode(mode) is ConsultationMode.online else self.clinic


class Doctor(BaseSchema):
    id: str
    name: str
    specialization: str
    education: Optional[str] = None
    avatar: Optional[str] = None
    experience: int = 0
    location: Optional[str] = None
    rating: Optional[str] = None
    available: bool = True
    description: Optional[str] = None
    clinic_price: Optional[int] = None
    online_price: Optional[int] = None
    available_slots: DoctorCalendar = Field(default_factory=DoctorCalendar)

    def price_for(self, mode: ConsultationMode) -> Optional[int]:
        return self.online_price if ConsultationMode(mode) is ConsultationMode.online else self.clinic_price


# --- Appointment Schemas ---
class AppointmentBase(BaseSchema):
    doctor_id: Optional[str] = None
    doctor_name: Optional[str] = None
    doctor_specialization: Optional[str] = None
    doctor_avatar: Optional[str] = None
    date: dt.date
    time: str = Field(..., min_length=1, max_length=16)
    type: Optional[AppointmentType] = None
    token: Optional[str] = Field(None, max_length=16)
    patient_id: Optional[str] = None
    patient_name: Optional[str] = None
    patient_age: Optional[str] = Field(None, max_length=8)
    payment_method: Optional[PaymentMethod] = None
    consultation_fee: Optional[float] = None
    location: Optional[str] = None
    reason: Optional[str] = None
    notes: Optional[str] = None
    doctor_notes: Optional[str] = None
    rating: Optional[int] = Field(None, ge=0, le=5)
    status: AppointmentStatus = AppointmentStatus.pending
    original_date: Optional[dt.date] = None
    original_time: Optional[str] = None


class AppointmentCreate(AppointmentBase):
    pass


class Appointment(AppointmentBase):
    id: str = Field(..., min_length=1)
    created_at: Optional[dt.datetime] = Field(default_factory=_utcnow)


class AppointmentUpdate(BaseSchema):
    doctor_name: Optional[str] = None
    doctor_specialization: Optional[str] = None
    doctor_avatar: Optional[str] = None
    date: Optional[dt.date] = None
    time: Optional[str] = Field(None, min_length=1, max_length=16)
    type: Optional[AppointmentType] = None
    patient_name: Optional[str] = None
    patient_age: Optional[str] = Field(None, max_length=8)
    payment_method: Optional[PaymentMethod] = None
    consultation_fee: Optional[float] = None
    location: Optional[str] = None
    reason: Optional[str] = None
    notes: Optional[str] = None
    doctor_notes: Optional[str] = None
    rating: Optional[int] = Field(None, ge=0, le=5)
    status: Optional[AppointmentStatus] = None
    original_date: Optional[dt.date] = None
    original_time: Optional[str] = None


class AppointmentStatusUpdate(BaseSchema):
    status: AppointmentStatus


class BookingRequest(BaseSchema):
    doctor_id: str
    mode: ConsultationMode
    date: dt.date
    time: str = Field(..., min_length=1, max_length=16)
    patient_id: Optional[str] = None
    patient_name: str = Field(..., min_length=1)
    patient_age: str = Field(..., min_length=1, max_length=8)
    payment_method: PaymentMethod = PaymentMethod.cash
    reason: Optional[str] = None


class RescheduleRequest(BaseSchema):
    date: dt.date
    time: str = Field(..., min_length=1, max_length=16)


class BookingResponse(BaseSchema):
    id: str
    token: Optional[str] = None


# --- Prescription Schemas ---
class MedicinePrescription(BaseSchema):
    name: str = Field(..., min_length=1)
    dosage: str = Field(..., min_length=1)
    duration: str = Field(..., min_length=1)
    instructions: str = ""


class PrescriptionBase(BaseSchema):
    appointment_id: Optional[str] = None
    patient_id: Optional[str] = None
    patient_name: Optional[str] = None
    doctor_id: Optional[str] = None
    doctor_name: Optional[str] = None
    date: dt.date = Field(default_factory=dt.date.today)
    medicines: List[MedicinePrescription] = Field(..., min_length=1)
    notes: str = ""
    status: PrescriptionStatus = PrescriptionStatus.active


class PrescriptionCreate(PrescriptionBase):
    pass


class PrescriptionUpdate(BaseSchema):
    date: Optional[dt.date] = None
    medicines: Optional[List[MedicinePrescription]] = Field(None, min_length=1)
    notes: Optional[str] = None
    status: Optional[PrescriptionStatus] = None


class Prescription(PrescriptionBase):
    id: str
    created_at: Optional[dt.datetime] = None


class RecordCreated(BaseSchema):
    id: str


# --- Medicine Schemas ---
class Medicine(BaseSchema):
    id: str
    name: str
    first_letter_id: str
    category: str
    initial_quantity: int = 0
    price_per_unit: float
    description: str = ""


class MedicineOrder(BaseSchema):
    order_id: str = Field(..., min_length=1)
    medicine: Medicine
    quantity: int = Field(..., gt=0)
    total_price: float
    customer_name: str
    city: str
    address: str
    phone_number: str
    order_date: dt.date
    delivery_status: DeliveryStatus = DeliveryStatus.pending
    delivery_note: str = ""


class MedicineOrderCreate(BaseSchema):
    medicine_id: str
    quantity: int = Field(1, gt=0)
    customer_name: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    phone_number: str = Field(..., min_length=1, max_length=20)

    @field_validator("customer_name", "city", "address", "phone_number")
    @classmethod
    def not_blank(cls, v):
        if not v.strip():
            raise ValueError("Customer details must not be blank")
        return v.strip()


class MedicineOrderUpdate(BaseSchema):
    customer_name: Optional[str] = None
    city: Optional[str] = None
    address: Optional[str] = None
    phone_number: Optional[str] = Field(None, max_length=20)
    delivery_status: Optional[DeliveryStatus] = None
    delivery_note: Optional[str] = None


# --- Health Schemas ---
class HealthResponse(BaseSchema):
    status: str
    environment: str
    database: bool
    storage_backend: str
    storage_available: bool
