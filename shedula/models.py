# shedula/models.py
import enum
import uuid

from sqlalchemy import (
    Column, Integer, String, DateTime, ForeignKey, Text, Date,
    Enum as SQLAlchemyEnum, Boolean, JSON, Numeric, Index,
    UniqueConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from .database import Base


class AppointmentStatus(str, enum.Enum):
    """Canonical appointment lifecycle. Rescheduled is re-entrant."""
    pending = "Pending"
    accepted = "Accepted"
    rescheduled = "Rescheduled"
    cancelled = "Cancelled"
    completed = "Completed"

    @property
    def is_active(self) -> bool:
        return self in (AppointmentStatus.pending, AppointmentStatus.accepted, AppointmentStatus.rescheduled)


class ConsultationMode(str, enum.Enum):
    online = "online"
    clinic = "clinic"


class AppointmentType(str, enum.Enum):
    online = "Online Consultation"
    clinic = "Clinic Visit"

    @property
    def mode(self) -> ConsultationMode:
        return ConsultationMode.online if self is AppointmentType.online else ConsultationMode.clinic

    @classmethod
    def for_mode(cls, mode: ConsultationMode) -> "AppointmentType":
        return cls.online if ConsultationMode(mode) is ConsultationMode.online else cls.clinic


class PaymentMethod(str, enum.Enum):
    cash = "cash"
    online = "online"


class DeliveryStatus(str, enum.Enum):
    pending = "pending"
    delivered = "delivered"
    cancelled = "cancelled"


class PrescriptionStatus(str, enum.Enum):
    active = "active"
    completed = "completed"
    cancelled = "cancelled"


def _new_id() -> str:
    return str(uuid.uuid4())


class Doctor(Base):
    """Persisted doctor directory entry with its two-mode slot calendar."""
    __tablename__ = "doctors"
    __table_args__ = (
        Index('idx_doctors_specialization', 'specialization'),
        Index('idx_doctors_location', 'location'),
    )

    id = Column(String(64), primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    specialization = Column(String(100), nullable=False)
    education = Column(String(255), nullable=True)
    avatar = Column(String(500), nullable=True)
    experience = Column(Integer, default=0)
    location = Column(String(100), nullable=True)
    rating = Column(String(8), nullable=True)
    available = Column(Boolean, default=True)
    description = Column(Text, nullable=True)
    clinic_price = Column(Integer, nullable=True)
    online_price = Column(Integer, nullable=True)

    # {"online": {"YYYY-MM-DD": [{"time": ..., "available": ...}]}, "clinic": {...}}
    available_slots = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class Appointment(Base):
    """Patient-facing appointment document. Doctor and patient display fields are denormalized copies."""
    __tablename__ = "appointments"
    __table_args__ = (
        Index('idx_appointments_patient_date', 'patient_id', 'date'),
        Index('idx_appointments_doctor_date', 'doctor_id', 'date'),
        Index('idx_appointments_status', 'status'),
    )

    id = Column(String(36), primary_key=True, default=_new_id)

    # Doctor reference
    doctor_id = Column(String(64), nullable=True, index=True)
    doctor_name = Column(String(255), nullable=True)
    doctor_specialization = Column(String(100), nullable=True)
    doctor_avatar = Column(String(500), nullable=True)

    # Scheduling
    date = Column(Date, nullable=False)
    time = Column(String(16), nullable=False)
    type = Column(SQLAlchemyEnum(AppointmentType, name='appointment_type'), nullable=True)
    original_date = Column(Date, nullable=True)
    original_time = Column(String(16), nullable=True)

    # Patient reference
    patient_id = Column(String(64), nullable=True, index=True)
    patient_name = Column(String(255), nullable=True)
    patient_age = Column(String(8), nullable=True)

    token = Column(String(16), nullable=True, index=True)
    payment_method = Column(SQLAlchemyEnum(PaymentMethod, name='payment_method'), nullable=True)
    consultation_fee = Column(Numeric(10, 2), nullable=True)
    location = Column(String(255), nullable=True)

    reason = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    doctor_notes = Column(Text, nullable=True)
    rating = Column(Integer, nullable=True)

    status = Column(SQLAlchemyEnum(AppointmentStatus, name='appointment_status'), default=AppointmentStatus.pending, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    reservation = relationship("SlotReservation", back_populates="appointment", uselist=False, cascade="all, delete-orphan")


class Prescription(Base):
    """Prescription document issued by a doctor for one appointment."""
    __tablename__ = "prescriptions"
    __table_args__ = (
        Index('idx_prescriptions_patient', 'patient_id'),
        Index('idx_prescriptions_doctor', 'doctor_id'),
        Index('idx_prescriptions_status_date', 'status', 'date'),
    )

    id = Column(String(36), primary_key=True, default=_new_id)
    appointment_id = Column(String(64), nullable=True)
    patient_id = Column(String(64), nullable=True)
    patient_name = Column(String(255), nullable=True)
    doctor_id = Column(String(64), nullable=True)
    doctor_name = Column(String(255), nullable=True)

    date = Column(Date, nullable=False)
    # Ordered list of {"name", "dosage", "duration", "instructions"}
    medicines = Column(JSON, nullable=False, default=list)
    notes = Column(Text, nullable=True)
    status = Column(SQLAlchemyEnum(PrescriptionStatus, name='prescription_status'), default=PrescriptionStatus.active, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class SlotReservation(Base):
    """One held (doctor, mode, date, time) slot. The unique key is what prevents double booking."""
    __tablename__ = "slot_reservations"
    __table_args__ = (
        UniqueConstraint('doctor_id', 'mode', 'date', 'time', name='uq_slot_reservations_slot'),
    )

    id = Column(Integer, primary_key=True, index=True)
    doctor_id = Column(String(64), nullable=False)
    mode = Column(SQLAlchemyEnum(ConsultationMode, name='consultation_mode'), nullable=False)
    date = Column(Date, nullable=False)
    time = Column(String(16), nullable=False)
    appointment_id = Column(String(36), ForeignKey("appointments.id", ondelete="CASCADE"), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    appointment = relationship("Appointment", back_populates="reservation")
