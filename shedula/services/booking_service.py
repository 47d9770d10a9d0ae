# shedula/services/booking_service.py
# Appointment lifecycle on top of the local AppointmentStore and a DoctorDirectory.
import random
import secrets
import uuid
from datetime import date, datetime
from typing import Callable, Iterable, List, Optional

import structlog

from .. import schemas
from ..models import AppointmentStatus, AppointmentType, ConsultationMode
from . import slot_service
from .directory_service import DoctorDirectory
from .local_store import AppointmentStore

log = structlog.get_logger(__name__)

TOKEN_DIGITS = 2
TOKEN_ATTEMPTS_PER_WIDTH = 20


class BookingError(Exception):
    pass


class AppointmentNotFoundError(BookingError):
    pass


class DoctorNotFoundError(BookingError):
    pass


class SlotUnavailableError(BookingError):
    pass


def generate_token(existing: Iterable[str], prefix: str = "A", rng: Optional[random.Random] = None,
                   digits: int = TOKEN_DIGITS) -> str:
    """
    Short confirmation code such as 'A42', unique against `existing`.
    Widens by one digit whenever a width keeps colliding.
    """
    taken = set(existing)
    rng = rng or secrets.SystemRandom()
    width = digits
    while True:
        low, high = 10 ** (width - 1), 10 ** width - 1
        for _ in range(TOKEN_ATTEMPTS_PER_WIDTH):
            token = f"{prefix}{rng.randint(low, high)}"
            if token not in taken:
                return token
        width += 1


def _mode_of(appointment: schemas.Appointment) -> ConsultationMode:
    return appointment.type.mode if appointment.type else ConsultationMode.clinic


class BookingService:
    def __init__(self, store: AppointmentStore, directory: DoctorDirectory, token_prefix: str = "A",
                 rng: Optional[random.Random] = None, id_factory: Callable[[], str] = None):
        self.store = store
        self.directory = directory
        self.token_prefix = token_prefix
        self._rng = rng
        self._id_factory = id_factory or (lambda: uuid.uuid4().hex)

    def _require(self, appointment_id: str) -> schemas.Appointment:
        appointment = self.store.get(appointment_id)
        if appointment is None:
            raise AppointmentNotFoundError(f"Appointment {appointment_id} not found")
        return appointment

    def _slot_taken(self, doctor_id: str, mode: ConsultationMode, on_date: date, label: str,
                    exclude_id: Optional[str] = None) -> bool:
        wanted = slot_service.normalize_time_label(label)
        for existing in self.store.list():
            if existing.id == exclude_id or not existing.status.is_active:
                continue
            if (existing.doctor_id == doctor_id and _mode_of(existing) is mode
                    and existing.date == on_date
                    and slot_service.normalize_time_label(existing.time) == wanted):
                return True
        return False

    def _check_slot(self, doctor: schemas.Doctor, mode: ConsultationMode, on_date: date, label: str,
                    exclude_id: Optional[str] = None) -> None:
        slot = slot_service.find_slot(doctor.available_slots, mode, on_date, label)
        if slot is None:
            raise SlotUnavailableError(f"{label} on {on_date} is not in {doctor.name}'s {mode.value} calendar")
        if not slot.available or self._slot_taken(doctor.id, mode, on_date, label, exclude_id):
            raise SlotUnavailableError(f"{label} on {on_date} is already booked")

    def book(self, request: schemas.BookingRequest) -> schemas.Appointment:
        with self.store.lock:
            return self._book(request)

    def _book(self, request: schemas.BookingRequest) -> schemas.Appointment:
        doctor = self.directory.get(request.doctor_id)
        if doctor is None:
            raise DoctorNotFoundError(f"Doctor {request.doctor_id} not found")
        if not doctor.available:
            raise SlotUnavailableError(f"{doctor.name} is not accepting appointments")

        mode = ConsultationMode(request.mode)
        self._check_slot(doctor, mode, request.date, request.time)

        token = generate_token(
            (a.token for a in self.store.list() if a.token),
            prefix=self.token_prefix,
            rng=self._rng,
        )
        appointment = schemas.Appointment(
            id=self._id_factory(),
            doctor_id=doctor.id,
            doctor_name=doctor.name,
            doctor_specialization=doctor.specialization,
            doctor_avatar=doctor.avatar,
            date=request.date,
            time=request.time,
            type=AppointmentType.for_mode(mode),
            token=token,
            patient_id=request.patient_id,
            patient_name=request.patient_name,
            patient_age=request.patient_age,
            payment_method=request.payment_method,
            consultation_fee=doctor.price_for(mode),
            location=doctor.location,
            reason=request.reason,
            status=AppointmentStatus.pending,
        )
        self.store.create(appointment)
        self.directory.reserve_slot(doctor.id, mode, request.date, request.time)
        log.info("appointment_booked", appointment_id=appointment.id, doctor_id=doctor.id,
                 date=str(request.date), time=request.time, token=token)
        return appointment

    def reschedule(self, appointment_id: str, new_date: date, new_time: str) -> schemas.Appointment:
        """Move date/time in place; the first booked date/time is kept as original_*."""
        with self.store.lock:
            return self._reschedule(appointment_id, new_date, new_time)

    def _reschedule(self, appointment_id: str, new_date: date, new_time: str) -> schemas.Appointment:
        appointment = self._require(appointment_id)
        mode = _mode_of(appointment)
        doctor = self.directory.get(appointment.doctor_id) if appointment.doctor_id else None
        if doctor is not None:
            holds_slot = appointment.status.is_active
            same_slot = (
                holds_slot and new_date == appointment.date
                and slot_service.normalize_time_label(new_time) == slot_service.normalize_time_label(appointment.time)
            )
            if not same_slot:
                self._check_slot(doctor, mode, new_date, new_time, exclude_id=appointment.id)
            if holds_slot:
                self.directory.release_slot(doctor.id, mode, appointment.date, appointment.time)
            self.directory.reserve_slot(doctor.id, mode, new_date, new_time)

        self.store.update_fields(
            appointment.id,
            date=new_date,
            time=new_time,
            status=AppointmentStatus.rescheduled,
            original_date=appointment.original_date or appointment.date,
            original_time=appointment.original_time or appointment.time,
        )
        log.info("appointment_rescheduled", appointment_id=appointment.id,
                 date=str(new_date), time=new_time)
        return self._require(appointment.id)

    def cancel(self, appointment_id: str) -> schemas.Appointment:
        """Soft cancel: the record stays, its slot is released."""
        with self.store.lock:
            return self._cancel(appointment_id)

    def _cancel(self, appointment_id: str) -> schemas.Appointment:
        appointment = self._require(appointment_id)
        self.store.update_status(appointment.id, AppointmentStatus.cancelled)
        if appointment.doctor_id and appointment.status.is_active:
            self.directory.release_slot(appointment.doctor_id, _mode_of(appointment),
                                        appointment.date, appointment.time)
        log.info("appointment_cancelled", appointment_id=appointment.id)
        return self._require(appointment.id)

    def accept(self, appointment_id: str) -> schemas.Appointment:
        return self._set_status(appointment_id, AppointmentStatus.accepted)

    def complete(self, appointment_id: str) -> schemas.Appointment:
        return self._set_status(appointment_id, AppointmentStatus.completed)

    def _set_status(self, appointment_id: str, status: AppointmentStatus) -> schemas.Appointment:
        self._require(appointment_id)
        self.store.update_status(appointment_id, status)
        log.info("appointment_status_changed", appointment_id=appointment_id, status=status.value)
        return self._require(appointment_id)

    def add_notes(self, appointment_id: str, notes: str) -> schemas.Appointment:
        self._require(appointment_id)
        self.store.update_fields(appointment_id, notes=notes)
        return self._require(appointment_id)

    def rate(self, appointment_id: str, rating: int) -> schemas.Appointment:
        if not 0 <= rating <= 5:
            raise BookingError("Rating must be between 0 and 5")
        self._require(appointment_id)
        self.store.update_fields(appointment_id, rating=rating)
        return self._require(appointment_id)

    def complete_past(self, now: Optional[datetime] = None) -> List[str]:
        """Mark active appointments whose start time has passed as Completed."""
        now = now or datetime.now()
        completed = []
        for appointment in self.store.list():
            if not appointment.status.is_active:
                continue
            try:
                starts_at = slot_service.appointment_datetime(appointment.date, appointment.time)
            except ValueError:
                log.warning("unparseable_appointment_time", appointment_id=appointment.id, time=appointment.time)
                continue
            if starts_at < now:
                self.store.update_status(appointment.id, AppointmentStatus.completed)
                completed.append(appointment.id)
        if completed:
            log.info("appointments_auto_completed", count=len(completed))
        return completed
