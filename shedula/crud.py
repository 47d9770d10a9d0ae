# shedula/crud.py - Remote record service
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified
from sqlalchemy.exc import SQLAlchemyError, IntegrityError
from datetime import date
from typing import Optional, List
import logging

from . import models, schemas
from .services import slot_service
from .services.booking_service import generate_token

logger = logging.getLogger(__name__)

OWNERS = ("patient", "doctor")


class CRUDError(Exception):
    pass


class RecordNotFoundError(CRUDError):
    pass


class SlotAlreadyBookedError(CRUDError):
    pass


def _owner_column(model, owner: str):
    if owner == "patient":
        return model.patient_id
    if owner == "doctor":
        return model.doctor_id
    raise ValueError(f"owner must be one of {OWNERS}, got {owner!r}")


def _mode_of(appointment: models.Appointment) -> models.ConsultationMode:
    return appointment.type.mode if appointment.type else models.ConsultationMode.clinic


# ==================== DOCTOR DIRECTORY ====================

def seed_doctors(db: Session, doctors: List[schemas.Doctor]) -> int:
    """Insert or overwrite directory entries by id."""
    try:
        for doctor in doctors:
            data = doctor.model_dump(exclude={"available_slots"})
            db.merge(models.Doctor(**data, available_slots=doctor.available_slots.to_document()))
        db.commit()
        logger.info(f"Seeded {len(doctors)} doctors")
        return len(doctors)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error seeding doctors: {str(e)}")
        raise CRUDError(f"Database error: {str(e)}")


def count_doctors(db: Session) -> int:
    try:
        return db.query(models.Doctor).count()
    except SQLAlchemyError as e:
        logger.error(f"Error counting doctors: {str(e)}")
        return 0


def get_doctors(db: Session, specialization: Optional[str] = None, location: Optional[str] = None,
                available_only: bool = False, skip: int = 0, limit: int = 100) -> List[models.Doctor]:
    try:
        query = db.query(models.Doctor)
        if specialization:
            query = query.filter(models.Doctor.specialization.ilike(specialization))
        if location:
            query = query.filter(models.Doctor.location.ilike(location))
        if available_only:
            query = query.filter(models.Doctor.available.is_(True))
        return query.order_by(models.Doctor.name, models.Doctor.id).offset(skip).limit(limit).all()
    except SQLAlchemyError as e:
        logger.error(f"Error fetching doctors: {str(e)}")
        return []


def get_doctor(db: Session, doctor_id: str) -> Optional[models.Doctor]:
    try:
        return db.get(models.Doctor, doctor_id)
    except SQLAlchemyError as e:
        logger.error(f"Error fetching doctor {doctor_id}: {str(e)}")
        raise CRUDError(f"Database error: {str(e)}")


def _calendar(doctor: models.Doctor) -> schemas.DoctorCalendar:
    return schemas.DoctorCalendar.model_validate(doctor.available_slots or {})


def _store_calendar(doctor: models.Doctor, calendar: schemas.DoctorCalendar) -> None:
    doctor.available_slots = calendar.to_document()
    flag_modified(doctor, "available_slots")


def _release_calendar_slot(db: Session, appointment: models.Appointment) -> None:
    if not appointment.doctor_id:
        return
    doctor = db.get(models.Doctor, appointment.doctor_id)
    if doctor is None:
        return
    calendar = _calendar(doctor)
    if slot_service.set_slot_availability(calendar, _mode_of(appointment), appointment.date, appointment.time, True):
        _store_calendar(doctor, calendar)


# ==================== APPOINTMENTS ====================

def list_appointments_by_owner(db: Session, owner_id: str, owner: str = "patient") -> List[models.Appointment]:
    """Appointments where patientId/doctorId equals owner_id. Empty on no records and on failure."""
    column = _owner_column(models.Appointment, owner)
    try:
        return (
            db.query(models.Appointment)
            .filter(column == owner_id)
            .order_by(models.Appointment.date, models.Appointment.time)
            .all()
        )
    except SQLAlchemyError as e:
        logger.error(f"Error listing appointments for {owner} '{owner_id}': {str(e)}")
        return []


def get_appointment(db: Session, appointment_id: str) -> Optional[models.Appointment]:
    try:
        return db.get(models.Appointment, appointment_id)
    except SQLAlchemyError as e:
        logger.error(f"Error fetching appointment {appointment_id}: {str(e)}")
        raise CRUDError(f"Database error: {str(e)}")


def create_appointment(db: Session, appointment: schemas.AppointmentCreate) -> str:
    """Persist a new appointment document; the server assigns id and createdAt."""
    try:
        db_appointment = models.Appointment(**appointment.model_dump())
        db.add(db_appointment)
        db.commit()
        db.refresh(db_appointment)
        logger.info(f"Created appointment {db_appointment.id}")
        return db_appointment.id
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error creating appointment: {str(e)}")
        raise CRUDError(f"Database error: {str(e)}")


def _rehold_slot(db: Session, appointment: models.Appointment) -> None:
    """Take the appointment's slot again when it comes back from Cancelled."""
    if not appointment.doctor_id or appointment.reservation is not None:
        return
    doctor = db.get(models.Doctor, appointment.doctor_id)
    if doctor is None:
        return
    mode = _mode_of(appointment)
    calendar = _calendar(doctor)
    slot = slot_service.find_slot(calendar, mode, appointment.date, appointment.time)
    if slot is None:
        return
    if not slot.available:
        raise SlotAlreadyBookedError(f"{slot.time} on {appointment.date} is already booked")
    slot.available = False
    _store_calendar(doctor, calendar)
    appointment.reservation = models.SlotReservation(
        doctor_id=doctor.id, mode=mode, date=appointment.date, time=slot.time,
    )


def update_appointment(db: Session, appointment_id: str, appointment_update: schemas.AppointmentUpdate) -> models.Appointment:
    """
    Shallow merge of the fields that were set; fields not named are unchanged.
    Moving a reserved appointment goes through reschedule_appointment, and
    status changes into or out of Cancelled release or retake the slot.
    """
    db_appointment = get_appointment(db, appointment_id)
    if db_appointment is None:
        raise RecordNotFoundError(f"Appointment {appointment_id} not found")

    changes = appointment_update.model_dump(exclude_unset=True)
    new_status = changes.pop("status", None)
    new_date = changes.pop("date", None) or db_appointment.date
    new_time = changes.pop("time", None) or db_appointment.time
    moved = (
        new_date != db_appointment.date
        or slot_service.normalize_time_label(new_time) != slot_service.normalize_time_label(db_appointment.time)
    )

    if moved and db_appointment.reservation is not None:
        db_appointment = reschedule_appointment(db, appointment_id, new_date, new_time)
        moved = False
    if new_status is models.AppointmentStatus.cancelled and db_appointment.reservation is not None:
        db_appointment = cancel_appointment(db, appointment_id)

    try:
        if moved:
            db_appointment.date = new_date
            db_appointment.time = new_time
        if (new_status is not None and new_status.is_active
                and db_appointment.status is models.AppointmentStatus.cancelled):
            _rehold_slot(db, db_appointment)
        for key, value in changes.items():
            setattr(db_appointment, key, value)
        if new_status is not None:
            db_appointment.status = new_status
        db.commit()
        db.refresh(db_appointment)
        return db_appointment
    except SlotAlreadyBookedError:
        db.rollback()
        raise
    except IntegrityError:
        db.rollback()
        raise SlotAlreadyBookedError(f"{new_time} on {new_date} is already booked")
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error updating appointment {appointment_id}: {str(e)}")
        raise CRUDError(f"Database error: {str(e)}")


def delete_appointment(db: Session, appointment_id: str) -> bool:
    """Hard delete. Returns False when there was nothing to delete."""
    db_appointment = get_appointment(db, appointment_id)
    if db_appointment is None:
        return False
    try:
        if db_appointment.reservation is not None:
            _release_calendar_slot(db, db_appointment)
        db.delete(db_appointment)
        db.commit()
        logger.info(f"Deleted appointment {appointment_id}")
        return True
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error deleting appointment {appointment_id}: {str(e)}")
        raise CRUDError(f"Database error: {str(e)}")


def book_appointment(db: Session, booking: schemas.BookingRequest, token_prefix: str = "A") -> models.Appointment:
    """
    Reserve (doctor, mode, date, time) and create the appointment in one
    transaction. The slot_reservations unique key rejects a second booking
    of the same slot even when two requests race past the calendar check.
    """
    doctor = get_doctor(db, booking.doctor_id)
    if doctor is None:
        raise RecordNotFoundError(f"Doctor {booking.doctor_id} not found")
    if not doctor.available:
        raise CRUDError(f"{doctor.name} is not accepting appointments")

    mode = models.ConsultationMode(booking.mode)
    calendar = _calendar(doctor)
    slot = slot_service.find_slot(calendar, mode, booking.date, booking.time)
    if slot is None:
        raise CRUDError(f"{booking.time} on {booking.date} is not offered for {mode.value} consultations")
    if not slot.available:
        raise SlotAlreadyBookedError(f"{slot.time} on {booking.date} is already booked")

    try:
        existing_tokens = [row.token for row in db.query(models.Appointment.token).filter(models.Appointment.token.isnot(None))]
        db_appointment = models.Appointment(
            doctor_id=doctor.id,
            doctor_name=doctor.name,
            doctor_specialization=doctor.specialization,
            doctor_avatar=doctor.avatar,
            date=booking.date,
            time=slot.time,
            type=models.AppointmentType.for_mode(mode),
            token=generate_token(existing_tokens, prefix=token_prefix),
            patient_id=booking.patient_id,
            patient_name=booking.patient_name,
            patient_age=booking.patient_age,
            payment_method=booking.payment_method,
            consultation_fee=doctor.online_price if mode is models.ConsultationMode.online else doctor.clinic_price,
            location=doctor.location,
            reason=booking.reason,
            status=models.AppointmentStatus.pending,
        )
        db_appointment.reservation = models.SlotReservation(
            doctor_id=doctor.id, mode=mode, date=booking.date, time=slot.time,
        )
        slot_service.set_slot_availability(calendar, mode, booking.date, slot.time, False)
        _store_calendar(doctor, calendar)

        db.add(db_appointment)
        db.commit()
        db.refresh(db_appointment)
        logger.info(f"Booked appointment {db_appointment.id} with doctor {doctor.id} at {booking.date} {slot.time}")
        return db_appointment
    except IntegrityError:
        db.rollback()
        logger.warning(f"Slot {booking.date} {slot.time} for doctor {doctor.id} was taken concurrently")
        raise SlotAlreadyBookedError(f"{slot.time} on {booking.date} is already booked")
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error booking appointment: {str(e)}")
        raise CRUDError(f"Database error: {str(e)}")


def cancel_appointment(db: Session, appointment_id: str) -> models.Appointment:
    """Soft cancel: status becomes Cancelled and the slot is released."""
    db_appointment = get_appointment(db, appointment_id)
    if db_appointment is None:
        raise RecordNotFoundError(f"Appointment {appointment_id} not found")
    try:
        if db_appointment.reservation is not None:
            _release_calendar_slot(db, db_appointment)
            db_appointment.reservation = None
        db_appointment.status = models.AppointmentStatus.cancelled
        db.commit()
        db.refresh(db_appointment)
        logger.info(f"Cancelled appointment {appointment_id}")
        return db_appointment
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error cancelling appointment {appointment_id}: {str(e)}")
        raise CRUDError(f"Database error: {str(e)}")


def reschedule_appointment(db: Session, appointment_id: str, new_date: date, new_time: str) -> models.Appointment:
    """Move the appointment in place; the first booked date/time is kept as original_*."""
    db_appointment = get_appointment(db, appointment_id)
    if db_appointment is None:
        raise RecordNotFoundError(f"Appointment {appointment_id} not found")

    mode = _mode_of(db_appointment)
    doctor = get_doctor(db, db_appointment.doctor_id) if db_appointment.doctor_id else None
    label = new_time
    if doctor is not None:
        calendar = _calendar(doctor)
        slot = slot_service.find_slot(calendar, mode, new_date, new_time)
        if slot is None:
            raise CRUDError(f"{new_time} on {new_date} is not offered for {mode.value} consultations")
        label = slot.time
        same_slot = (
            db_appointment.reservation is not None
            and new_date == db_appointment.date
            and slot_service.normalize_time_label(label) == slot_service.normalize_time_label(db_appointment.time)
        )
        if not slot.available and not same_slot:
            raise SlotAlreadyBookedError(f"{label} on {new_date} is already booked")

    try:
        if doctor is not None:
            if db_appointment.reservation is not None:
                slot_service.set_slot_availability(calendar, mode, db_appointment.date, db_appointment.time, True)
            slot_service.set_slot_availability(calendar, mode, new_date, label, False)
            _store_calendar(doctor, calendar)
            if db_appointment.reservation is not None:
                db_appointment.reservation.date = new_date
                db_appointment.reservation.time = label
            else:
                db_appointment.reservation = models.SlotReservation(
                    doctor_id=doctor.id, mode=mode, date=new_date, time=label,
                )

        if db_appointment.original_date is None:
            db_appointment.original_date = db_appointment.date
            db_appointment.original_time = db_appointment.time
        db_appointment.date = new_date
        db_appointment.time = label
        db_appointment.status = models.AppointmentStatus.rescheduled
        db.commit()
        db.refresh(db_appointment)
        logger.info(f"Rescheduled appointment {appointment_id} to {new_date} {label}")
        return db_appointment
    except IntegrityError:
        db.rollback()
        raise SlotAlreadyBookedError(f"{label} on {new_date} is already booked")
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error rescheduling appointment {appointment_id}: {str(e)}")
        raise CRUDError(f"Database error: {str(e)}")


# ==================== PRESCRIPTIONS ====================

def list_prescriptions_by_owner(db: Session, owner_id: str, owner: str = "patient") -> List[models.Prescription]:
    column = _owner_column(models.Prescription, owner)
    try:
        return (
            db.query(models.Prescription)
            .filter(column == owner_id)
            .order_by(models.Prescription.date.desc())
            .all()
        )
    except SQLAlchemyError as e:
        logger.error(f"Error listing prescriptions for {owner} '{owner_id}': {str(e)}")
        return []


def get_prescription(db: Session, prescription_id: str) -> Optional[models.Prescription]:
    try:
        return db.get(models.Prescription, prescription_id)
    except SQLAlchemyError as e:
        logger.error(f"Error fetching prescription {prescription_id}: {str(e)}")
        raise CRUDError(f"Database error: {str(e)}")


def create_prescription(db: Session, prescription: schemas.PrescriptionCreate) -> str:
    if not prescription.medicines:
        raise CRUDError("A prescription needs at least one medicine")
    try:
        db_prescription = models.Prescription(**prescription.model_dump())
        db.add(db_prescription)
        db.commit()
        db.refresh(db_prescription)
        logger.info(f"Created prescription {db_prescription.id} for appointment {prescription.appointment_id}")
        return db_prescription.id
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error creating prescription: {str(e)}")
        raise CRUDError(f"Database error: {str(e)}")


def update_prescription(db: Session, prescription_id: str, prescription_update: schemas.PrescriptionUpdate) -> models.Prescription:
    db_prescription = get_prescription(db, prescription_id)
    if db_prescription is None:
        raise RecordNotFoundError(f"Prescription {prescription_id} not found")
    try:
        for key, value in prescription_update.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(db_prescription, key, value)
        db.commit()
        db.refresh(db_prescription)
        return db_prescription
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error updating prescription {prescription_id}: {str(e)}")
        raise CRUDError(f"Database error: {str(e)}")


def delete_prescription(db: Session, prescription_id: str) -> bool:
    db_prescription = get_prescription(db, prescription_id)
    if db_prescription is None:
        return False
    try:
        db.delete(db_prescription)
        db.commit()
        logger.info(f"Deleted prescription {prescription_id}")
        return True
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error deleting prescription {prescription_id}: {str(e)}")
        raise CRUDError(f"Database error: {str(e)}")
