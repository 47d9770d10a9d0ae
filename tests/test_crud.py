# tests/test_crud.py
from datetime import date, timedelta

import pytest
from pydantic import ValidationError

from shedula import crud, models, schemas
from shedula.database import drop_tables
from shedula.models import AppointmentStatus, ConsultationMode
from shedula.services import slot_service


def _booking(doctor_id="1", on_date=None, time="10:30 AM", mode=ConsultationMode.clinic, **overrides):
    data = dict(
        doctor_id=doctor_id, mode=mode, date=on_date, time=time,
        patient_id="patient-1", patient_name="Riya", patient_age="29",
    )
    data.update(overrides)
    return schemas.BookingRequest(**data)


def _slot(db, doctor_id, mode, on_date, label):
    doctor = crud.get_doctor(db, doctor_id)
    calendar = schemas.DoctorCalendar.model_validate(doctor.available_slots)
    return slot_service.find_slot(calendar, mode, on_date, label)


def _prescription(**overrides):
    data = dict(
        appointment_id="appt-1",
        patient_id="patient-1",
        patient_name="Riya",
        doctor_id="1",
        doctor_name="Dr. Aarav Sharma",
        date=date(2025, 6, 1),
        medicines=[{"name": "Paracetamol", "dosage": "500mg", "duration": "5 days", "instructions": "After food"}],
    )
    data.update(overrides)
    return schemas.PrescriptionCreate(**data)


# --- appointments ---

def test_owner_with_no_records_gets_empty_list(db_session):
    assert crud.list_appointments_by_owner(db_session, "patient-42") == []
    assert crud.list_prescriptions_by_owner(db_session, "patient-42", owner="doctor") == []


def test_list_reads_return_empty_on_backend_failure(db_session):
    drop_tables()
    assert crud.list_appointments_by_owner(db_session, "patient-1") == []
    assert crud.get_doctors(db_session) == []


def test_unknown_owner_kind_is_a_programming_error(db_session):
    with pytest.raises(ValueError):
        crud.list_appointments_by_owner(db_session, "x", owner="clinic")


def test_create_and_get_appointment(db_session):
    appointment_id = crud.create_appointment(db_session, schemas.AppointmentCreate(
        doctor_id="1", patient_id="patient-1", date=date(2025, 6, 1), time="10:30 AM",
    ))

    stored = crud.get_appointment(db_session, appointment_id)
    assert stored.id == appointment_id
    assert stored.status is AppointmentStatus.pending
    assert stored.created_at is not None
    assert [a.id for a in crud.list_appointments_by_owner(db_session, "patient-1")] == [appointment_id]
    assert [a.id for a in crud.list_appointments_by_owner(db_session, "1", owner="doctor")] == [appointment_id]
    assert crud.get_appointment(db_session, "missing") is None


def test_update_appointment_merges_only_set_fields(db_session):
    appointment_id = crud.create_appointment(db_session, schemas.AppointmentCreate(
        doctor_id="1", patient_name="Riya", date=date(2025, 6, 1), time="10:30 AM", reason="Fever",
    ))

    updated = crud.update_appointment(db_session, appointment_id, schemas.AppointmentUpdate(doctor_notes="Hydrate"))
    assert updated.doctor_notes == "Hydrate"
    assert updated.reason == "Fever"
    assert updated.patient_name == "Riya"

    with pytest.raises(crud.RecordNotFoundError):
        crud.update_appointment(db_session, "missing", schemas.AppointmentUpdate(notes="x"))


def test_delete_appointment(db_session):
    appointment_id = crud.create_appointment(db_session, schemas.AppointmentCreate(date=date(2025, 6, 1), time="10:30 AM"))
    assert crud.delete_appointment(db_session, appointment_id) is True
    assert crud.delete_appointment(db_session, appointment_id) is False
    assert crud.get_appointment(db_session, appointment_id) is None


# --- booking ---

def test_book_appointment_reserves_slot(seeded_db, today):
    appointment = crud.book_appointment(seeded_db, _booking(on_date=today))
    doctor = crud.get_doctor(seeded_db, "1")

    assert appointment.status is AppointmentStatus.pending
    assert appointment.doctor_name == doctor.name
    assert float(appointment.consultation_fee) == doctor.clinic_price
    assert appointment.token.startswith("A")
    assert appointment.reservation.doctor_id == "1"
    assert not _slot(seeded_db, "1", ConsultationMode.clinic, today, "10:30 AM").available

    with pytest.raises(crud.SlotAlreadyBookedError):
        crud.book_appointment(seeded_db, _booking(on_date=today, patient_id="patient-2"))


def test_reservation_key_blocks_stale_calendar(seeded_db, today):
    crud.book_appointment(seeded_db, _booking(on_date=today))

    # Reopen the slot in the calendar only; the reservation row still holds it
    doctor = crud.get_doctor(seeded_db, "1")
    calendar = schemas.DoctorCalendar.model_validate(doctor.available_slots)
    slot_service.set_slot_availability(calendar, ConsultationMode.clinic, today, "10:30 AM", True)
    doctor.available_slots = calendar.to_document()
    seeded_db.commit()

    with pytest.raises(crud.SlotAlreadyBookedError):
        crud.book_appointment(seeded_db, _booking(on_date=today, patient_id="patient-2"))
    assert seeded_db.query(models.Appointment).count() == 1
    assert seeded_db.query(models.SlotReservation).count() == 1


def test_book_rejects_unknown_doctor_and_unoffered_time(seeded_db, today):
    with pytest.raises(crud.RecordNotFoundError):
        crud.book_appointment(seeded_db, _booking(doctor_id="999", on_date=today))
    with pytest.raises(crud.CRUDError):
        crud.book_appointment(seeded_db, _booking(on_date=today, time="07:00 AM"))


def test_book_rejects_doctor_not_accepting(seeded_db, today):
    doctor = crud.get_doctor(seeded_db, "2")
    doctor.available = False
    seeded_db.commit()
    with pytest.raises(crud.CRUDError):
        crud.book_appointment(seeded_db, _booking(doctor_id="2", on_date=today))


def test_cancel_releases_the_slot(seeded_db, today):
    appointment = crud.book_appointment(seeded_db, _booking(on_date=today))
    cancelled = crud.cancel_appointment(seeded_db, appointment.id)

    assert cancelled.status is AppointmentStatus.cancelled
    assert cancelled.reservation is None
    assert _slot(seeded_db, "1", ConsultationMode.clinic, today, "10:30 AM").available
    crud.book_appointment(seeded_db, _booking(on_date=today, patient_id="patient-2"))

    with pytest.raises(crud.RecordNotFoundError):
        crud.cancel_appointment(seeded_db, "missing")


def test_reschedule_moves_reservation(seeded_db, today):
    appointment = crud.book_appointment(seeded_db, _booking(on_date=today))
    tomorrow = today + timedelta(days=1)

    moved = crud.reschedule_appointment(seeded_db, appointment.id, tomorrow, "2:00 pm")

    assert moved.status is AppointmentStatus.rescheduled
    assert moved.date == tomorrow
    assert moved.time == "02:00 PM"
    assert moved.original_date == today
    assert moved.original_time == "10:30 AM"
    assert moved.reservation.date == tomorrow
    assert _slot(seeded_db, "1", ConsultationMode.clinic, today, "10:30 AM").available
    assert not _slot(seeded_db, "1", ConsultationMode.clinic, tomorrow, "02:00 PM").available


def test_reschedule_onto_booked_slot_conflicts(seeded_db, today):
    first = crud.book_appointment(seeded_db, _booking(on_date=today))
    crud.book_appointment(seeded_db, _booking(on_date=today, time="11:00 AM", patient_id="patient-2"))

    with pytest.raises(crud.SlotAlreadyBookedError):
        crud.reschedule_appointment(seeded_db, first.id, today, "11:00 AM")


def test_delete_booked_appointment_frees_slot(seeded_db, today):
    appointment = crud.book_appointment(seeded_db, _booking(on_date=today))
    assert crud.delete_appointment(seeded_db, appointment.id) is True
    assert seeded_db.query(models.SlotReservation).count() == 0
    assert _slot(seeded_db, "1", ConsultationMode.clinic, today, "10:30 AM").available


def test_update_to_cancelled_releases_the_slot(seeded_db, today):
    appointment = crud.book_appointment(seeded_db, _booking(on_date=today))

    updated = crud.update_appointment(
        seeded_db, appointment.id, schemas.AppointmentUpdate(status=AppointmentStatus.cancelled)
    )

    assert updated.status is AppointmentStatus.cancelled
    assert updated.reservation is None
    assert _slot(seeded_db, "1", ConsultationMode.clinic, today, "10:30 AM").available
    crud.book_appointment(seeded_db, _booking(on_date=today, patient_id="patient-2"))


def test_update_out_of_cancelled_retakes_a_free_slot(seeded_db, today):
    appointment = crud.book_appointment(seeded_db, _booking(on_date=today))
    crud.cancel_appointment(seeded_db, appointment.id)

    revived = crud.update_appointment(
        seeded_db, appointment.id, schemas.AppointmentUpdate(status=AppointmentStatus.pending)
    )

    assert revived.status is AppointmentStatus.pending
    assert revived.reservation is not None
    assert not _slot(seeded_db, "1", ConsultationMode.clinic, today, "10:30 AM").available
    with pytest.raises(crud.SlotAlreadyBookedError):
        crud.book_appointment(seeded_db, _booking(on_date=today, patient_id="patient-2"))


def test_update_out_of_cancelled_conflicts_when_slot_was_rebooked(seeded_db, today):
    first = crud.book_appointment(seeded_db, _booking(on_date=today))
    crud.cancel_appointment(seeded_db, first.id)
    crud.book_appointment(seeded_db, _booking(on_date=today, patient_id="patient-2"))

    with pytest.raises(crud.SlotAlreadyBookedError):
        crud.update_appointment(seeded_db, first.id, schemas.AppointmentUpdate(status=AppointmentStatus.pending))

    assert crud.get_appointment(seeded_db, first.id).status is AppointmentStatus.cancelled
    active = [
        a for a in seeded_db.query(models.Appointment).all()
        if a.date == today and a.time == "10:30 AM" and a.status.is_active
    ]
    assert len(active) == 1
    assert seeded_db.query(models.SlotReservation).count() == 1


def test_update_time_of_booked_appointment_moves_reservation(seeded_db, today):
    appointment = crud.book_appointment(seeded_db, _booking(on_date=today))

    moved = crud.update_appointment(seeded_db, appointment.id, schemas.AppointmentUpdate(time="11:00 AM"))

    assert moved.time == "11:00 AM"
    assert moved.status is AppointmentStatus.rescheduled
    assert moved.original_time == "10:30 AM"
    assert moved.reservation.time == "11:00 AM"
    assert _slot(seeded_db, "1", ConsultationMode.clinic, today, "10:30 AM").available
    with pytest.raises(crud.SlotAlreadyBookedError):
        crud.book_appointment(seeded_db, _booking(on_date=today, time="11:00 AM", patient_id="patient-2"))


def test_update_time_onto_a_booked_slot_conflicts(seeded_db, today):
    first = crud.book_appointment(seeded_db, _booking(on_date=today))
    crud.book_appointment(seeded_db, _booking(on_date=today, time="11:00 AM", patient_id="patient-2"))

    with pytest.raises(crud.SlotAlreadyBookedError):
        crud.update_appointment(seeded_db, first.id, schemas.AppointmentUpdate(time="11:00 AM"))
    assert crud.get_appointment(seeded_db, first.id).time == "10:30 AM"


# --- doctors ---

def test_seeded_directory_round_trips(seeded_db, doctors):
    stored = [schemas.Doctor.model_validate(d) for d in crud.get_doctors(seeded_db)]
    assert {d.id for d in stored} == {d.id for d in doctors}
    original = next(d for d in doctors if d.id == "3")
    assert schemas.Doctor.model_validate(crud.get_doctor(seeded_db, "3")) == original
    assert crud.count_doctors(seeded_db) == len(doctors)


def test_doctor_filters(seeded_db, doctors):
    location = doctors[0].location
    matches = crud.get_doctors(seeded_db, location=location.lower())
    assert matches and all(d.location == location for d in matches)


# --- prescriptions ---

def test_prescription_lifecycle(db_session):
    prescription_id = crud.create_prescription(db_session, _prescription())

    stored = schemas.Prescription.model_validate(crud.get_prescription(db_session, prescription_id))
    assert stored.medicines[0].name == "Paracetamol"
    assert stored.notes == ""
    assert [p.id for p in crud.list_prescriptions_by_owner(db_session, "1", owner="doctor")] == [prescription_id]
    assert [p.id for p in crud.list_prescriptions_by_owner(db_session, "patient-1")] == [prescription_id]

    updated = crud.update_prescription(db_session, prescription_id, schemas.PrescriptionUpdate(notes="Review in a week"))
    assert updated.notes == "Review in a week"
    assert len(updated.medicines) == 1

    assert crud.delete_prescription(db_session, prescription_id) is True
    assert crud.delete_prescription(db_session, prescription_id) is False
    with pytest.raises(crud.RecordNotFoundError):
        crud.update_prescription(db_session, prescription_id, schemas.PrescriptionUpdate(notes="x"))


def test_prescription_requires_a_medicine():
    with pytest.raises(ValidationError):
        _prescription(medicines=[])
