# tests/conftest.py
import os

# Must be set before shedula.config / shedula.database are imported.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["SEED_DIRECTORY_ON_STARTUP"] = "false"
os.environ["ENVIRONMENT"] = "testing"

import random
from datetime import date

import pytest

from shedula import crud
from shedula.database import SessionLocal, create_tables, drop_tables
from shedula.services.directory_service import DoctorDirectory, generate_doctors
from shedula.services.local_store import AppointmentStore, MedicineOrderStore
from shedula.storage import MemoryStorage

TODAY = date(2030, 1, 7)


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def appointment_store(storage):
    return AppointmentStore(storage)


@pytest.fixture
def order_store(storage):
    return MedicineOrderStore(storage)


@pytest.fixture
def doctors():
    """Five doctors whose calendars start on TODAY with every slot open."""
    return generate_doctors(5, today=TODAY, rng=random.Random(7), availability=1.0)


@pytest.fixture
def directory(doctors):
    return DoctorDirectory(doctors=doctors)


@pytest.fixture
def db_session():
    create_tables()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
        drop_tables()


@pytest.fixture
def seeded_db(db_session, doctors):
    """Record store holding the five doctors, all accepting appointments."""
    for doctor in doctors:
        doctor.available = True
    crud.seed_doctors(db_session, doctors)
    return db_session


@pytest.fixture
def today():
    return TODAY
