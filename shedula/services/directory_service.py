# shedula/services/directory_service.py
# Mock doctor directory and the medicine catalogue.
import logging
import random
from datetime import date
from typing import Dict, List, Optional

from .. import schemas
from ..models import ConsultationMode
from . import slot_service

logger = logging.getLogger(__name__)

CITIES = [
    "Mumbai", "Delhi", "Bangalore", "Hyderabad", "Chennai",
    "Kolkata", "Pune", "Ahmedabad", "Jaipur", "Lucknow",
]

# (specialization, education)
SPECIALIZATIONS = [
    ("Gyno", "MBBS, MS (Obs & Gyn)"),
    ("Neuro", "MD, DM (Neurology)"),
    ("Skin", "MBBS, MD (Dermatology)"),
    ("Heart", "MD, DM (Cardiology)"),
    ("Child Specialist", "MBBS, DCH"),
    ("General", "MBBS, MD (General Medicine)"),
    ("Ortho", "MBBS, MS (Orthopaedics)"),
    ("Dental", "BDS, MDS (Orthodontics)"),
    ("Psychiatry", "MD (Psychiatry)"),
    ("Oncology", "MD, DM (Oncology)"),
]

DOCTOR_NAMES = [
    "Aarav Sharma", "Ananya Singh", "Rohan Verma", "Diya Gupta", "Kabir Patel", "Ishani Reddy",
    "Vikram Joshi", "Meera Desai", "Arjun Mishra", "Pooja Kumar", "Siddharth Rao", "Janhvi Sharma",
    "Rahul Singh", "Neha Verma", "Vivek Patel", "Sana Khan", "Gaurav Reddy", "Anjali Jain",
    "Yash Chopra", "Tanya Agarwal", "Kunal Tiwari", "Shruti Gupta", "Aditya Sharma", "Nisha Das",
]

AVATAR_URLS = [
    "https://i.postimg.cc/V6hR452b/download-1.jpg", "https://i.postimg.cc/HxnzQbvg/download-2.jpg",
    "https://i.postimg.cc/bv3LDmTg/download-3.jpg", "https://i.postimg.cc/BvqMnrxt/download-4.jpg",
    "https://i.postimg.cc/mg3mRL10/download-5.jpg", "https://i.postimg.cc/Sxbgw2R6/images.jpg",
    "https://i.postimg.cc/4N98Lbf4/images-1.jpg", "https://i.postimg.cc/qMPF4DbC/images-10.jpg",
    "https://i.postimg.cc/DyJDV3gT/images-11.jpg", "https://i.postimg.cc/5yjrNhW8/images-12.jpg",
    "https://i.postimg.cc/1RYTY3DB/images-13.jpg", "https://i.postimg.cc/KjVHK0mw/images-14.jpg",
    "https://i.postimg.cc/7PcsnQyQ/images-2.jpg", "https://i.postimg.cc/SRwgQjrp/images-3.jpg",
    "https://i.postimg.cc/PJL6k114/images-4.jpg", "https://i.postimg.cc/V6Z7TK0v/images-5.jpg",
    "https://i.postimg.cc/rpJZGV8S/images-6.jpg", "https://i.postimg.cc/j5SgZp5B/images-7.jpg",
    "https://i.postimg.cc/hGg37zqD/images-8.jpg", "https://i.postimg.cc/8zL05d9X/images-9.jpg",
]


def _description(name: str, specialization: str) -> str:
    first_name = name.split(" ")[0]
    area = specialization.lower()
    return (
        f"Dr. {first_name} is a highly dedicated and compassionate healthcare professional "
        f"specializing in {area}. With a focus on patient well-being, they offer personalized "
        f"care and advanced treatment options. Committed to excellence and continuous learning "
        f"in the field of {area} health."
    )


def generate_doctors(
    count: int = 70,
    today: Optional[date] = None,
    rng: Optional[random.Random] = None,
    availability: float = slot_service.DEFAULT_AVAILABILITY,
    days: int = slot_service.DEFAULT_WINDOW_DAYS,
) -> List[schemas.Doctor]:
    """Randomized doctors with sequential ids "1".."count" and fresh two-mode calendars."""
    rng = rng or random.Random()
    doctors = []
    for index in range(1, count + 1):
        name = rng.choice(DOCTOR_NAMES)
        specialization, education = rng.choice(SPECIALIZATIONS)
        doctors.append(schemas.Doctor(
            id=str(index),
            name=f"Dr. {name}",
            specialization=specialization,
            education=education,
            avatar=rng.choice(AVATAR_URLS),
            experience=3 + rng.randrange(25),
            location=rng.choice(CITIES),
            rating=f"{4.0 + rng.random():.1f}",
            available=rng.random() > 0.2,
            description=_description(name, specialization),
            clinic_price=500 + rng.randrange(500),
            online_price=200 + rng.randrange(300),
            available_slots=slot_service.generate_calendar(today, days, availability=availability, rng=rng),
        ))
    return doctors


class DoctorDirectory:
    """In-memory doctor catalogue. Calendars are rebuilt by refresh(), never persisted."""

    def __init__(self, doctors: Optional[List[schemas.Doctor]] = None, count: int = 70,
                 availability: float = slot_service.DEFAULT_AVAILABILITY,
                 rng: Optional[random.Random] = None):
        self.count = count
        self.availability = availability
        self._rng = rng or random.Random()
        self._doctors: Dict[str, schemas.Doctor] = {}
        if doctors is None:
            self.refresh()
        else:
            self._doctors = {doctor.id: doctor for doctor in doctors}

    def refresh(self, today: Optional[date] = None) -> None:
        doctors = generate_doctors(self.count, today, self._rng, self.availability)
        self._doctors = {doctor.id: doctor for doctor in doctors}
        logger.info(f"Generated mock directory with {len(doctors)} doctors")

    def list(self, specialization: Optional[str] = None, location: Optional[str] = None,
             available_only: bool = False) -> List[schemas.Doctor]:
        doctors = list(self._doctors.values())
        if specialization:
            doctors = [d for d in doctors if d.specialization.lower() == specialization.lower()]
        if location:
            doctors = [d for d in doctors if (d.location or "").lower() == location.lower()]
        if available_only:
            doctors = [d for d in doctors if d.available]
        return doctors

    def get(self, doctor_id: str) -> Optional[schemas.Doctor]:
        return self._doctors.get(doctor_id)

    def reserve_slot(self, doctor_id: str, mode: ConsultationMode, on_date: date, label: str) -> bool:
        """Mark a currently available slot as taken. False if missing or already taken."""
        doctor = self.get(doctor_id)
        if doctor is None:
            return False
        slot = slot_service.find_slot(doctor.available_slots, mode, on_date, label)
        if slot is None or not slot.available:
            return False
        slot.available = False
        return True

    def release_slot(self, doctor_id: str, mode: ConsultationMode, on_date: date, label: str) -> bool:
        doctor = self.get(doctor_id)
        if doctor is None:
            return False
        return slot_service.set_slot_availability(doctor.available_slots, mode, on_date, label, True)


# --- Medicine catalogue ---
MEDICINE_CATEGORIES = [
    "Pain Relief", "Antibiotics", "Vitamins & Supplements", "Cough & Cold", "Digestion",
    "Allergy", "Skin Care", "Cardiology", "Diabetic Care", "Pediatrics",
]

# (id, name, category, initial quantity, price per unit, description)
_MEDICINE_ROWS = [
    ("M001", "Paracetamol", "Pain Relief", 100, 2.50, "Common pain reliever and fever reducer."),
    ("M002", "Ibuprofen", "Pain Relief", 75, 3.00, "Nonsteroidal anti-inflammatory drug (NSAID) for pain and inflammation."),
    ("M003", "Aspirin", "Pain Relief", 50, 1.50, "Used for pain, fever, and inflammation, also as a blood thinner."),
    ("M004", "Amoxicillin", "Antibiotics", 40, 15.00, "Broad-spectrum penicillin antibiotic."),
    ("M005", "Azithromycin", "Antibiotics", 30, 20.00, "Macrolide antibiotic used for bacterial infections."),
    ("M006", "Ciprofloxacin", "Antibiotics", 25, 18.00, "Fluoroquinolone antibiotic for various bacterial infections."),
    ("M007", "Multivitamin", "Vitamins & Supplements", 120, 8.00, "Daily supplement with essential vitamins and minerals."),
    ("M008", "Vitamin D3", "Vitamins & Supplements", 90, 10.00, "Important for bone health and immune function."),
    ("M009", "Omega-3 Fish Oil", "Vitamins & Supplements", 60, 25.00, "Supports heart and brain health."),
    ("M010", "Cough Syrup", "Cough & Cold", 80, 7.50, "Relieves cough and cold symptoms."),
    ("M011", "Decongestant", "Cough & Cold", 50, 6.00, "Helps clear nasal passages."),
    ("M012", "Sore Throat Lozenges", "Cough & Cold", 150, 0.75, "Soothes sore throats."),
    ("M013", "Antacid", "Digestion", 100, 4.00, "Relieves heartburn and indigestion."),
    ("M014", "Laxative", "Digestion", 30, 9.00, "For relief of occasional constipation."),
    ("M015", "Probiotic", "Digestion", 60, 22.00, "Supports gut health and digestion."),
    ("M016", "Antihistamine", "Allergy", 70, 5.50, "Relieves allergy symptoms like sneezing and itching."),
    ("M017", "Nasal Spray", "Allergy", 45, 12.00, "Provides relief from nasal congestion due to allergies."),
    ("M018", "Eye Drops", "Allergy", 60, 8.00, "Relieves itchy, watery eyes from allergies."),
    ("M019", "Moisturizer", "Skin Care", 100, 15.00, "Hydrates and protects skin."),
    ("M020", "Antifungal Cream", "Skin Care", 40, 10.00, "Treats fungal skin infections."),
    ("M021", "Sunscreen", "Skin Care", 70, 18.00, "Protects skin from harmful UV rays."),
    ("M022", "Amlodipine", "Cardiology", 50, 20.00, "Treats high blood pressure and chest pain (angina)."),
    ("M023", "Atorvastatin", "Cardiology", 60, 25.00, "Lowers high cholesterol and triglyceride levels."),
    ("M024", "Metoprolol", "Cardiology", 45, 17.00, "Beta-blocker used to treat high blood pressure, angina, and heart failure."),
    ("M025", "Metformin", "Diabetic Care", 80, 12.00, "Oral medication for managing type 2 diabetes."),
    ("M026", "Insulin Pen", "Diabetic Care", 20, 50.00, "Injectable insulin for blood sugar control."),
    ("M027", "Glucose Test Strips", "Diabetic Care", 100, 0.50, "For monitoring blood glucose levels."),
    ("M028", "Pediatric Cough Syrup", "Pediatrics", 60, 9.00, "Gentle cough relief for children."),
    ("M029", "Baby Multivitamin Drops", "Pediatrics", 50, 11.00, "Liquid multivitamin for infants and toddlers."),
    ("M030", "Diaper Rash Cream", "Pediatrics", 70, 7.00, "Soothes and prevents diaper rash."),
]

MEDICINE_CATALOGUE: List[schemas.Medicine] = [
    schemas.Medicine(
        id=medicine_id,
        name=name,
        first_letter_id=name[0].upper(),
        category=category,
        initial_quantity=quantity,
        price_per_unit=price,
        description=description,
    )
    for medicine_id, name, category, quantity, price, description in _MEDICINE_ROWS
]


def get_medicine(medicine_id: str) -> Optional[schemas.Medicine]:
    for medicine in MEDICINE_CATALOGUE:
        if medicine.id == medicine_id:
            return medicine.model_copy(deep=True)
    return None


def search_medicines(query: Optional[str] = None, category: Optional[str] = None) -> List[schemas.Medicine]:
    """Case-insensitive name search, optionally restricted to one category."""
    results = MEDICINE_CATALOGUE
    if category:
        results = [m for m in results if m.category.lower() == category.lower()]
    if query:
        needle = query.strip().lower()
        results = [m for m in results if needle in m.name.lower()]
    return [m.model_copy(deep=True) for m in results]
