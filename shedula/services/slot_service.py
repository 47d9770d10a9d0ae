# shedula/services/slot_service.py
# Rolling per-doctor slot calendar. Availability here is demo data: the mock
# directory regenerates it on every load, the persisted directory keeps it.
import random
from datetime import date, datetime, time, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

from .. import schemas
from ..models import ConsultationMode

DEFAULT_DAY_START = time(9, 0)
DEFAULT_DAY_END = time(17, 0)
DEFAULT_SLOT_MINUTES = 30
DEFAULT_WINDOW_DAYS = 7
DEFAULT_AVAILABILITY = 0.6

_LABEL_FORMATS = ("%I:%M %p", "%H:%M")


def format_time_label(value: time) -> str:
    """time(10, 30) -> '10:30 AM'"""
    return value.strftime("%I:%M %p")


def parse_time_label(label: str) -> time:
    """Accepts '10:30 AM' as well as 24h '10:30' / '9:30'."""
    cleaned = " ".join(label.strip().upper().split())
    for fmt in _LABEL_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt).time()
        except ValueError:
            continue
    raise ValueError(f"Unrecognised time label: {label!r}")


def normalize_time_label(label: str) -> str:
    try:
        return format_time_label(parse_time_label(label))
    except ValueError:
        return label.strip()


def build_time_labels(start: time = DEFAULT_DAY_START, end: time = DEFAULT_DAY_END,
                      duration_minutes: int = DEFAULT_SLOT_MINUTES) -> List[str]:
    """Labels from start to end inclusive, every duration_minutes."""
    if duration_minutes <= 0:
        raise ValueError("duration_minutes must be positive")

    current_dt = datetime.combine(date.min, start)
    end_dt = datetime.combine(date.min, end)

    labels = []
    while current_dt <= end_dt:
        labels.append(format_time_label(current_dt.time()))
        current_dt += timedelta(minutes=duration_minutes)
    return labels


DEFAULT_SLOT_TIMES = tuple(build_time_labels())


def rolling_dates(today: Optional[date] = None, days: int = DEFAULT_WINDOW_DAYS) -> List[date]:
    today = today or date.today()
    return [today + timedelta(days=offset) for offset in range(days)]


def generate_slots(
    today: Optional[date] = None,
    days: int = DEFAULT_WINDOW_DAYS,
    times: Sequence[str] = DEFAULT_SLOT_TIMES,
    availability: float = DEFAULT_AVAILABILITY,
    rng: Optional[random.Random] = None,
) -> Dict[str, List[schemas.Slot]]:
    """
    Build a `days`-long calendar starting at `today` (inclusive).
    Every date carries the same ordered `times`; each slot is available with
    probability `availability`, drawn independently.
    """
    if len(set(times)) != len(times):
        raise ValueError("Slot times must be unique within a day")
    if not 0.0 <= availability <= 1.0:
        raise ValueError("availability must be between 0 and 1")

    rng = rng or random.Random()
    calendar: Dict[str, List[schemas.Slot]] = {}
    for day in rolling_dates(today, days):
        calendar[day.isoformat()] = [
            schemas.Slot(time=label, available=rng.random() < availability)
            for label in times
        ]
    return calendar


def generate_calendar(
    today: Optional[date] = None,
    days: int = DEFAULT_WINDOW_DAYS,
    times: Sequence[str] = DEFAULT_SLOT_TIMES,
    availability: float = DEFAULT_AVAILABILITY,
    rng: Optional[random.Random] = None,
) -> schemas.DoctorCalendar:
    rng = rng or random.Random()
    return schemas.DoctorCalendar(
        online=generate_slots(today, days, times, availability, rng),
        clinic=generate_slots(today, days, times, availability, rng),
    )


def find_slot(calendar: schemas.DoctorCalendar, mode: ConsultationMode,
              on_date: date, label: str) -> Optional[schemas.Slot]:
    wanted = normalize_time_label(label)
    for slot in calendar.for_mode(mode).get(on_date.isoformat(), []):
        if normalize_time_label(slot.time) == wanted:
            return slot
    return None


def set_slot_availability(calendar: schemas.DoctorCalendar, mode: ConsultationMode,
                          on_date: date, label: str, available: bool) -> bool:
    """Flip one slot in place. Returns False when the slot is not in the calendar."""
    slot = find_slot(calendar, mode, on_date, label)
    if slot is None:
        return False
    slot.available = available
    return True


def available_times(slots: Iterable[schemas.Slot]) -> List[str]:
    return [slot.time for slot in slots if slot.available]


def appointment_datetime(on_date: date, label: str) -> datetime:
    return datetime.combine(on_date, parse_time_label(label))


def time_remaining(on_date: date, label: str, now: Optional[datetime] = None) -> str:
    """'2d 3h 15m remaining', or 'Appointment completed' once the start has passed."""
    now = now or datetime.now()
    diff = appointment_datetime(on_date, label) - now
    if diff.total_seconds() <= 0:
        return "Appointment completed"

    total_minutes = int(diff.total_seconds() // 60)
    days, remainder = divmod(total_minutes, 24 * 60)
    hours, minutes = divmod(remainder, 60)
    return f"{days}d {hours}h {minutes}m remaining"
