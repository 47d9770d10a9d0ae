import argparse
import random

from shedula import crud
from shedula.config import get_settings
from shedula.database import SessionLocal, create_tables
from shedula.services.directory_service import generate_doctors


def main():
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Load the generated doctor directory into the record store.")
    parser.add_argument("--count", type=int, default=settings.directory_size)
    parser.add_argument("--seed", type=int, default=settings.directory_seed)
    parser.add_argument("--days", type=int, default=settings.slot_days)
    args = parser.parse_args()

    create_tables()
    doctors = generate_doctors(
        args.count,
        rng=random.Random(args.seed),
        availability=settings.slot_availability,
        days=args.days,
    )

    db = SessionLocal()
    try:
        written = crud.seed_doctors(db, doctors)
    finally:
        db.close()
    print(f"Doctor directory written: {written} doctors")


if __name__ == "__main__":
    main()
