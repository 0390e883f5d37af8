# scheduling_api/scripts/show_slots.py
import argparse
from datetime import date, timedelta

from scheduling_api.database import SessionLocal, init_db
from scheduling_api.services.scheduling import available_slots


def show_slots(db, doctor_id: str, d: date):
    print(f"\n=== Slots for {doctor_id} on {d.isoformat()} ===")
    slots = available_slots(db, doctor_id, d)
    if not slots:
        print("No free slots.")
        return
    for s in slots:
        print(" -", s.strftime("%Y-%m-%d %H:%M"))


def main(argv=None):
    parser = argparse.ArgumentParser(description="Print a doctor's free appointment slots.")
    parser.add_argument("doctor_id")
    parser.add_argument("--days", type=int, default=3, help="number of days starting today")
    args = parser.parse_args(argv)

    init_db()
    db = SessionLocal()
    try:
        today = date.today()
        for offset in range(args.days):
            show_slots(db, args.doctor_id, today + timedelta(days=offset))
    finally:
        db.close()


if __name__ == "__main__":
    main()
