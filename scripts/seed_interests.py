"""
Seed the interest catalogue. There is no endpoint that creates interests, so
this is how a fresh database gets one. Existing names are left untouched.

Usage: python scripts/seed_interests.py [name ...]
"""

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from volunteer_app.db.session import SessionLocal, create_db
from volunteer_app.models.interest import Interest

DEFAULT_INTERESTS = [
    ("Animals", "Shelters, wildlife and animal care"),
    ("Children", "Tutoring, after-school and summer activities"),
    ("Culture", "Museums, libraries and local heritage"),
    ("Elderly care", "Company and assistance for older people"),
    ("Environment", "Clean-ups, reforestation and recycling"),
    ("Health", "Blood drives, hospitals and first aid"),
    ("Sports", "Running events and community sport"),
]


def seed(names):
    create_db()
    db = SessionLocal()
    try:
        existing = {n for (n,) in db.query(Interest.name).all()}
        added = 0
        for name, description in names:
            if name in existing:
                continue
            db.add(Interest(name=name, description=description))
            added += 1
        db.commit()
        return added
    finally:
        db.close()


def main():
    names = [(n, None) for n in sys.argv[1:]] or DEFAULT_INTERESTS
    try:
        added = seed(names)
        print(f'SEED_OK added={added}')
    except Exception as e:
        print('SEED_FAILED', e)
        sys.exit(1)


if __name__ == "__main__":
    main()
