"""Load demo patients and notes into the configured database.

    python scripts/seed.py           # add demo rows, skipping patients that exist
    python scripts/seed.py --reset   # drop and recreate all tables first
"""
import argparse
import asyncio
import logging
import os
import sys
from datetime import date

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from config import settings  # noqa: E402
from database import build_engine, build_session_factory  # noqa: E402
from models import Base, Note, NoteType, Patient  # noqa: E402
import repositories  # noqa: E402

logger = logging.getLogger("seed")

DEMO_PATIENTS = [
    {
        "patient_id": "PAT-001",
        "name": "Sarah Johnson",
        "date_of_birth": date(1985, 3, 15),
        "phone": "555-0101",
        "email": "sarah.johnson@example.com",
        "address": "12 Maple Street, Springfield",
        "notes": [
            {
                "raw_text": "Patient reports fatigue and poor sleep for two weeks. No fever.",
                "ai_summary": "Two weeks of fatigue with poor sleep, afebrile.",
                "soap_format": {
                    "subjective": "Fatigue and poor sleep for two weeks",
                    "objective": "Afebrile",
                    "assessment": "Fatigue, cause not yet established",
                    "plan": "Not documented",
                },
            },
        ],
    },
    {
        "patient_id": "PAT-002",
        "name": "Michael Chen",
        "date_of_birth": date(1978, 11, 2),
        "phone": "555-0102",
        "email": "michael.chen@example.com",
        "address": "48 Harbour Road, Springfield",
        "notes": [
            {
                "raw_text": "Follow-up for hypertension. BP 138/86. Taking amlodipine daily.",
                "ai_summary": "Hypertension follow-up, BP 138/86 on amlodipine.",
                "soap_format": {
                    "subjective": "Taking amlodipine daily",
                    "objective": "BP 138/86",
                    "assessment": "Hypertension, partially controlled",
                    "plan": "Not documented",
                },
            },
            {"raw_text": "Requests repeat prescription, no new complaints."},
        ],
    },
    {
        "patient_id": "PAT-003",
        "name": "Amara Okafor",
        "date_of_birth": date(1992, 7, 21),
        "phone": None,
        "email": None,
        "address": None,
        "notes": [
            {"raw_text": "Sprained left ankle playing football yesterday. Swelling, able to bear weight."},
        ],
    },
]


async def seed(reset: bool) -> None:
    engine = build_engine(settings)
    async with engine.begin() as conn:
        if reset:
            await conn.run_sync(Base.metadata.drop_all)
            logger.info("Dropped all tables.")
        await conn.run_sync(Base.metadata.create_all)

    session_factory = build_session_factory(engine)
    async with session_factory() as session:
        for entry in DEMO_PATIENTS:
            fields = {key: value for key, value in entry.items() if key != "notes"}
            if await repositories.get_patient_by_business_id(session, fields["patient_id"]):
                logger.info("Skipping %s, already present.", fields["patient_id"])
                continue
            patient = Patient(**fields)
            patient.notes = [Note(note_type=NoteType.TEXT, **note) for note in entry["notes"]]
            session.add(patient)
            logger.info("Seeding %s (%s) with %d notes.", patient.name, patient.patient_id, len(patient.notes))
        await session.commit()
    await engine.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--reset", action="store_true", help="drop and recreate all tables first")
    args = parser.parse_args()
    logging.basicConfig(level=settings.log_level, format="%(levelname)s [%(name)s] %(message)s")
    asyncio.run(seed(args.reset))


if __name__ == "__main__":
    main()
