"""Seed the configured database with demo accounts and a starter catalog."""

import argparse
import logging
import sys
from datetime import date
from typing import List, Optional

from pymongo.database import Database
from pymongo.errors import PyMongoError

import database
from auth import hash_password
from catalog import create_medicine
from config import settings
from database import create_document, ensure_indexes
from errors import DatabaseUnavailableError
from logs import configure_logging
from schemas import Medicine, User

logger = logging.getLogger(__name__)

DEMO_USERS = [
    {
        "name": "Admin User",
        "email": "admin@demo.com",
        "password": "admin123",
        "phone": "9876543210",
        "address": "Admin Office, Medical District, City",
        "role": "admin",
    },
    {
        "name": "Demo User",
        "email": "user@demo.com",
        "password": "user123",
        "phone": "9123456780",
        "address": "123 Main Street, Apartment 4B, City, State - 12345",
        "role": "user",
    },
]

DEMO_MEDICINES = [
    Medicine(
        name="Paracetamol 500mg",
        description="Pain relief and fever reducer for headaches, muscle aches, colds and fevers.",
        category="Pain Relief",
        price=50,
        stock=100,
        manufacturer="PharmaCorp Ltd.",
        expiry_date=date(2027, 12, 31),
    ),
    Medicine(
        name="Amoxicillin 250mg",
        description="Broad-spectrum antibiotic for respiratory tract, ear and skin infections.",
        category="Antibiotics",
        price=120,
        stock=75,
        manufacturer="HealthMed Pharma",
        expiry_date=date(2027, 10, 31),
        requires_prescription=True,
    ),
    Medicine(
        name="Cetirizine 10mg",
        description="Antihistamine for watery eyes, runny nose, itching and sneezing.",
        category="Allergy",
        price=80,
        stock=150,
        manufacturer="AllerCare Inc.",
        expiry_date=date(2028, 3, 31),
    ),
    Medicine(
        name="Vitamin D3 1000 IU",
        description="Supplement for healthy bones, teeth and immune system.",
        category="Vitamins",
        price=200,
        stock=200,
        manufacturer="VitaLife Nutrition",
        expiry_date=date(2028, 6, 30),
    ),
    Medicine(
        name="Ibuprofen 400mg",
        description="NSAID used to reduce fever and treat pain or inflammation.",
        category="Pain Relief",
        price=75,
        stock=120,
        manufacturer="PharmaCorp Ltd.",
        expiry_date=date(2027, 11, 30),
    ),
    Medicine(
        name="Omeprazole 20mg",
        description="Proton pump inhibitor for heartburn, acid reflux and ulcers.",
        category="Digestive Health",
        price=95,
        stock=90,
        manufacturer="GastroMed Labs",
        expiry_date=date(2027, 9, 30),
    ),
    Medicine(
        name="Metformin 500mg",
        description="Oral medicine that helps control blood sugar in type 2 diabetes.",
        category="Diabetes",
        price=85,
        stock=110,
        manufacturer="DiaCare Pharmaceuticals",
        expiry_date=date(2027, 12, 31),
        requires_prescription=True,
    ),
    Medicine(
        name="Lisinopril 10mg",
        description="ACE inhibitor for high blood pressure and heart failure.",
        category="Cardiovascular",
        price=140,
        stock=80,
        manufacturer="CardioHealth Pharma",
        expiry_date=date(2028, 1, 31),
        requires_prescription=True,
    ),
    Medicine(
        name="Loratadine 10mg",
        description="Long-acting, non-drowsy antihistamine for allergy relief.",
        category="Allergy",
        price=65,
        stock=140,
        manufacturer="AllerCare Inc.",
        expiry_date=date(2028, 4, 30),
    ),
    Medicine(
        name="Aspirin 75mg",
        description="Low-dose aspirin to reduce the risk of heart attack and stroke.",
        category="Cardiovascular",
        price=40,
        stock=200,
        manufacturer="CardioHealth Pharma",
        expiry_date=date(2028, 2, 28),
    ),
]


def seed_database(db: Database, keep: bool = False) -> dict:
    """Insert demo users and medicines; returns how many of each were created."""
    if not keep:
        db["user"].delete_many({})
        db["medicine"].delete_many({})
        logger.info("cleared users and medicines")

    ensure_indexes(db)

    users = 0
    for raw in DEMO_USERS:
        if keep and db["user"].find_one({"email": raw["email"]}):
            continue
        user = User(**{**raw, "password": hash_password(raw["password"])})
        create_document(db, "user", user)
        users += 1

    medicines = 0
    for med in DEMO_MEDICINES:
        if keep and db["medicine"].find_one({"name": med.name}):
            continue
        create_medicine(db, med)
        medicines += 1

    logger.info("seeded %d users and %d medicines", users, medicines)
    return {"users": users, "medicines": medicines}


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="seed",
        description="Seed the pharmacy database with demo accounts and medicines.",
    )
    parser.add_argument(
        "--keep",
        action="store_true",
        help="Keep existing users and medicines; only add missing demo records",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = create_parser().parse_args(argv)
    configure_logging(settings.log_level, settings.log_json)

    try:
        db = database.get_db()
        counts = seed_database(db, keep=args.keep)
    except DatabaseUnavailableError as e:
        logger.error("seeding failed: %s", e)
        return 1
    except PyMongoError as e:
        logger.error("seeding failed: %s", e)
        return 1

    print(f"Seeded {counts['users']} users and {counts['medicines']} medicines")
    print("Admin: admin@demo.com / admin123")
    print("User:  user@demo.com / user123")
    return 0


if __name__ == "__main__":
    sys.exit(main())
