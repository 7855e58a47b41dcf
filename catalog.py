"""
Medicine catalog: search, CRUD and categories.
"""
import logging
import re
from datetime import date, datetime, time, timezone
from typing import List, Optional

from pymongo import ASCENDING, ReturnDocument
from pymongo.database import Database

from database import create_document, get_documents, now_utc, serialize, to_object_id
from errors import MedicineNotFoundError, ValidationFailedError
from schemas import Medicine, MedicineUpdate

logger = logging.getLogger(__name__)


def _storable(fields: dict) -> dict:
    # BSON has no date type; expiry dates are stored as midnight UTC
    out = dict(fields)
    if isinstance(out.get("expiry_date"), date) and not isinstance(out["expiry_date"], datetime):
        out["expiry_date"] = datetime.combine(out["expiry_date"], time.min, tzinfo=timezone.utc)
    return out


def search_filter(search: Optional[str] = None, category: Optional[str] = None) -> dict:
    query: dict = {}
    if search:
        pattern = re.escape(search.strip())
        query["$or"] = [
            {"name": {"$regex": pattern, "$options": "i"}},
            {"description": {"$regex": pattern, "$options": "i"}},
            {"manufacturer": {"$regex": pattern, "$options": "i"}},
        ]
    if category and category != "all":
        query["category"] = category
    return query


def search_medicines(db: Database, search: Optional[str] = None, category: Optional[str] = None) -> List[dict]:
    return get_documents(db, "medicine", search_filter(search, category), sort=[("name", ASCENDING)])


def get_medicine(db: Database, medicine_id: str) -> dict:
    oid = to_object_id(medicine_id)
    doc = db["medicine"].find_one({"_id": oid}) if oid else None
    if not doc:
        raise MedicineNotFoundError(medicine_id)
    return serialize(doc)


def create_medicine(db: Database, medicine: Medicine) -> dict:
    med_id = create_document(db, "medicine", _storable(medicine.model_dump()))
    logger.info("medicine_created", extra={"medicine_id": med_id})
    return get_medicine(db, med_id)


def update_medicine(db: Database, medicine_id: str, changes: MedicineUpdate) -> dict:
    oid = to_object_id(medicine_id)
    if oid is None:
        raise MedicineNotFoundError(medicine_id)

    fields = _storable(changes.model_dump(exclude_unset=True, exclude_none=True))
    if not fields:
        raise ValidationFailedError("No fields to update")
    fields["updated_at"] = now_utc()
    doc = db["medicine"].find_one_and_update(
        {"_id": oid},
        {"$set": fields},
        return_document=ReturnDocument.AFTER,
    )
    if not doc:
        raise MedicineNotFoundError(medicine_id)
    logger.info("medicine_updated", extra={"medicine_id": medicine_id})
    return serialize(doc)


def delete_medicine(db: Database, medicine_id: str) -> None:
    oid = to_object_id(medicine_id)
    res = db["medicine"].delete_one({"_id": oid}) if oid else None
    if res is None or res.deleted_count == 0:
        raise MedicineNotFoundError(medicine_id)
    logger.info("medicine_deleted", extra={"medicine_id": medicine_id})


def list_categories(db: Database) -> List[str]:
    return sorted(c for c in db["medicine"].distinct("category") if c)
