"""
Stock reservation and release.

Reservation decrements stock when an order is placed, release puts it back when
a PLACED order is rejected or cancelled. Every stock change is a single-document
atomic update, so two checkouts racing for the last unit cannot both win:

    reserve:  {_id: id, stock: {$gte: qty}}  ->  {$inc: {stock: -qty}}
    release:  {_id: id}                      ->  {$inc: {stock: +qty}}

A multi-item reservation is all or nothing. Items are reserved one by one and,
if any item fails, the units already taken are handed back before the error
propagates.
"""
import logging
from dataclasses import dataclass
from typing import Iterable, List, Tuple

from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import PyMongoError

from database import to_object_id
from errors import DatabaseError, InsufficientStockError, MedicineNotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Reservation:
    """Units taken from one medicine for one line item."""

    medicine_id: str
    name: str
    quantity: int
    price: float


def _reserve_one(db: Database, medicine_id: str, quantity: int) -> Reservation:
    oid = to_object_id(medicine_id)
    if oid is None:
        raise MedicineNotFoundError(medicine_id)

    current = None
    try:
        doc = db["medicine"].find_one_and_update(
            {"_id": oid, "stock": {"$gte": quantity}},
            {"$inc": {"stock": -quantity}},
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            current = db["medicine"].find_one({"_id": oid}, {"name": 1, "stock": 1})
    except PyMongoError as e:
        raise DatabaseError("reserve stock", str(e)) from e

    if doc is None:
        if current is None:
            raise MedicineNotFoundError(medicine_id)
        raise InsufficientStockError(
            medicine_id, current.get("name", "medicine"), quantity, int(current.get("stock", 0))
        )

    return Reservation(
        medicine_id=str(oid),
        name=doc.get("name", ""),
        quantity=quantity,
        price=float(doc.get("price", 0)),
    )


def reserve_stock(db: Database, items: Iterable[Tuple[str, int]]) -> List[Reservation]:
    """
    Take ``quantity`` units of each ``(medicine_id, quantity)`` pair.

    Raises MedicineNotFoundError, InsufficientStockError or DatabaseError; in
    every case stock is left as it was before the call.
    """
    applied: List[Reservation] = []
    try:
        for medicine_id, quantity in items:
            applied.append(_reserve_one(db, medicine_id, quantity))
    except Exception:
        if applied:
            compensate(db, applied)
        raise
    return applied


def compensate(db: Database, applied: List[Reservation]) -> None:
    """Hand back every reservation; a failing item does not stop the others."""
    logger.warning(
        "reservation_compensated",
        extra={"medicine_id": [r.medicine_id for r in applied]},
    )
    for r in applied:
        try:
            release_stock(db, [(r.medicine_id, r.quantity)])
        except DatabaseError:
            # the caller still sees the error that triggered the rollback
            logger.exception(
                "compensation_failed",
                extra={"medicine_id": r.medicine_id, "error": f"{r.quantity} units not restored"},
            )


def release_stock(db: Database, items: Iterable[Tuple[str, int]]) -> int:
    """
    Give back ``quantity`` units of each ``(medicine_id, quantity)`` pair.

    Medicines deleted in the meantime are skipped. Returns the number of
    line items actually released.
    """
    released = 0
    for medicine_id, quantity in items:
        oid = to_object_id(medicine_id)
        try:
            res = db["medicine"].update_one({"_id": oid}, {"$inc": {"stock": quantity}}) if oid else None
        except PyMongoError as e:
            raise DatabaseError("release stock", str(e)) from e

        if res is None or res.matched_count == 0:
            logger.warning("release_skipped_missing_medicine", extra={"medicine_id": medicine_id})
            continue
        released += 1
    return released
