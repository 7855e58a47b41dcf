"""
Order lifecycle: checkout, status transitions and order reads.

Status workflow:

    PLACED -> ACCEPTED -> OUT FOR DELIVERY -> DELIVERED
    PLACED -> REJECTED     (admin, reason required, stock released)
    PLACED -> CANCELLED    (owner or admin, stock released)

REJECTED, DELIVERED and CANCELLED are terminal.
"""
import logging
from enum import Enum
from typing import Dict, List, Optional

from pymongo import DESCENDING, ReturnDocument
from pymongo.database import Database
from pymongo.errors import PyMongoError

from auth import is_admin
from database import create_document, now_utc, serialize, to_object_id
from errors import (
    DatabaseError,
    InvalidTransitionError,
    OrderNotFoundError,
    PermissionDeniedError,
    RejectionReasonRequiredError,
)
from inventory import compensate, release_stock, reserve_stock
from schemas import CreateOrderRequest, Order, OrderItem, OrderStatus

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: Dict[OrderStatus, frozenset] = {
    OrderStatus.PLACED: frozenset({OrderStatus.ACCEPTED, OrderStatus.REJECTED, OrderStatus.CANCELLED}),
    OrderStatus.ACCEPTED: frozenset({OrderStatus.OUT_FOR_DELIVERY}),
    OrderStatus.OUT_FOR_DELIVERY: frozenset({OrderStatus.DELIVERED}),
}

ADMIN_TARGETS = frozenset({
    OrderStatus.ACCEPTED,
    OrderStatus.REJECTED,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
})

# Only these edges hand reserved units back to the catalog
RELEASE_EDGES = frozenset({
    (OrderStatus.PLACED, OrderStatus.REJECTED),
    (OrderStatus.PLACED, OrderStatus.CANCELLED),
})

USER_SUMMARY_FIELDS = {"name": 1, "email": 1, "phone": 1}
USER_DETAIL_FIELDS = {"name": 1, "email": 1, "phone": 1, "address": 1}


class TransitionDecision(str, Enum):
    ALLOW = "allow"
    FORBIDDEN = "forbidden"
    ILLEGAL = "illegal"


def can_transition(role: Optional[str], is_owner: bool, current: OrderStatus, target: OrderStatus) -> TransitionDecision:
    """
    Decide whether a caller may move an order from ``current`` to ``target``.

    FORBIDDEN means the caller's role or ownership is wrong, ILLEGAL means the
    caller is allowed to ask but the order's current status does not permit it.
    """
    admin = role == "admin"
    if target is OrderStatus.CANCELLED:
        if not (admin or is_owner):
            return TransitionDecision.FORBIDDEN
    elif target in ADMIN_TARGETS:
        if not admin:
            return TransitionDecision.FORBIDDEN
    else:
        return TransitionDecision.FORBIDDEN

    if target in ALLOWED_TRANSITIONS.get(current, frozenset()):
        return TransitionDecision.ALLOW
    return TransitionDecision.ILLEGAL


def releases_stock(current: OrderStatus, target: OrderStatus) -> bool:
    return (current, target) in RELEASE_EDGES


# -----------------------------
# Population helpers
# -----------------------------

def _populate(db: Database, orders: List[dict], user_fields: dict) -> List[dict]:
    """Resolve item medicine ids and the owner id to full records."""
    med_ids = {to_object_id(i["medicine"]) for o in orders for i in o.get("items", [])}
    med_ids.discard(None)
    meds = {str(m["_id"]): serialize(m) for m in db["medicine"].find({"_id": {"$in": list(med_ids)}})} if med_ids else {}

    user_ids = {to_object_id(o.get("user_id")) for o in orders}
    user_ids.discard(None)
    users = {str(u["_id"]): serialize(u) for u in db["user"].find({"_id": {"$in": list(user_ids)}}, user_fields)} if user_ids else {}

    out = []
    for o in orders:
        doc = serialize(o)
        doc["items"] = [
            {
                "medicine_id": i["medicine"],
                "medicine": meds.get(i["medicine"]),
                "quantity": i["quantity"],
                "price": i["price"],
            }
            for i in o.get("items", [])
        ]
        doc["user"] = users.get(o.get("user_id"))
        out.append(doc)
    return out


def populate_order(db: Database, order: dict, user_fields: dict = USER_SUMMARY_FIELDS) -> dict:
    return _populate(db, [order], user_fields)[0]


def _load_order(db: Database, order_id: str) -> dict:
    oid = to_object_id(order_id)
    doc = db["order"].find_one({"_id": oid}) if oid else None
    if not doc:
        raise OrderNotFoundError(order_id)
    return doc


def _owns(user: dict, order: dict) -> bool:
    return order.get("user_id") == str(user["_id"])


# -----------------------------
# Operations
# -----------------------------

def create_order(db: Database, user: dict, payload: CreateOrderRequest) -> dict:
    """Reserve stock for every line item and persist a PLACED order."""
    reservations = reserve_stock(db, [(i.medicine, i.quantity) for i in payload.items])

    items = [OrderItem(medicine=r.medicine_id, quantity=r.quantity, price=r.price) for r in reservations]
    total = round(sum(i.price * i.quantity for i in items), 2)
    if payload.total_amount is not None and abs(payload.total_amount - total) >= 0.01:
        logger.warning(
            "client_total_mismatch",
            extra={"user_id": str(user["_id"]), "error": f"client={payload.total_amount} server={total}"},
        )

    order = Order(
        user_id=str(user["_id"]),
        items=items,
        total_amount=total,
        delivery_address=payload.delivery_address,
        phone=payload.phone,
        status=OrderStatus.PLACED,
    )
    try:
        order_id = create_document(db, "order", order.model_dump(mode="json"))
    except PyMongoError as e:
        compensate(db, reservations)
        raise DatabaseError("insert order", str(e)) from e

    logger.info("order_placed", extra={"order_id": order_id, "user_id": order.user_id})
    return populate_order(db, _load_order(db, order_id))


def transition_order(
    db: Database,
    order_id: str,
    actor: dict,
    target: OrderStatus,
    rejection_reason: Optional[str] = None,
) -> dict:
    """Apply a status change requested by ``actor``; releases stock on PLACED -> REJECTED/CANCELLED."""
    order = _load_order(db, order_id)
    current = OrderStatus(order["status"])

    decision = can_transition(actor.get("role"), _owns(actor, order), current, target)
    if decision is TransitionDecision.FORBIDDEN:
        raise PermissionDeniedError()
    if decision is TransitionDecision.ILLEGAL:
        raise InvalidTransitionError(current.value, target.value)

    reason = (rejection_reason or "").strip()
    if target is OrderStatus.REJECTED and not reason:
        raise RejectionReasonRequiredError()

    changes = {"status": target.value, "updated_at": now_utc()}
    if target is OrderStatus.REJECTED:
        changes["rejection_reason"] = reason

    # compare-and-set on the status we authorized against
    updated = db["order"].find_one_and_update(
        {"_id": order["_id"], "status": current.value},
        {"$set": changes},
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        raise InvalidTransitionError(current.value, target.value)

    if releases_stock(current, target):
        released = release_stock(db, [(i["medicine"], i["quantity"]) for i in updated["items"]])
        logger.info("stock_released", extra={"order_id": order_id, "status": target.value, "user_id": str(actor["_id"])})
        logger.debug("released %d line items for order %s", released, order_id)

    logger.info(
        "order_status_changed",
        extra={"order_id": order_id, "status": f"{current.value} -> {target.value}", "user_id": str(actor["_id"])},
    )
    return populate_order(db, updated)


def list_orders(db: Database, user: dict) -> List[dict]:
    filter_q = {} if is_admin(user) else {"user_id": str(user["_id"])}
    data = list(db["order"].find(filter_q).sort("created_at", DESCENDING))
    return _populate(db, data, USER_SUMMARY_FIELDS)


def get_order(db: Database, order_id: str, user: dict) -> dict:
    order = _load_order(db, order_id)
    if not is_admin(user) and not _owns(user, order):
        raise PermissionDeniedError()
    return populate_order(db, order, USER_DETAIL_FIELDS)
