from pymongo.database import Database

from schemas import OrderStatus


def admin_stats(db: Database) -> dict:
    """Dashboard counters, accurate as of the query."""
    return {
        "total_orders": db["order"].count_documents({}),
        "total_medicines": db["medicine"].count_documents({}),
        "total_users": db["user"].count_documents({"role": "user"}),
        "pending_orders": db["order"].count_documents({"status": OrderStatus.PLACED.value}),
    }
