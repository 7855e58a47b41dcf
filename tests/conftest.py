"""Pytest fixtures for the pharmacy API tests."""

from datetime import date

import mongomock
import pytest
from fastapi.testclient import TestClient

import database
from auth import create_token, hash_password
from catalog import create_medicine
from schemas import Medicine


@pytest.fixture
def db(monkeypatch):
    """In-memory MongoDB wired in as the application database."""
    mock_db = mongomock.MongoClient()["pharmacy_test"]
    database.ensure_indexes(mock_db)
    monkeypatch.setattr(database, "db", mock_db)
    return mock_db


@pytest.fixture
def client(db):
    from main import app

    return TestClient(app)


@pytest.fixture
def make_user(db):
    """Insert a user directly and return the stored document."""

    def _make(email: str, role: str = "user", password: str = "secret123", name: str = "Test User"):
        user_id = database.create_document(
            db,
            "user",
            {
                "name": name,
                "email": email,
                "password": hash_password(password),
                "phone": "5550100",
                "address": "1 Test Street",
                "role": role,
            },
        )
        return db["user"].find_one({"_id": database.to_object_id(user_id)})

    return _make


@pytest.fixture
def customer(make_user):
    return make_user("alice@example.com")


@pytest.fixture
def other_customer(make_user):
    return make_user("bob@example.com", name="Bob")


@pytest.fixture
def admin(make_user):
    return make_user("admin@example.com", role="admin", name="Admin")


@pytest.fixture
def headers():
    """Build an Authorization header for a stored user."""

    def _headers(user: dict) -> dict:
        return {"Authorization": f"Bearer {create_token(str(user['_id']))}"}

    return _headers


@pytest.fixture
def add_medicine(db):
    """Create a catalog entry and return its serialized record."""

    def _add(name: str = "Paracetamol 500mg", stock: int = 5, price: float = 10.0, category: str = "Pain Relief", **extra):
        med = Medicine(
            name=name,
            description=extra.pop("description", f"{name} tablets"),
            category=category,
            price=price,
            stock=stock,
            manufacturer=extra.pop("manufacturer", "PharmaCorp Ltd."),
            expiry_date=extra.pop("expiry_date", date(2030, 1, 31)),
            **extra,
        )
        return create_medicine(db, med)

    return _add


@pytest.fixture
def stock_of(db):
    """Read a medicine's current stock straight from the database."""

    def _stock(medicine: dict) -> int:
        return db["medicine"].find_one({"_id": database.to_object_id(medicine["_id"])})["stock"]

    return _stock
