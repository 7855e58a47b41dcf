"""Tests for stock reservation and release."""

import logging

import pytest
from bson import ObjectId

import inventory
from errors import DatabaseError, InsufficientStockError, MedicineNotFoundError
from inventory import release_stock, reserve_stock


class TestReserveStock:
    def test_decrements_each_item(self, db, add_medicine, stock_of):
        a = add_medicine("A", stock=10, price=2.5)
        b = add_medicine("B", stock=3, price=4.0)

        reservations = reserve_stock(db, [(a["_id"], 4), (b["_id"], 3)])

        assert stock_of(a) == 6
        assert stock_of(b) == 0
        assert [(r.medicine_id, r.quantity, r.price) for r in reservations] == [
            (a["_id"], 4, 2.5),
            (b["_id"], 3, 4.0),
        ]
        assert reservations[0].name == "A"

    def test_insufficient_stock_names_the_medicine(self, db, add_medicine, stock_of):
        a = add_medicine("Cetirizine 10mg", stock=2)

        with pytest.raises(InsufficientStockError) as exc_info:
            reserve_stock(db, [(a["_id"], 3)])

        err = exc_info.value
        assert err.name == "Cetirizine 10mg"
        assert err.requested == 3
        assert err.available == 2
        assert "Cetirizine 10mg" in str(err)
        assert stock_of(a) == 2

    def test_failure_on_later_item_restores_earlier_items(self, db, add_medicine, stock_of):
        a = add_medicine("A", stock=10)
        b = add_medicine("B", stock=1)

        with pytest.raises(InsufficientStockError):
            reserve_stock(db, [(a["_id"], 5), (b["_id"], 2)])

        assert stock_of(a) == 10
        assert stock_of(b) == 1

    def test_unknown_medicine_restores_earlier_items(self, db, add_medicine, stock_of):
        a = add_medicine("A", stock=10)

        with pytest.raises(MedicineNotFoundError):
            reserve_stock(db, [(a["_id"], 5), (str(ObjectId()), 1)])

        assert stock_of(a) == 10

    def test_failed_rollback_keeps_original_error(self, db, add_medicine, stock_of, monkeypatch, caplog):
        a = add_medicine("A", stock=10)
        b = add_medicine("B", stock=10)
        c = add_medicine("C", stock=1)
        real_release = inventory.release_stock

        def flaky_release(database, items):
            items = list(items)
            if items[0][0] == a["_id"]:
                raise DatabaseError("release stock", "connection reset")
            return real_release(database, items)

        monkeypatch.setattr(inventory, "release_stock", flaky_release)
        with caplog.at_level(logging.ERROR, logger="inventory"):
            with pytest.raises(InsufficientStockError):
                reserve_stock(db, [(a["_id"], 4), (b["_id"], 4), (c["_id"], 2)])

        assert stock_of(a) == 6
        assert stock_of(b) == 10
        assert [r.message for r in caplog.records if r.levelno == logging.ERROR] == ["compensation_failed"]

    def test_malformed_id_is_not_found(self, db):
        with pytest.raises(MedicineNotFoundError):
            reserve_stock(db, [("not-an-id", 1)])

    def test_duplicate_lines_reserve_cumulatively(self, db, add_medicine, stock_of):
        a = add_medicine("A", stock=5)

        with pytest.raises(InsufficientStockError):
            reserve_stock(db, [(a["_id"], 3), (a["_id"], 3)])
        assert stock_of(a) == 5

        reserve_stock(db, [(a["_id"], 2), (a["_id"], 3)])
        assert stock_of(a) == 0


class TestReleaseStock:
    def test_adds_quantities_back(self, db, add_medicine, stock_of):
        a = add_medicine("A", stock=1)

        assert release_stock(db, [(a["_id"], 4)]) == 1
        assert stock_of(a) == 5

    def test_skips_deleted_medicine(self, db, add_medicine, stock_of):
        a = add_medicine("A", stock=1)

        released = release_stock(db, [(str(ObjectId()), 2), (a["_id"], 2)])

        assert released == 1
        assert stock_of(a) == 3
