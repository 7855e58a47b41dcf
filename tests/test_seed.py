"""Tests for the demo data seeder."""

import database
from auth import verify_password
from seed import DEMO_MEDICINES, DEMO_USERS, main, seed_database


class TestSeedDatabase:
    def test_seeds_users_and_catalog(self, db):
        counts = seed_database(db)

        assert counts == {"users": len(DEMO_USERS), "medicines": len(DEMO_MEDICINES)}
        admin = db["user"].find_one({"email": "admin@demo.com"})
        assert admin["role"] == "admin"
        assert verify_password("admin123", admin["password"])
        assert db["user"].find_one({"email": "user@demo.com"})["role"] == "user"
        assert db["medicine"].count_documents({}) == len(DEMO_MEDICINES)

    def test_reseed_wipes_previous_data(self, db, add_medicine):
        add_medicine("Custom medicine")

        seed_database(db)

        assert db["medicine"].find_one({"name": "Custom medicine"}) is None
        assert db["medicine"].count_documents({}) == len(DEMO_MEDICINES)

    def test_keep_only_adds_missing(self, db, add_medicine):
        seed_database(db)
        add_medicine("Custom medicine")
        db["medicine"].delete_one({"name": DEMO_MEDICINES[0].name})

        counts = seed_database(db, keep=True)

        assert counts == {"users": 0, "medicines": 1}
        assert db["user"].count_documents({}) == len(DEMO_USERS)
        assert db["medicine"].find_one({"name": "Custom medicine"}) is not None


class TestSeedCli:
    def test_without_database(self, monkeypatch):
        monkeypatch.setattr(database, "db", None)
        assert main([]) == 1

    def test_with_database(self, db, capsys):
        assert main(["--keep"]) == 0
        assert "Seeded 2 users" in capsys.readouterr().out
