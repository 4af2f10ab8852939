"""
Tests for the user endpoints and the startup seed.
"""

import mongomock
import pytest

import database
import users
from errors import StoreError


class TestUserEndpoints:

    def test_list_seeded_users(self, api):
        response = api.get("/users")
        assert response.status_code == 200
        data = response.json()
        assert [u["id"] for u in data] == [1, 2, 3, 4, 5]
        assert data[0] == {"id": 1, "name": "John Doe", "email": "john@example.com"}

    def test_get_user(self, api):
        response = api.get("/users/4")
        assert response.status_code == 200
        assert response.json()["name"] == "Alice Williams"

    def test_get_unknown_user_is_404(self, api):
        response = api.get("/users/999")
        assert response.status_code == 404
        assert response.json()["message"] == "User not found"


class TestSeed:

    def test_seed_is_idempotent(self, db):
        assert users.seed_users() == 0
        assert db["users"].count_documents({}) == 5

    def test_seed_skips_non_empty_collection(self, monkeypatch):
        mock_db = mongomock.MongoClient()["seed-test"]
        mock_db["users"].insert_one({"_id": 10, "name": "Existing", "email": "e@example.com"})
        monkeypatch.setattr(database, "db", mock_db)

        assert users.seed_users() == 0
        assert [u["id"] for u in users.list_users()] == [10]

    def test_without_database_store_errors(self, monkeypatch, api):
        monkeypatch.setattr(database, "db", None)
        with pytest.raises(StoreError):
            users.list_users()

        response = api.get("/users")
        assert response.status_code == 500
        assert response.json()["message"] == "Database not available"
