import mongomock
import pytest
from fastapi.testclient import TestClient

import database
import users
from main import app


@pytest.fixture
def db(monkeypatch):
    """A fresh in-memory database with the sample users seeded."""
    mock_db = mongomock.MongoClient()["news-portal-test"]
    monkeypatch.setattr(database, "db", mock_db)
    users.seed_users()
    return mock_db


@pytest.fixture
def api(db):
    return TestClient(app)


@pytest.fixture
def article(api):
    response = api.post(
        "/news",
        json={"title": "Local elections", "body": "Turnout reached a record high this year.", "author_id": 1},
    )
    assert response.status_code == 201
    return response.json()
