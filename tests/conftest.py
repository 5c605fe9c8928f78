import mongomock
import pytest
from fastapi.testclient import TestClient

import database
from main import app

ADMIN_EMAIL = "admin@trendprints.com"
ADMIN_PASSWORD = "admin123"

ADDRESS = {
    "fullName": "Asha Rao",
    "phone": "9876543210",
    "address": "12 MG Road",
    "city": "Bengaluru",
    "pincode": "560001",
}


@pytest.fixture
def db(monkeypatch):
    mock_db = mongomock.MongoClient()["trendprints_test"]
    monkeypatch.setattr(database, "db", mock_db)
    return mock_db


@pytest.fixture
def client(db):
    with TestClient(app) as c:
        yield c


def signup(client, username="alice", email="alice@mail.com", password="secret123"):
    return client.post(
        "/signup",
        data={"username": username, "email": email, "password": password},
        follow_redirects=False,
    )


def login(client, email, password):
    return client.post("/login", data={"email": email, "password": password}, follow_redirects=False)


@pytest.fixture
def user_client(client):
    resp = signup(client)
    assert resp.status_code == 302
    return client


@pytest.fixture
def admin_client(db, client):
    other = TestClient(app)
    resp = login(other, ADMIN_EMAIL, ADMIN_PASSWORD)
    assert resp.status_code == 302
    return other
