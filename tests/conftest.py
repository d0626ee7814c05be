import mongomock
import pytest
from fastapi.testclient import TestClient

from config import Settings
from main import create_app

# ---------- TEST FIXTURES ----------


@pytest.fixture
def settings():
    return Settings(secret_key="test-secret", database_name="roombuddy_test", production=True)


@pytest.fixture
def db():
    """In-memory MongoDB per test."""
    client = mongomock.MongoClient()
    yield client["roombuddy_test"]
    client.close()


@pytest.fixture
def client(settings, db):
    app = create_app(settings, db=db)
    return TestClient(app)


@pytest.fixture
def register(client):
    """Register an account and return (user, auth headers)."""

    def _register(name="Alice", email="alice@example.com", password="secret123"):
        r = client.post("/api/users/register", json={"name": name, "email": email, "password": password})
        assert r.status_code == 201, r.text
        body = r.json()
        return body["user"], {"Authorization": f"Bearer {body['token']}"}

    return _register


# ---------- TEST DATA HELPERS ----------


def hostel_dict(**overrides):
    data = {
        "name": "Sunshine Hostel",
        "description": "Clean rooms close to the college",
        "address": {
            "street": "123 College Road",
            "city": "Bangalore",
            "state": "Karnataka",
            "zipCode": "560001",
            "country": "India",
        },
        "location": {"type": "Point", "coordinates": [77.5946, 12.9716]},
        "price": 8000,
        "images": [],
        "type": "hostel",
        "gender": "male",
        "amenities": ["WiFi", "AC", "Laundry"],
        "rules": ["No smoking"],
        "vacancies": 5,
        "contactPhone": "9876543210",
        "contactEmail": "owner@example.com",
    }
    data.update(overrides)
    return data


def roommate_dict(**overrides):
    data = {
        "name": "Priya",
        "age": 24,
        "gender": "female",
        "occupation": "working",
        "budget": {"min": 8000, "max": 12000},
        "location": {"type": "Point", "coordinates": [77.5946, 12.9716]},
        "preferredLocation": {"city": "Bangalore", "areas": ["Koramangala", "HSR Layout"]},
        "moveInDate": "2025-06-01",
        "stayDuration": "6-12 months",
        "lifestyle": {"smoking": False, "drinking": False, "pets": True, "cooking": True, "earlyRiser": True, "nightOwl": False},
        "bio": "Software engineer who enjoys cooking",
        "contactPreference": "both",
        "phone": "9123456780",
    }
    data.update(overrides)
    return data


@pytest.fixture
def make_hostel(client):
    def _make(headers, **overrides):
        r = client.post("/api/hostels", json=hostel_dict(**overrides), headers=headers)
        assert r.status_code == 201, r.text
        return r.json()

    return _make


@pytest.fixture
def make_roommate(client):
    def _make(headers, **overrides):
        r = client.post("/api/roommates", json=roommate_dict(**overrides), headers=headers)
        assert r.status_code == 201, r.text
        return r.json()

    return _make
