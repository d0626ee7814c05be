import pytest
from fastapi.testclient import TestClient

from config import Settings
from conftest import hostel_dict
from main import create_app
from security import SESSION_COOKIE


def form_login(client, email="alice@example.com", password="secret123", next="/"):
    return client.post(
        "/login",
        data={"email": email, "password": password, "next": next},
        follow_redirects=False,
    )


@pytest.fixture
def owner_hostel(register, make_hostel):
    _, headers = register()
    return make_hostel(headers)


def test_home_lists_latest(client, owner_hostel):
    r = client.get("/")
    assert r.status_code == 200
    assert "RoomBuddy" in r.text
    assert owner_hostel["name"] in r.text
    assert "Login" in r.text


def test_hostel_search_page_filters(client, register, make_hostel):
    _, headers = register()
    pune = dict(hostel_dict()["address"], city="Pune")
    make_hostel(headers, name="Green Valley PG", type="pg")
    make_hostel(headers, name="Campus Corner", address=pune)

    r = client.get("/hostels", params={"city": "pune"})
    assert r.status_code == 200
    assert "Campus Corner" in r.text
    assert "Green Valley PG" not in r.text
    assert "1 result" in r.text


def test_hostel_search_page_shows_bad_filters(client, owner_hostel):
    r = client.get("/hostels", params={"minPrice": "cheap"})
    assert r.status_code == 200
    assert "minPrice" in r.text
    assert owner_hostel["name"] in r.text


def test_hostel_detail_page(client, owner_hostel):
    r = client.get(f"/hostels/{owner_hostel['id']}")
    assert r.status_code == 200
    assert owner_hostel["name"] in r.text
    assert "Listed by Alice" in r.text
    assert "to write a review" in r.text


def test_missing_hostel_page(client):
    r = client.get("/hostels/507f1f77bcf86cd799439011")
    assert r.status_code == 404
    assert "Hostel not found" in r.text


def test_register_form_starts_session(client):
    r = client.post(
        "/register",
        data={"name": "Carol", "email": "carol@example.com", "password": "secret123", "confirm_password": "secret123"},
        follow_redirects=False,
    )
    assert r.status_code == 303
    assert r.headers["location"].startswith("/?notice=")
    assert SESSION_COOKIE in r.cookies

    page = client.get("/")
    assert "Carol" in page.text
    assert "Logout" in page.text


def test_register_form_password_mismatch(client):
    r = client.post(
        "/register",
        data={"name": "Carol", "email": "carol@example.com", "password": "secret123", "confirm_password": "other"},
    )
    assert r.status_code == 400
    assert "Passwords do not match" in r.text


def test_login_form(client, register):
    register()
    r = form_login(client, password="wrong-pass")
    assert r.status_code == 401
    assert "Invalid email or password" in r.text

    r = form_login(client, next="/profile")
    assert r.status_code == 303
    assert r.headers["location"].startswith("/profile")


def test_login_form_normalizes_email(client):
    r = client.post("/api/users/register", json={"name": "Al", "email": "al@Example.COM", "password": "secret123"})
    assert r.status_code == 201

    r = form_login(client, email="al@Example.COM")
    assert r.status_code == 303
    assert SESSION_COOKIE in r.cookies

    client.cookies.clear()
    r = form_login(client, email="  al@example.com ")
    assert r.status_code == 303


def test_login_form_rejects_malformed_email(client):
    r = form_login(client, email="not-an-email")
    assert r.status_code == 400
    assert "valid email" in r.text


def test_login_form_ignores_offsite_next(client, register):
    register()
    r = form_login(client, next="//evil.example.com")
    assert r.headers["location"].startswith("/?")


def test_logout_clears_session(client, register):
    register()
    form_login(client)
    assert "Logout" in client.get("/").text
    client.get("/logout")
    assert "Logout" not in client.get("/").text


def test_roommate_contact_requires_login(client, register, make_roommate):
    _, headers = register()
    profile = make_roommate(headers)

    r = client.get(f"/roommates/{profile['id']}")
    assert r.status_code == 200
    assert "to view contact information" in r.text
    assert profile["phone"] not in r.text

    form_login(client)
    r = client.get(f"/roommates/{profile['id']}")
    assert profile["phone"] in r.text
    assert "alice@example.com" in r.text


def test_roommate_search_page(client, register, make_roommate):
    _, a = register(name="A", email="a@example.com")
    _, b = register(name="B", email="b@example.com")
    make_roommate(a, name="Smoker", lifestyle={"smoking": True})
    make_roommate(b, name="Quiet", lifestyle={"smoking": False})

    r = client.get("/roommates", params={"smoking": "false"})
    assert r.status_code == 200
    assert "Quiet" in r.text
    assert "Smoker" not in r.text


def test_protected_pages_redirect_to_login(client):
    for path in ("/register-hostel", "/register-roommate", "/profile"):
        r = client.get(path, follow_redirects=False)
        assert r.status_code == 303
        assert r.headers["location"].startswith("/login?next=")


def test_register_hostel_form(client, db, register):
    register()
    form_login(client)
    data = {
        "name": "Form Hostel",
        "description": "Made from the form",
        "street": "1 Main Road",
        "city": "Chennai",
        "state": "Tamil Nadu",
        "zipCode": "600001",
        "country": "India",
        "lat": "13.08",
        "lng": "80.27",
        "price": "6500",
        "vacancies": "2",
        "type": "pg",
        "gender": "coed",
        "amenity": ["WiFi", "Kitchen"],
        "rules": "No loud music\nNo pets",
        "contactPhone": "9000000000",
        "contactEmail": "owner@example.com",
    }
    r = client.post("/register-hostel", data=data, follow_redirects=False)
    assert r.status_code == 303

    stored = db["hostel"].find_one({"name": "Form Hostel"})
    assert stored["amenities"] == ["WiFi", "Kitchen"]
    assert stored["rules"] == ["No loud music", "No pets"]
    assert stored["location"]["coordinates"] == [80.27, 13.08]
    assert r.headers["location"].startswith(f"/hostels/{stored['_id']}")


def test_register_hostel_form_invalid(client, register):
    register()
    form_login(client)
    r = client.post("/register-hostel", data={"name": "Incomplete"})
    assert r.status_code == 400
    assert 'value="Incomplete"' in r.text


def test_review_form(client, register, owner_hostel):
    register(name="Bob", email="bob@example.com")
    form_login(client, email="bob@example.com")

    back = f"/hostels/{owner_hostel['id']}"
    r = client.post(f"{back}/reviews", data={"rating": "4", "comment": "Good food"}, follow_redirects=False)
    assert r.status_code == 303
    assert "notice=" in r.headers["location"]

    again = client.post(f"{back}/reviews", data={"rating": "2", "comment": "Again"}, follow_redirects=False)
    assert "error=" in again.headers["location"]

    body = client.get(f"/api/hostels/{owner_hostel['id']}").json()
    assert body["numReviews"] == 1
    assert body["reviews"][0]["name"] == "Bob"


def test_profile_page_lists_own_listings(client, owner_hostel):
    form_login(client)
    r = client.get("/profile")
    assert r.status_code == 200
    assert owner_hostel["name"] in r.text


def test_development_mode_has_api_placeholder(db):
    app = create_app(Settings(secret_key="test-secret", production=False), db=db)
    client = TestClient(app)
    assert client.get("/").json() == {"message": "API is running..."}
    assert client.get("/hostels").status_code == 404
