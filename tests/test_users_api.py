import pytest

from app.models.user import User

# --- Fixtures ---

@pytest.fixture
def registered(client):
    """Registers Lucia through the API and returns (user json, auth header)."""
    resp = client.post(
        "/users/register",
        json={
            "name": "Lucia",
            "email": "Lucia@Example.org",
            "password": "s3cret-pass",
            "phone": "644444444",
            "location": {"latitude": 39.43, "longitude": -0.42, "address": "Paiporta", "radius": 5},
        },
    )
    assert resp.status_code == 201, resp.text
    data = resp.json()
    return data["user"], {"Authorization": f"Bearer {data['access_token']}"}

# --- accounts ---

def test_register_returns_token_and_profile(registered, db_session):
    user, _ = registered

    assert user["email"] == "lucia@example.org"
    assert user["roles"] == []
    assert user["location"]["radius"] == 5
    assert "password" not in user and "password_hash" not in user
    stored = db_session.query(User).filter(User.id == user["id"]).one()
    assert stored.password_hash != "s3cret-pass"


def test_register_duplicate_email_is_400(client, registered):
    resp = client.post(
        "/users/register",
        json={"name": "Otra", "email": "lucia@example.org", "password": "another-pass"},
    )
    assert resp.status_code == 400


def test_login(client, registered):
    resp = client.post("/users/login", json={"email": "lucia@example.org", "password": "s3cret-pass"})

    assert resp.status_code == 200
    assert resp.json()["user"]["name"] == "Lucia"
    assert resp.json()["token_type"] == "bearer"


def test_login_wrong_password_is_401(client, registered):
    resp = client.post("/users/login", json={"email": "lucia@example.org", "password": "wrong-pass"})

    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid login credentials"


def test_profile(client, registered):
    user, headers = registered

    resp = client.get("/users/profile", headers=headers)

    assert resp.status_code == 200
    assert resp.json()["phone"] == "644444444"


def test_profile_requires_login(client):
    assert client.get("/users/profile").status_code == 401


def test_update_own_profile(client, registered):
    user, headers = registered

    resp = client.patch(f"/users/{user['id']}", json={"phone": "655555555"}, headers=headers)

    assert resp.status_code == 200
    assert resp.json()["phone"] == "655555555"
    assert resp.json()["name"] == "Lucia"


def test_update_someone_else_is_403(client, registered, make_user):
    _, headers = registered
    other = make_user("Pablo")

    resp = client.patch(f"/users/{other.id}", json={"name": "Hacked"}, headers=headers)

    assert resp.status_code == 403

# --- volunteer / assistance / housing ---

def test_add_skills_makes_user_a_volunteer(client, registered):
    user, headers = registered
    body = {"skills": [{"category": "limpieza_recuperacion", "subcategories": ["voluntario_limpieza"]}]}

    first = client.post(f"/users/{user['id']}/skills", json=body, headers=headers)
    second = client.post(f"/users/{user['id']}/skills", json=body, headers=headers)

    assert first.status_code == 200
    assert second.json()["roles"] == ["voluntario"]
    assert len(second.json()["skills"]) == 2


def test_add_skills_rejects_unknown_subcategory(client, registered):
    user, headers = registered
    body = {"skills": [{"category": "apoyo_medico", "subcategories": ["albanileria"]}]}

    resp = client.post(f"/users/{user['id']}/skills", json=body, headers=headers)

    assert resp.status_code == 422


def test_add_assistance_request(client, registered):
    user, headers = registered
    body = {
        "category": "reparacion_vivienda",
        "subcategories": ["reparacion_danos"],
        "description": "Planta baja inundada",
        "urgency": "alta",
    }

    resp = client.post(f"/users/{user['id']}/assistance", json=body, headers=headers)

    assert resp.status_code == 200
    assert resp.json()["roles"] == ["solicitante"]
    assert resp.json()["assistance_requests"][0]["urgency"] == "alta"


def test_add_housing_rejects_inverted_dates(client, registered):
    user, headers = registered
    body = {"address": "Calle Mayor 1", "start_date": "2024-11-10", "end_date": "2024-11-01", "max_occupancy": 2}

    resp = client.post(f"/users/{user['id']}/housing", json=body, headers=headers)

    assert resp.status_code == 422


def test_add_housing(client, registered):
    user, headers = registered
    body = {"address": "Calle Mayor 1", "start_date": "2024-11-01", "end_date": "2024-11-10", "max_occupancy": 2}

    resp = client.post(f"/users/{user['id']}/housing", json=body, headers=headers)

    assert resp.status_code == 200
    housing = resp.json()["housing"][0]
    assert housing["status"] == "available"
    assert housing["host"]["email"] == "lucia@example.org"
