import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

User = get_user_model()


@pytest.fixture
def client():
    return APIClient()


@pytest.fixture
def user(db):
    return User.objects.create_user(
        username="host@example.com",
        email="host@example.com",
        password="examplepass",
        first_name="Hana",
        last_name="Host",
        role=User.HOST,
    )


def test_register_creates_client_and_returns_tokens(db, client):
    payload = {
        "email": "New@Example.com",
        "password": "password123",
        "first_name": "New",
        "last_name": "Client",
    }
    response = client.post("/api/auth/register/", payload, format="json")

    assert response.status_code == 201
    body = response.json()
    assert body["user"]["email"] == "new@example.com"
    assert body["user"]["role"] == User.CLIENT
    assert body["user"]["display_name"] == "New Client"
    assert "access" in body and "refresh" in body


def test_register_can_create_host(db, client):
    payload = {"email": "owner@example.com", "password": "password123", "role": "host"}
    response = client.post("/api/auth/register/", payload, format="json")

    assert response.status_code == 201
    assert User.objects.get(email="owner@example.com").is_host


def test_register_rejects_agent_role(db, client):
    payload = {"email": "agent@example.com", "password": "password123", "role": "agent"}
    response = client.post("/api/auth/register/", payload, format="json")

    assert response.status_code == 400
    assert "role" in response.json()


def test_register_with_existing_email_is_rejected(db, client, user):
    payload = {"email": "host@example.com", "password": "password123"}
    response = client.post("/api/auth/register/", payload, format="json")

    assert response.status_code == 400
    assert "email" in response.json()


def test_login_returns_tokens_and_user_payload(db, client, user):
    response = client.post(
        "/api/auth/login/",
        {"email": "host@example.com", "password": "examplepass"},
        format="json",
    )

    assert response.status_code == 200
    data = response.json()
    assert set(data.keys()) == {"access", "refresh", "user"}
    assert data["user"]["role"] == User.HOST


def test_me_endpoint_returns_authenticated_user(db, client, user):
    login_response = client.post(
        "/api/auth/login/",
        {"email": "host@example.com", "password": "examplepass"},
        format="json",
    )
    access = login_response.json()["access"]

    client.credentials(HTTP_AUTHORIZATION=f"Bearer {access}")
    response = client.get("/api/auth/me/")

    assert response.status_code == 200
    assert response.json()["email"] == "host@example.com"


def test_me_endpoint_requires_authentication(db, client):
    response = client.get("/api/auth/me/")
    assert response.status_code == 401
