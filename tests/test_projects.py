"""Tests for the projects API."""
import uuid

import pytest
from werkzeug.security import generate_password_hash

from app.growshare import create_app
from app.growshare.db import session_scope
from app.growshare.models import Base, User


@pytest.fixture()
def client(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")

    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    with session_scope(app) as s:
        s.add(
            User(
                name="Farmer Jo",
                email="jo@example.com",
                password_hash=generate_password_hash("Harvest1!"),
                role="USER",
                is_active=True,
            )
        )

    return app.test_client()


def _login(client):
    r = client.post("/auth/login", json={"email": "jo@example.com", "password": "Harvest1!"})
    assert r.status_code == 200
    return client.get("/auth/csrf").json["csrf_token"]


def _create(client, token, **overrides):
    payload = {"title": "School Garden", "description": "Vegetable beds for the school canteen", "goal": 2500}
    payload.update(overrides)
    return client.post("/api/projects", json=payload, headers={"X-CSRF-Token": token})


def test_list_empty(client):
    r = client.get("/api/projects")
    assert r.status_code == 200
    assert r.json == {
        "projects": [],
        "pagination": {"page": 1, "limit": 10, "totalItems": 0, "totalPages": 0},
    }


def test_create_requires_auth(client):
    token = client.get("/auth/csrf").json["csrf_token"]
    r = _create(client, token)
    assert r.status_code == 401
    assert r.json == {"error": "Unauthorized"}


def test_create_requires_csrf(client):
    _login(client)
    r = client.post("/api/projects", json={"title": "x", "description": "y", "goal": 10})
    assert r.status_code == 400
    assert r.json == {"error": "CSRF token missing or invalid."}


def test_csrf_token_accepted_in_json_body(client):
    token = _login(client)
    r = client.post(
        "/api/projects",
        json={"title": "Orchard", "description": "Fruit trees", "goal": 900, "csrf_token": token},
    )
    assert r.status_code == 201


def test_create_project(client):
    token = _login(client)
    r = _create(client, token, image="https://images.example.com/garden.jpg")
    assert r.status_code == 201
    body = r.json
    assert body["title"] == "School Garden"
    assert body["goal"] == 2500
    assert body["currentAmount"] == 0
    assert body["image"] == "https://images.example.com/garden.jpg"
    uuid.UUID(body["id"])


def test_create_project_validation(client):
    token = _login(client)
    r = _create(client, token, title="", goal=0)
    assert r.status_code == 400
    assert "Title is required" in r.json["errors"]
    assert "Goal amount must be at least 1" in r.json["errors"]


def test_create_project_invalid_json(client):
    token = _login(client)
    r = client.post(
        "/api/projects", data="{not json", content_type="application/json", headers={"X-CSRF-Token": token}
    )
    assert r.status_code == 400
    assert r.json == {"error": "Invalid JSON data"}


def test_list_newest_first_with_owner(client):
    token = _login(client)
    for title in ("First", "Second", "Third"):
        assert _create(client, token, title=title).status_code == 201

    r = client.get("/api/projects")
    titles = [p["title"] for p in r.json["projects"]]
    assert titles == ["Third", "Second", "First"]
    assert r.json["projects"][0]["user"]["name"] == "Farmer Jo"
    assert "email" not in r.json["projects"][0]["user"]
    assert r.json["pagination"]["totalItems"] == 3


def test_pagination(client):
    token = _login(client)
    for i in range(3):
        _create(client, token, title=f"Plot {i}")

    r = client.get("/api/projects?page=2&limit=2")
    assert [p["title"] for p in r.json["projects"]] == ["Plot 0"]
    assert r.json["pagination"] == {"page": 2, "limit": 2, "totalItems": 3, "totalPages": 2}


@pytest.mark.parametrize(
    "query, page, limit",
    [
        ("page=abc&limit=xyz", 1, 10),
        ("page=-3&limit=0", 1, 10),
        ("page=5000&limit=500", 100, 50),
    ],
)
def test_pagination_is_sanitized(client, query, page, limit):
    r = client.get(f"/api/projects?{query}")
    assert r.status_code == 200
    assert r.json["pagination"]["page"] == page
    assert r.json["pagination"]["limit"] == limit


def test_detail(client):
    token = _login(client)
    project_id = _create(client, token).json["id"]

    r = client.get(f"/api/projects/{project_id}")
    assert r.status_code == 200
    assert r.json["project"]["id"] == project_id
    assert r.json["project"]["user"]["name"] == "Farmer Jo"
    assert r.json["donations"] == []


def test_detail_not_found(client):
    r = client.get(f"/api/projects/{uuid.uuid4()}")
    assert r.status_code == 404
    assert r.json == {"error": "Project not found"}


def test_request_body_too_large(client):
    token = _login(client)
    r = client.post(
        "/api/projects",
        data="x" * (2 * 1024 * 1024 + 1),
        content_type="application/json",
        headers={"X-CSRF-Token": token},
    )
    assert r.status_code == 413
    assert r.json == {"error": "Request entity too large"}
