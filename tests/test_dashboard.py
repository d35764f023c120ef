"""Tests for the personal dashboard feeds, contributions and the admin audit view."""
import pytest
from werkzeug.security import generate_password_hash

from app.growshare import create_app
from app.growshare.db import session_scope
from app.growshare.models import Base, Project, User


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")

    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    with session_scope(app) as s:
        pw = generate_password_hash("Harvest1!")
        s.add_all(
            [
                User(name="Grower", email="grower@example.com", password_hash=pw, role="USER"),
                User(name="Other", email="other@example.com", password_hash=pw, role="USER"),
                User(name="Admin", email="admin@example.com", password_hash=pw, role="ADMIN"),
            ]
        )
    return app


@pytest.fixture()
def client(app):
    return app.test_client()


def _login(client, email="grower@example.com"):
    assert client.post("/auth/login", json={"email": email, "password": "Harvest1!"}).status_code == 200
    return {"X-CSRF-Token": client.get("/auth/csrf").json["csrf_token"]}


def _project(client, headers, title="Seed Library"):
    r = client.post("/api/projects", json={"title": title, "description": "Shared seeds", "goal": 300}, headers=headers)
    assert r.status_code == 201
    return r.json["id"]


@pytest.mark.parametrize(
    "path", ["/api/user/projects", "/api/user/donations", "/api/user/contributions", "/api/user/summary"]
)
def test_dashboard_requires_auth(client, path):
    r = client.get(path)
    assert r.status_code == 401


def test_user_projects_only_lists_own(client, app):
    headers = _login(client)
    _project(client, headers, title="Mine")
    with session_scope(app) as s:
        other = s.query(User).filter(User.email == "other@example.com").one()
        s.add(Project(title="Theirs", description="x", goal=10, current_amount=0, user_id=other.id))

    r = client.get("/api/user/projects")
    assert r.status_code == 200
    assert [p["title"] for p in r.json["projects"]] == ["Mine"]
    assert r.json["pagination"]["totalItems"] == 1


def test_user_donations_are_flattened(client):
    headers = _login(client)
    project_id = _project(client, headers)
    client.post("/api/donations", json={"amount": 40, "projectId": project_id}, headers=headers)

    r = client.get("/api/user/donations")
    assert r.status_code == 200
    (donation,) = r.json["donations"]
    assert donation["amount"] == 40
    assert donation["projectId"] == project_id
    assert donation["projectTitle"] == "Seed Library"


def test_contribution_create_and_list(client):
    headers = _login(client)
    project_id = _project(client, headers)

    r = client.post(
        "/api/contributions",
        json={"description": "Saturday weeding shift", "type": "VOLUNTEER", "projectId": project_id},
        headers=headers,
    )
    assert r.status_code == 201
    assert r.json["type"] == "VOLUNTEER"

    r = client.get("/api/user/contributions")
    (contribution,) = r.json["contributions"]
    assert contribution["description"] == "Saturday weeding shift"
    assert contribution["projectTitle"] == "Seed Library"


def test_contribution_validation(client):
    headers = _login(client)
    r = client.post("/api/contributions", json={"description": "", "type": "CASH", "projectId": "x"}, headers=headers)
    assert r.status_code == 400
    assert len(r.json["errors"]) == 3


def test_summary(client):
    headers = _login(client)
    project_id = _project(client, headers)
    client.post("/api/donations", json={"amount": 15, "projectId": project_id}, headers=headers)
    client.post("/api/donations", json={"amount": 5, "projectId": project_id}, headers=headers)

    r = client.get("/api/user/summary")
    assert r.status_code == 200
    assert r.json["summary"] == {"projects": 1, "donations": 2, "contributions": 0, "totalDonated": 20}


def test_audit_forbidden_for_regular_user(client):
    _login(client)
    r = client.get("/api/admin/audit")
    assert r.status_code == 403
    assert r.json == {"error": "Forbidden"}


def test_audit_visible_to_admin(client):
    headers = _login(client)
    _project(client, headers)
    client.post("/auth/logout")

    _login(client, email="admin@example.com")
    r = client.get("/api/admin/audit?action=project")
    assert r.status_code == 200
    actions = [ev["action"] for ev in r.json["events"]]
    assert actions == ["project.create"]
    assert r.json["events"][0]["actorEmail"] == "grower@example.com"


def test_api_rate_limit(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'limited.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("API_RATE_LIMIT", "3")
    app = create_app()
    Base.metadata.create_all(bind=app.extensions["sqlalchemy_engine"])
    client = app.test_client()

    assert [client.get("/api/projects").status_code for _ in range(3)] == [200, 200, 200]
    r = client.get("/api/projects")
    assert r.status_code == 429
    assert r.json == {"success": False, "message": "Too many requests. Please try again later."}
    assert int(r.headers["Retry-After"]) >= 1
    # different client address is unaffected; non-API routes are never throttled
    assert client.get("/api/projects", headers={"X-Forwarded-For": "192.0.2.10"}).status_code == 200
    assert client.get("/health").status_code == 200


def test_audit_filter_treats_wildcards_literally(client):
    headers = _login(client)
    _project(client, headers)
    client.post("/auth/logout")

    _login(client, email="admin@example.com")
    assert client.get("/api/admin/audit?action=%25").json["events"] == []
    assert client.get("/api/admin/audit?actor_email=grower_example").json["events"] == []
    r = client.get("/api/admin/audit?action=project.create")
    assert [ev["action"] for ev in r.json["events"]] == ["project.create"]
