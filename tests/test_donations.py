"""Tests for donations and the raised-amount counter."""
import uuid

import pytest
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.security import generate_password_hash

from app.growshare import create_app
from app.growshare.db import session_scope
from app.growshare.models import Base, Donation, Project, User


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")

    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    with session_scope(app) as s:
        owner = User(name="Owner", email="owner@example.com", password_hash=generate_password_hash("Harvest1!"))
        donor = User(name="Donor Dee", email="dee@example.com", password_hash=generate_password_hash("Harvest1!"))
        s.add_all([owner, donor])
        s.flush()
        s.add(Project(title="Food Bank", description="Weekly parcels", goal=1000, current_amount=0, user_id=owner.id))
    return app


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def project_id(app):
    with session_scope(app) as s:
        return s.query(Project).one().id


def _login(client, email="dee@example.com"):
    assert client.post("/auth/login", json={"email": email, "password": "Harvest1!"}).status_code == 200
    return client.get("/auth/csrf").json["csrf_token"]


def _donate(client, token, **payload):
    return client.post("/api/donations", json=payload, headers={"X-CSRF-Token": token})


def test_donation_requires_auth(client, project_id):
    token = client.get("/auth/csrf").json["csrf_token"]
    r = _donate(client, token, amount=10, projectId=project_id)
    assert r.status_code == 401


def test_donation_increments_raised_amount(client, project_id):
    token = _login(client)
    r = _donate(client, token, amount=25, projectId=project_id, message="Good luck!")
    assert r.status_code == 201
    assert r.json["amount"] == 25
    assert r.json["message"] == "Good luck!"
    assert r.json["projectId"] == project_id

    assert _donate(client, token, amount=10.5, projectId=project_id).status_code == 201

    detail = client.get(f"/api/projects/{project_id}").json
    assert detail["project"]["currentAmount"] == 35.5
    assert [d["amount"] for d in detail["donations"]] == [10.5, 25]
    assert detail["donations"][0]["user"]["name"] == "Donor Dee"


def test_donation_to_unknown_project(client):
    token = _login(client)
    r = _donate(client, token, amount=10, projectId=str(uuid.uuid4()))
    assert r.status_code == 404
    assert r.json == {"error": "Project not found"}


def test_donation_validation(client, project_id):
    token = _login(client)
    r = _donate(client, token, amount=0, projectId="not-a-uuid")
    assert r.status_code == 400
    assert r.json["errors"] == ["Amount must be at least 1", "Invalid project ID"]


def test_failed_donation_leaves_no_trace(client, app, project_id, monkeypatch):
    token = _login(client)

    def _boom(*args, **kwargs):
        raise SQLAlchemyError("audit insert failed")

    monkeypatch.setattr("app.growshare.modules.donations.service.record_event", _boom)
    r = _donate(client, token, amount=50, projectId=project_id)
    assert r.status_code == 500
    assert r.json == {"error": "Failed to process donation"}

    with session_scope(app) as s:
        assert s.get(Project, project_id).current_amount == 0
        assert s.query(Donation).count() == 0
