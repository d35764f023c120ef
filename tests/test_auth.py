"""Tests for registration, login, logout and the session-backed current user."""
import pytest
from sqlalchemy import func, select

from app.growshare import create_app
from app.growshare.db import session_scope
from app.growshare.models import AuditEvent, Base, User

PASSWORD = "Harvest1!"


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")

    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)
    return app


@pytest.fixture()
def client(app):
    return app.test_client()


def _register(client, email="grower@example.com", name="Grower One", password=PASSWORD, confirm=None):
    return client.post(
        "/auth/register",
        json={
            "name": name,
            "email": email,
            "password": password,
            "passwordConfirm": confirm if confirm is not None else password,
        },
    )


def _login(client, email="grower@example.com", password=PASSWORD):
    return client.post("/auth/login", json={"email": email, "password": password})


def test_register_creates_user(client, app):
    r = _register(client)
    assert r.status_code == 201
    assert r.json["message"] == "User registered successfully"
    assert r.json["user"]["email"] == "grower@example.com"
    assert "password" not in r.json["user"]
    assert "password_hash" not in r.json["user"]

    with session_scope(app) as s:
        user = s.query(User).filter(User.email == "grower@example.com").one()
        assert user.role == "USER"
        assert user.password_hash != PASSWORD


def test_register_twice_returns_generic_failure(client):
    assert _register(client).status_code == 201
    r = _register(client, name="Someone Else")
    assert r.status_code == 400
    assert r.json == {"error": "Registration failed. Please try again with a different email."}


def test_register_email_is_case_insensitive(client):
    assert _register(client, email="Grower@Example.com").status_code == 201
    r = _register(client, email="grower@example.com")
    assert r.status_code == 400


def test_register_validation_errors(client):
    r = _register(client, email="not-an-email", confirm="different")
    assert r.status_code == 400
    assert "Invalid email format" in r.json["errors"]
    assert "Passwords don't match" in r.json["errors"]


def test_register_weak_password(client):
    r = _register(client, password="harvest11", confirm="harvest11")
    assert r.status_code == 400
    assert r.json == {"error": "Password does not meet security requirements"}


def test_register_rejects_non_json(client):
    r = client.post("/auth/register", data="name=x", content_type="application/x-www-form-urlencoded")
    assert r.status_code == 400
    assert r.json == {"error": "Invalid JSON data"}


def test_register_ip_throttle(client):
    for _ in range(5):
        assert client.post("/auth/register", json={}).status_code == 400
    r = client.post("/auth/register", json={})
    assert r.status_code == 429
    assert r.json == {"error": "Too many requests, please try again later."}


def test_register_ip_throttle_is_per_forwarded_ip(client):
    for _ in range(5):
        client.post("/auth/register", json={}, headers={"X-Forwarded-For": "198.51.100.1"})
    blocked = client.post("/auth/register", json={}, headers={"X-Forwarded-For": "198.51.100.1"})
    other = client.post("/auth/register", json={}, headers={"X-Forwarded-For": "198.51.100.2"})
    assert blocked.status_code == 429
    assert other.status_code == 400


def test_register_email_throttle_uses_generic_message(client):
    assert _register(client).status_code == 201
    assert _register(client).status_code == 400
    assert _register(client).status_code == 400
    r = _register(client)
    assert r.status_code == 429
    assert r.json == {"error": "Registration failed. Please try again later."}


def test_register_returns_503_when_db_is_down(client, monkeypatch):
    monkeypatch.setattr("app.growshare.auth.check_db_connection", lambda: False)
    r = _register(client)
    assert r.status_code == 503


def test_login_and_me(client):
    _register(client)
    r = _login(client)
    assert r.status_code == 200
    assert r.json["user"]["email"] == "grower@example.com"

    r = client.get("/auth/me")
    assert r.status_code == 200
    assert r.json["user"]["name"] == "Grower One"


def test_login_failure_is_generic(client):
    _register(client)
    wrong_pw = _login(client, password="Wrong1234!")
    unknown = _login(client, email="nobody@example.com")
    assert wrong_pw.status_code == unknown.status_code == 401
    assert wrong_pw.json == unknown.json == {"error": "Invalid credentials"}


def test_login_throttle(client):
    for _ in range(5):
        assert _login(client, email="nobody@example.com").status_code == 401
    r = _login(client, email="nobody@example.com")
    assert r.status_code == 429
    assert "Too many login attempts" in r.json["error"]
    assert int(r.headers["Retry-After"]) >= 1


def test_successful_login_resets_throttle(client):
    _register(client)
    for _ in range(4):
        _login(client, password="Wrong1234!")
    assert _login(client).status_code == 200
    for _ in range(5):
        assert _login(client, password="Wrong1234!").status_code == 401


def test_logout_clears_session(client):
    _register(client)
    _login(client)
    r = client.post("/auth/logout")
    assert r.status_code == 200
    assert client.get("/auth/me").status_code == 401


def test_inactive_user_session_is_dropped(client, app):
    _register(client)
    _login(client)
    with session_scope(app) as s:
        s.query(User).filter(User.email == "grower@example.com").one().is_active = False
    assert client.get("/auth/me").status_code == 401


def test_auth_events_are_audited(client, app):
    _register(client)
    _login(client, password="Wrong1234!")
    _login(client)
    with session_scope(app) as s:
        actions = [a for (a,) in s.execute(select(AuditEvent.action).order_by(AuditEvent.id))]
        assert actions == ["auth.register", "auth.login_failed", "auth.login"]
        assert s.execute(select(func.count(AuditEvent.id)).where(AuditEvent.client_ip.is_not(None))).scalar() == 3


def test_register_overlong_email_is_a_validation_error(client):
    r = _register(client, email="a" * 250 + "@example.com")
    assert r.status_code == 400
    assert r.json == {"errors": ["Email is too long"]}


def test_failed_login_with_overlong_email_is_audited(client, app):
    email = "b" * 390 + "@example.com"
    r = _login(client, email=email)
    assert r.status_code == 401
    assert r.json == {"error": "Invalid credentials"}
    with session_scope(app) as s:
        event = s.execute(select(AuditEvent).where(AuditEvent.action == "auth.login_failed")).scalar_one()
        assert event.entity_id == email[:128]
