from __future__ import annotations

import uuid

from flask import Blueprint, current_app, g, jsonify, request, session
from sqlalchemy.exc import IntegrityError
from werkzeug.security import check_password_hash, generate_password_hash

from app.growshare.audit import record_event
from app.growshare.db import check_db_connection, db_session, secure_db_operation
from app.growshare.models import User
from app.growshare.rbac import ROLE_USER, require_roles
from app.growshare.security import ensure_csrf_token
from app.growshare.throttle import client_ip, get_throttle
from app.growshare.utils import iso, read_json_body
from app.growshare.validation import (
    is_strong_password,
    is_valid_email,
    validate_login,
    validate_registration,
)

bp = Blueprint("auth", __name__)

# Generic messages: never reveal whether an email is registered.
REGISTRATION_FAILED = "Registration failed. Please try again with a different email."
REGISTRATION_THROTTLED = "Registration failed. Please try again later."
INVALID_CREDENTIALS = "Invalid credentials"


def user_public_dict(user: User) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "createdAt": iso(user.created_at),
    }


def load_current_user() -> None:
    """
    Loads g.current_user from the signed session cookie.
    Also assigns a simple per-request request_id (for audit/log correlation).
    """
    if not getattr(g, "request_id", None):
        g.request_id = uuid.uuid4().hex
    if request.path.startswith(("/static/", "/health", "/healthz")):
        g.current_user = None
        return

    user_id = session.get("user_id")
    if not user_id:
        g.current_user = None
        return

    user, err = secure_db_operation(lambda: db_session().get(User, str(user_id)))
    if err is not None:
        current_app.logger.error("load_current_user DB error (clearing session): %s", err)
    if not user or not user.is_active:
        session.pop("user_id", None)
        g.current_user = None
        return
    g.current_user = user


def create_user(s, *, name: str, email: str, password: str, role: str = ROLE_USER) -> User:
    user = User(
        name=name,
        email=email,
        password_hash=generate_password_hash(password),
        role=role,
        is_active=True,
    )
    s.add(user)
    s.flush()
    record_event(
        s,
        actor=user,
        action="auth.register",
        entity_type="User",
        entity_id=user.id,
    )
    return user


@bp.get("/csrf")
def csrf_token():
    return jsonify({"csrf_token": ensure_csrf_token()})


@bp.post("/register")
def register():
    ip = client_ip(request)
    current_app.logger.info("Registration request received (ip=%s request_id=%s)", ip, g.request_id)

    if not check_db_connection():
        current_app.logger.error("Database connection failed, cannot process registration")
        return jsonify({"error": "Database connection error. Please try again later."}), 503

    if get_throttle("register_ip").hit(ip):
        return jsonify({"error": "Too many requests, please try again later."}), 429

    try:
        body, body_error = read_json_body(request)
        if body_error:
            return jsonify({"error": body_error}), 400

        data, errors = validate_registration(body)
        if errors:
            current_app.logger.info("Registration validation failed: %s", errors)
            return jsonify({"errors": errors}), 400

        email = data["email"]
        if not is_valid_email(email):
            return jsonify({"error": "Invalid email format"}), 400
        if not is_strong_password(data["password"]):
            return jsonify({"error": "Password does not meet security requirements"}), 400

        if get_throttle("register_email").hit(email):
            return jsonify({"error": REGISTRATION_THROTTLED}), 429

        s = db_session()
        existing, err = secure_db_operation(
            lambda: s.query(User).filter(User.email == email).one_or_none()
        )
        if err is not None:
            return jsonify({"error": "An error occurred during registration. Please try again later."}), 500
        if existing is not None:
            current_app.logger.info("Registration rejected: email already registered (request_id=%s)", g.request_id)
            return jsonify({"error": REGISTRATION_FAILED}), 400

        def _create() -> User:
            user = create_user(s, name=data["name"], email=email, password=data["password"])
            s.commit()
            return user

        user, err = secure_db_operation(_create)
        if isinstance(err, IntegrityError):
            # Lost a race against a concurrent registration of the same email.
            return jsonify({"error": REGISTRATION_FAILED}), 400
        if err is not None:
            return jsonify({"error": "Failed to create user account. Please try again later."}), 500

        current_app.logger.info("User registered (user_id=%s)", user.id)
        return jsonify(
            {
                "message": "User registered successfully",
                "user": {"id": user.id, "name": user.name, "email": user.email},
            }
        ), 201
    except Exception as e:
        current_app.logger.exception("Unhandled registration error (request_id=%s)", g.request_id)
        if current_app.config.get("ENV") == "development":
            message = f"An unexpected error occurred: {e}"
        else:
            message = "An unexpected error occurred during registration. Please try again later."
        return jsonify({"error": message}), 500


@bp.post("/login")
def login():
    ip = client_ip(request)
    throttle = get_throttle("login_ip")
    if throttle.hit(ip):
        minutes = max(1, round(throttle.window / 60))
        resp = jsonify({"error": f"Too many login attempts. Please wait {minutes} minutes."})
        resp.headers["Retry-After"] = str(throttle.retry_after(ip))
        return resp, 429

    body, body_error = read_json_body(request)
    if body_error:
        return jsonify({"error": body_error}), 400

    data, errors = validate_login(body)
    email = data["email"]
    s = db_session()
    user = None
    if not errors:
        user, err = secure_db_operation(lambda: s.query(User).filter(User.email == email).one_or_none())
        if err is not None:
            return jsonify({"error": "Authentication failed"}), 500

    if errors or not user or not user.is_active or not check_password_hash(user.password_hash, data["password"]):
        record_event(
            s,
            actor=None,
            action="auth.login_failed",
            entity_type="User",
            entity_id=email or None,
            reason="Invalid credentials",
            metadata={"email": email},
        )
        secure_db_operation(s.commit)
        return jsonify({"error": INVALID_CREDENTIALS}), 401

    session["user_id"] = user.id
    session.permanent = True
    throttle.reset(ip)
    record_event(s, actor=user, action="auth.login", entity_type="User", entity_id=user.id)
    secure_db_operation(s.commit)
    return jsonify({"user": user_public_dict(user)})


@bp.post("/logout")
def logout():
    user = getattr(g, "current_user", None)
    if user:
        s = db_session()
        record_event(s, actor=user, action="auth.logout", entity_type="User", entity_id=user.id)
        secure_db_operation(s.commit)
    session.pop("user_id", None)
    return jsonify({"message": "Signed out"})


@bp.get("/me")
@require_roles()
def me():
    return jsonify({"user": user_public_dict(g.current_user)})
