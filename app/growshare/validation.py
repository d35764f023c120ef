"""
Request payload validation.

Every validator takes the decoded JSON body and returns ``(clean, errors)``:
``clean`` holds trimmed/normalized values, ``errors`` every message that
applies (empty when the payload is valid).
"""
from __future__ import annotations

import math
import re
import uuid
from typing import Any
from urllib.parse import urlparse

from app.growshare.modules.contributions.models import CONTRIBUTION_TYPES

EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
PASSWORD_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]{8,}$")
# Note: '"-_' is a character range (0x22-0x5F), kept as-is for compatibility with existing data.
SAFE_STRING_RE = re.compile(r"^[a-zA-Z0-9\s.,!?'\"-_()]*$")

EMAIL_MAX = 254
PASSWORD_MIN, PASSWORD_MAX = 8, 64
NAME_MAX = 64
TITLE_MAX = 100
DESCRIPTION_MAX = 5000
GOAL_MIN, GOAL_MAX = 1, 1_000_000
AMOUNT_MIN, AMOUNT_MAX = 1, 100_000
MESSAGE_MAX = 1000
CONTRIBUTION_DESCRIPTION_MAX = 1000
IMAGE_URL_MAX = 2048


def is_valid_email(value: str) -> bool:
    return bool(EMAIL_RE.match(value))


def is_strong_password(value: str) -> bool:
    return bool(PASSWORD_RE.match(value))


def is_uuid(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _text(payload: dict, key: str, label: str, errors: list[str], *, required: bool = True) -> str | None:
    value = payload.get(key)
    if value is None:
        if required:
            errors.append(f"{label} is required")
        return None
    if not isinstance(value, str):
        errors.append(f"{label} must be a string")
        return None
    return value.strip()


def _bounded_text(
    payload: dict,
    key: str,
    label: str,
    errors: list[str],
    *,
    max_len: int,
    required: bool = True,
    safe: bool = False,
) -> str | None:
    value = _text(payload, key, label, errors, required=required)
    if value is None:
        return None
    if not value:
        if required:
            errors.append(f"{label} is required")
        return None
    if len(value) > max_len:
        errors.append(f"{label} is too long")
    if safe and not SAFE_STRING_RE.match(value):
        errors.append(f"{label} contains invalid characters")
    return value


def _bounded_number(
    payload: dict, key: str, label: str, errors: list[str], *, low: float, high: float, low_msg: str, high_msg: str
) -> float | None:
    value = payload.get(key)
    if value is None:
        errors.append(f"{label} is required")
        return None
    if not _is_number(value):
        errors.append(f"{label} must be a number")
        return None
    if value < low:
        errors.append(low_msg)
    elif value > high:
        errors.append(high_msg)
    return value


def validate_login(payload: dict) -> tuple[dict, list[str]]:
    errors: list[str] = []
    email = _text(payload, "email", "Email", errors)
    if email is not None:
        if not email:
            errors.append("Email is required")
        elif len(email) > EMAIL_MAX:
            errors.append("Email is too long")
        elif not is_valid_email(email):
            errors.append("Invalid email format")

    password = payload.get("password")
    if not isinstance(password, str):
        errors.append("Password must be at least 8 characters")
        password = None
    elif len(password) < PASSWORD_MIN:
        errors.append("Password must be at least 8 characters")
    elif len(password) > PASSWORD_MAX:
        errors.append("Password is too long")

    return {"email": (email or "").lower(), "password": password or ""}, errors


def validate_registration(payload: dict) -> tuple[dict, list[str]]:
    clean, errors = validate_login(payload)

    name = _bounded_text(payload, "name", "Name", errors, max_len=NAME_MAX, safe=True)
    confirm = payload.get("passwordConfirm")
    if not isinstance(confirm, str) or not confirm:
        errors.append("Password confirmation is required")
    elif confirm != payload.get("password"):
        errors.append("Passwords don't match")

    clean["name"] = name or ""
    return clean, errors


def validate_project(payload: dict) -> tuple[dict, list[str]]:
    errors: list[str] = []
    title = _bounded_text(payload, "title", "Title", errors, max_len=TITLE_MAX, safe=True)
    description = _bounded_text(payload, "description", "Description", errors, max_len=DESCRIPTION_MAX)
    goal = _bounded_number(
        payload,
        "goal",
        "Goal",
        errors,
        low=GOAL_MIN,
        high=GOAL_MAX,
        low_msg="Goal amount must be at least 1",
        high_msg="Goal amount is too high",
    )

    image = payload.get("image")
    if image in (None, ""):
        image = None
    elif not isinstance(image, str):
        errors.append("Image must be a valid URL")
        image = None
    else:
        image = image.strip()
        parsed = urlparse(image)
        if len(image) > IMAGE_URL_MAX:
            errors.append("Image URL is too long")
        elif parsed.scheme not in ("http", "https") or not parsed.netloc:
            errors.append("Image must be a valid URL")

    return {"title": title, "description": description, "goal": goal, "image": image}, errors


def validate_donation(payload: dict) -> tuple[dict, list[str]]:
    errors: list[str] = []
    amount = _bounded_number(
        payload,
        "amount",
        "Amount",
        errors,
        low=AMOUNT_MIN,
        high=AMOUNT_MAX,
        low_msg="Amount must be at least 1",
        high_msg="Amount is too high",
    )
    message = _bounded_text(payload, "message", "Message", errors, max_len=MESSAGE_MAX, required=False)

    project_id = payload.get("projectId")
    if not is_uuid(project_id):
        errors.append("Invalid project ID")

    return {"amount": amount, "message": message or None, "project_id": project_id}, errors


def validate_contribution(payload: dict) -> tuple[dict, list[str]]:
    errors: list[str] = []
    description = _bounded_text(
        payload, "description", "Description", errors, max_len=CONTRIBUTION_DESCRIPTION_MAX
    )

    kind = payload.get("type")
    if kind not in CONTRIBUTION_TYPES:
        errors.append(f"Type must be one of: {', '.join(CONTRIBUTION_TYPES)}")

    project_id = payload.get("projectId")
    if not is_uuid(project_id):
        errors.append("Invalid project ID")

    return {"description": description, "type": kind, "project_id": project_id}, errors
