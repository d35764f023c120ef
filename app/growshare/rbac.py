from collections.abc import Callable, Iterable
from functools import wraps
from typing import Any

from flask import current_app, g, jsonify

from app.growshare.models import User

ROLE_USER = "USER"
ROLE_ADMIN = "ADMIN"
ALL_ROLES = (ROLE_USER, ROLE_ADMIN)


def user_has_role(user: User | None, roles: Iterable[str]) -> bool:
    if not user or not user.is_active:
        return False
    return user.role in set(roles)


def require_roles(*roles: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    allowed = frozenset(roles or ALL_ROLES)

    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            user: User | None = getattr(g, "current_user", None)
            # Unauthenticated → 401
            if not user or not user.is_active:
                return jsonify({"error": "Unauthorized"}), 401
            # Authenticated but unauthorized → 403
            if not user_has_role(user, allowed):
                current_app.logger.warning(
                    "Forbidden: role=%s allowed=%s request_id=%s", user.role, sorted(allowed), getattr(g, "request_id", None)
                )
                return jsonify({"error": "Forbidden"}), 403
            return fn(*args, **kwargs)

        return wrapped

    return decorator
