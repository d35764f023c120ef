import logging
import os
from datetime import timedelta

from dotenv import load_dotenv
from flask import Flask, g, jsonify, request, session
from werkzeug.exceptions import HTTPException

from app.growshare.config import load_config
from app.growshare.db import init_db, teardown_db_session
from app.growshare.routes import bp as routes_bp
from app.growshare.auth import bp as auth_bp, load_current_user
from app.growshare.admin import bp as admin_bp
from app.growshare.modules.projects.api import bp as projects_bp
from app.growshare.modules.donations.api import bp as donations_bp
from app.growshare.modules.contributions.api import bp as contributions_bp
from app.growshare.modules.dashboard.api import bp as dashboard_bp
from app.growshare.throttle import client_ip, get_throttle, init_throttles

_SKIP_PREFIXES = ("/static/", "/health", "/healthz")

# Generic bodies for framework-raised errors; handlers return their own messages.
_ERROR_MESSAGES = {
    400: "Bad request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not found",
    405: "Method not allowed",
    413: "Request entity too large",
    429: "Too many requests. Please try again later.",
}


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__)
    app.config.from_mapping(load_config())
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(hours=24)
    app.config["SESSION_REFRESH_EACH_REQUEST"] = True

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )
    app.logger.setLevel(app.config["LOG_LEVEL"])

    from app.growshare.security import apply_security_headers, ensure_csrf_token, validate_csrf

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if not app.config.get("DATABASE_URL") or str(app.config["DATABASE_URL"]).strip() == "":
            raise RuntimeError("DATABASE_URL is required in production.")
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")

    init_db(app)
    init_throttles(app)

    def _dispose_engine_on_fork() -> None:
        if hasattr(os, "register_at_fork"):
            def _after_fork_child():
                engine = app.extensions.get("sqlalchemy_engine")
                if engine:
                    engine.dispose()
                    app.logger.info("Disposed DB engine after fork (pid=%s)", os.getpid())

            os.register_at_fork(after_in_child=_after_fork_child)

    _dispose_engine_on_fork()

    @app.before_request
    def _api_rate_limit():
        if not request.path.startswith("/api/"):
            return None
        ip = client_ip(request)
        throttle = get_throttle("api")
        if throttle.hit(ip):
            resp = jsonify({"success": False, "message": "Too many requests. Please try again later."})
            resp.headers["Retry-After"] = str(throttle.retry_after(ip))
            return resp, 429
        return None

    @app.before_request
    def _csrf_guard():
        if request.path.startswith(_SKIP_PREFIXES):
            return None
        ensure_csrf_token()
        session.permanent = True
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            # Auth endpoints (register/login/logout) are exempt.
            if (request.endpoint or "").startswith("auth."):
                return None
            if not validate_csrf(request):
                return jsonify({"error": "CSRF token missing or invalid."}), 400
        return None

    def _load_user_wrapper():
        if request.path.startswith(_SKIP_PREFIXES):
            g.current_user = None
            return None
        return load_current_user()

    app.before_request(_load_user_wrapper)
    app.teardown_appcontext(teardown_db_session)

    @app.after_request
    def _security_headers(response):
        return apply_security_headers(request, response)

    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(admin_bp, url_prefix="/api/admin")
    app.register_blueprint(projects_bp, url_prefix="/api")
    app.register_blueprint(donations_bp, url_prefix="/api")
    app.register_blueprint(contributions_bp, url_prefix="/api")
    app.register_blueprint(dashboard_bp, url_prefix="/api")

    @app.errorhandler(HTTPException)
    def _err_http(e: HTTPException):  # type: ignore[no-redef]
        code = e.code or 500
        if code < 400:
            # routing redirects (e.g. trailing slash) pass through untouched
            return e
        if code >= 500:
            return _err_500(e)
        return jsonify({"error": _ERROR_MESSAGES.get(code, e.name)}), code

    @app.errorhandler(500)
    def _err_500(e):  # type: ignore[no-redef]
        rid = getattr(g, "request_id", None)
        app.logger.exception("Unhandled 500 (request_id=%s)", rid)
        return jsonify({"error": "Internal Server Error"}), 500

    logging.getLogger(__name__).info("create_app() complete; app ready to serve")

    return app
