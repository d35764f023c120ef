from flask import Blueprint, jsonify

from app.growshare.db import check_db_connection

bp = Blueprint("routes", __name__)


@bp.get("/")
def index():
    return jsonify({"name": "GrowShare", "theme": "SDG 2: Zero Hunger", "status": "ok"})


@bp.get("/health")
def health():
    """Health check endpoint. Returns JSON; 503 when the database is unreachable."""
    db_ok = check_db_connection()
    return jsonify({"ok": db_ok, "db": db_ok}), (200 if db_ok else 503)


@bp.get("/healthz")
def healthz():
    """
    Fast health check for container probes. No DB access, minimal overhead.
    """
    return "ok", 200
