from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request

from app.growshare.db import db_session, secure_db_operation
from app.growshare.modules.donations.service import create_donation, donation_dict
from app.growshare.modules.projects.service import get_project
from app.growshare.rbac import require_roles
from app.growshare.utils import read_json_body
from app.growshare.validation import validate_donation

bp = Blueprint("donations", __name__)


@bp.post("/donations")
@require_roles()
def donations_create():
    s = db_session()
    u = g.current_user

    body, body_error = read_json_body(request)
    if body_error:
        return jsonify({"error": body_error}), 400

    data, errors = validate_donation(body)
    if errors:
        return jsonify({"errors": errors}), 400

    project, err = secure_db_operation(lambda: get_project(s, data["project_id"]))
    if err is not None or project is None:
        return jsonify({"error": "Project not found"}), 404

    def _donate():
        donation = create_donation(s, project, data, u)
        s.commit()
        return donation

    donation, err = secure_db_operation(_donate)
    if err is not None:
        return jsonify({"error": "Failed to process donation"}), 500

    current_app.logger.info(
        "Donation recorded (donation_id=%s project_id=%s amount=%s)", donation.id, project.id, donation.amount
    )
    return jsonify(donation_dict(donation)), 201
