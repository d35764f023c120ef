from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from app.growshare.db import db_session, secure_db_operation
from app.growshare.modules.contributions.service import contribution_dict, create_contribution
from app.growshare.modules.projects.service import get_project
from app.growshare.rbac import require_roles
from app.growshare.utils import read_json_body
from app.growshare.validation import validate_contribution

bp = Blueprint("contributions", __name__)


@bp.post("/contributions")
@require_roles()
def contributions_create():
    s = db_session()

    body, body_error = read_json_body(request)
    if body_error:
        return jsonify({"error": body_error}), 400

    data, errors = validate_contribution(body)
    if errors:
        return jsonify({"errors": errors}), 400

    project, err = secure_db_operation(lambda: get_project(s, data["project_id"]))
    if err is not None or project is None:
        return jsonify({"error": "Project not found"}), 404

    def _create():
        contribution = create_contribution(s, project, data, g.current_user)
        s.commit()
        return contribution

    contribution, err = secure_db_operation(_create)
    if err is not None:
        return jsonify({"error": "Failed to record contribution"}), 500
    return jsonify(contribution_dict(contribution)), 201
