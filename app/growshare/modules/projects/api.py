from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request

from app.growshare.db import db_session, secure_db_operation
from app.growshare.models import User
from app.growshare.modules.donations.service import donation_dict, list_project_donations
from app.growshare.modules.projects.service import create_project, get_project, list_projects, project_dict
from app.growshare.rbac import require_roles
from app.growshare.utils import pagination_meta, parse_pagination, read_json_body
from app.growshare.validation import validate_project

bp = Blueprint("projects", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


# ---------- List ----------
@bp.get("/projects")
def projects_list():
    s = db_session()
    page, limit, offset = parse_pagination(request.args)

    result, err = secure_db_operation(lambda: list_projects(s, offset=offset, limit=limit))
    if err is not None:
        return jsonify({"error": "Failed to fetch projects"}), 500
    projects, total = result

    return jsonify(
        {
            "projects": [project_dict(p) for p in projects],
            "pagination": pagination_meta(page, limit, total),
        }
    )


# ---------- Create ----------
@bp.post("/projects")
@require_roles()
def projects_create():
    s = db_session()
    u = _current_user()

    body, body_error = read_json_body(request)
    if body_error:
        return jsonify({"error": body_error}), 400

    data, errors = validate_project(body)
    if errors:
        return jsonify({"errors": errors}), 400

    def _create():
        project = create_project(s, data, u)
        s.commit()
        return project

    project, err = secure_db_operation(_create)
    if err is not None:
        return jsonify({"error": "Failed to create project"}), 500

    current_app.logger.info("Project created (project_id=%s user_id=%s)", project.id, u.id)
    return jsonify(project_dict(project, include_owner=False)), 201


# ---------- Detail ----------
@bp.get("/projects/<project_id>")
def project_detail(project_id: str):
    s = db_session()

    project, err = secure_db_operation(lambda: get_project(s, project_id))
    if err is not None or project is None:
        return jsonify({"error": "Project not found"}), 404

    donations, err = secure_db_operation(lambda: list_project_donations(s, project.id))
    if err is not None:
        return jsonify({"error": "Failed to fetch donations"}), 500

    return jsonify(
        {
            "project": project_dict(project),
            "donations": [donation_dict(d, include_donor=True) for d in donations],
        }
    )
