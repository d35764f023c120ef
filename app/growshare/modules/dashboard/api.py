"""
Personal dashboard feeds: the signed-in user's projects, donations and contributions.
"""
from __future__ import annotations

from flask import Blueprint, g, jsonify, request
from sqlalchemy import func

from app.growshare.db import db_session, secure_db_operation
from app.growshare.modules.contributions.models import Contribution
from app.growshare.modules.contributions.service import contribution_dict, list_user_contributions
from app.growshare.modules.donations.models import Donation
from app.growshare.modules.donations.service import donation_dict, list_user_donations, total_donated
from app.growshare.modules.projects.models import Project
from app.growshare.modules.projects.service import list_projects, project_dict
from app.growshare.rbac import require_roles
from app.growshare.utils import pagination_meta, parse_pagination

bp = Blueprint("dashboard", __name__)


@bp.get("/user/projects")
@require_roles()
def user_projects():
    s = db_session()
    page, limit, offset = parse_pagination(request.args)

    result, err = secure_db_operation(lambda: list_projects(s, offset=offset, limit=limit, user_id=g.current_user.id))
    if err is not None:
        return jsonify({"error": "Failed to fetch user projects"}), 500
    projects, total = result

    return jsonify(
        {
            "projects": [project_dict(p, include_owner=False) for p in projects],
            "pagination": pagination_meta(page, limit, total),
        }
    )


@bp.get("/user/donations")
@require_roles()
def user_donations():
    s = db_session()
    page, limit, offset = parse_pagination(request.args)

    result, err = secure_db_operation(
        lambda: list_user_donations(s, g.current_user.id, offset=offset, limit=limit)
    )
    if err is not None:
        return jsonify({"error": "Failed to fetch user donations"}), 500
    donations, total = result

    return jsonify(
        {
            "donations": [donation_dict(d, include_project_title=True) for d in donations],
            "pagination": pagination_meta(page, limit, total),
        }
    )


@bp.get("/user/contributions")
@require_roles()
def user_contributions():
    s = db_session()
    page, limit, offset = parse_pagination(request.args)

    result, err = secure_db_operation(
        lambda: list_user_contributions(s, g.current_user.id, offset=offset, limit=limit)
    )
    if err is not None:
        return jsonify({"error": "Failed to fetch user contributions"}), 500
    contributions, total = result

    return jsonify(
        {
            "contributions": [contribution_dict(c, include_project_title=True) for c in contributions],
            "pagination": pagination_meta(page, limit, total),
        }
    )


@bp.get("/user/summary")
@require_roles()
def user_summary():
    s = db_session()
    uid = g.current_user.id

    def _summary() -> dict:
        return {
            "projects": s.query(func.count(Project.id)).filter(Project.user_id == uid).scalar() or 0,
            "donations": s.query(func.count(Donation.id)).filter(Donation.user_id == uid).scalar() or 0,
            "contributions": s.query(func.count(Contribution.id)).filter(Contribution.user_id == uid).scalar() or 0,
            "totalDonated": total_donated(s, uid),
        }

    summary, err = secure_db_operation(_summary)
    if err is not None:
        return jsonify({"error": "Failed to fetch dashboard summary"}), 500
    return jsonify({"summary": summary})
