from flask import Blueprint, jsonify, request

from app.growshare.db import db_session, secure_db_operation
from app.growshare.models import AuditEvent
from app.growshare.rbac import ROLE_ADMIN, require_roles
from app.growshare.utils import iso

bp = Blueprint("admin", __name__)


def _event_dict(ev: AuditEvent) -> dict:
    return {
        "id": ev.id,
        "createdAt": iso(ev.created_at),
        "requestId": ev.request_id,
        "clientIp": ev.client_ip,
        "actorUserId": ev.actor_user_id,
        "actorEmail": ev.actor_user_email,
        "action": ev.action,
        "entityType": ev.entity_type,
        "entityId": ev.entity_id,
        "reason": ev.reason,
        "metadata": ev.metadata_json,
    }


@bp.get("/audit")
@require_roles(ROLE_ADMIN)
def audit_list():
    """
    Last 200 audit events, with simple filters:
    - action (contains)
    - actor_email (contains)
    """
    s = db_session()
    action = (request.args.get("action") or "").strip()
    actor_email = (request.args.get("actor_email") or "").strip()

    def _query():
        q = s.query(AuditEvent)
        if action:
            q = q.filter(AuditEvent.action.contains(action, autoescape=True))
        if actor_email:
            q = q.filter(AuditEvent.actor_user_email.contains(actor_email.lower(), autoescape=True))
        return q.order_by(AuditEvent.created_at.desc(), AuditEvent.id.desc()).limit(200).all()

    events, err = secure_db_operation(_query)
    if err is not None:
        return jsonify({"error": "Failed to fetch audit events"}), 500
    return jsonify({"events": [_event_dict(ev) for ev in events]})
