from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import func

from app.growshare.audit import record_event
from app.growshare.utils import iso

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.growshare.models import User
    from app.growshare.modules.contributions.models import Contribution
    from app.growshare.modules.projects.models import Project


def contribution_dict(contribution: "Contribution", *, include_project_title: bool = False) -> dict:
    out = {
        "id": contribution.id,
        "description": contribution.description,
        "type": contribution.type,
        "createdAt": iso(contribution.created_at),
        "projectId": contribution.project_id,
    }
    if include_project_title:
        out["projectTitle"] = contribution.project.title
    return out


def list_user_contributions(
    s: "Session", user_id: str, *, offset: int, limit: int
) -> tuple[list["Contribution"], int]:
    from app.growshare.modules.contributions.models import Contribution

    contributions = (
        s.query(Contribution)
        .filter(Contribution.user_id == user_id)
        .order_by(Contribution.created_at.desc(), Contribution.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    total = s.query(func.count(Contribution.id)).filter(Contribution.user_id == user_id).scalar() or 0
    return contributions, total


def create_contribution(s: "Session", project: "Project", payload: dict, user: "User") -> "Contribution":
    from app.growshare.modules.contributions.models import Contribution

    contribution = Contribution(
        description=payload["description"],
        type=payload["type"],
        project_id=project.id,
        user_id=user.id,
    )
    s.add(contribution)
    s.flush()

    record_event(
        s,
        actor=user,
        action="contribution.create",
        entity_type="Contribution",
        entity_id=contribution.id,
        metadata={"project_id": project.id, "type": contribution.type},
    )
    return contribution
