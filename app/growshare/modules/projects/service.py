from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import func

from app.growshare.audit import record_event
from app.growshare.utils import iso

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.growshare.models import User
    from app.growshare.modules.projects.models import Project


def project_dict(project: "Project", *, include_owner: bool = True) -> dict:
    out = {
        "id": project.id,
        "title": project.title,
        "description": project.description,
        "goal": project.goal,
        "currentAmount": project.current_amount,
        "image": project.image,
        "createdAt": iso(project.created_at),
        "updatedAt": iso(project.updated_at),
        "userId": project.user_id,
    }
    if include_owner:
        out["user"] = {"id": project.user.id, "name": project.user.name}
    return out


def list_projects(s: "Session", *, offset: int, limit: int, user_id: str | None = None) -> tuple[list["Project"], int]:
    """Newest-first page of projects (optionally only one owner's) plus the total count."""
    from app.growshare.modules.projects.models import Project

    q = s.query(Project)
    count_q = s.query(func.count(Project.id))
    if user_id is not None:
        q = q.filter(Project.user_id == user_id)
        count_q = count_q.filter(Project.user_id == user_id)
    projects = q.order_by(Project.created_at.desc(), Project.id.desc()).offset(offset).limit(limit).all()
    return projects, count_q.scalar() or 0


def get_project(s: "Session", project_id: str) -> "Project | None":
    from app.growshare.modules.projects.models import Project

    return s.get(Project, project_id)


def create_project(s: "Session", payload: dict, user: "User") -> "Project":
    """Create a project owned by ``user``. Caller commits."""
    from app.growshare.modules.projects.models import Project

    now = datetime.utcnow()
    project = Project(
        title=payload["title"],
        description=payload["description"],
        goal=payload["goal"],
        current_amount=0,
        image=payload.get("image"),
        user_id=user.id,
        created_at=now,
        updated_at=now,
    )
    s.add(project)
    s.flush()

    record_event(
        s,
        actor=user,
        action="project.create",
        entity_type="Project",
        entity_id=project.id,
        metadata={"title": project.title, "goal": project.goal},
    )
    return project
